"""Tests for flow definition models and node configs"""

import pytest
from pydantic import ValidationError

from flowform.core.constants import TERMINAL
from flowform.core.errors import UnknownNodeType
from flowform.flow.models import Edge, FlowDefinition, Node
from flowform.nodes.conditions import AllCondition, AnswerCondition, NotCondition
from flowform.nodes.configs import (
    ChoiceOption,
    ConditionalConfig,
    NumberInputConfig,
    SingleChoiceConfig,
)
from tests.factories import make_age_flow, make_node


class TestNode:
    def test_config_resolved_from_type(self):
        """Test the config dict is parsed into the type's config model"""
        # Act
        node = make_node("score", "number_input", config={"min": 1, "max": 5})

        # Assert
        assert isinstance(node.config, NumberInputConfig)
        assert node.config.min == 1
        assert node.kind.name == "number_input"

    def test_unknown_type_raises_authoring_error(self):
        with pytest.raises(UnknownNodeType):
            Node.model_validate({"id": "x", "type": "slider"})

    def test_unknown_config_field_rejected(self):
        with pytest.raises(ValidationError):
            make_node("name", config={"colour": "red"})

    def test_number_min_greater_than_max_rejected(self):
        with pytest.raises(ValidationError, match="min"):
            make_node("score", "number_input", config={"min": 10, "max": 0})

    def test_invalid_pattern_rejected(self):
        with pytest.raises(ValidationError, match="Invalid pattern"):
            make_node("code", config={"pattern": "([a-z"})

    def test_end_id_is_reserved(self):
        with pytest.raises(ValidationError, match="reserved"):
            make_node(TERMINAL.value)

    def test_display_name_falls_back_to_id(self):
        assert make_node("email", "email_input", label="").display_name == "email"
        assert make_node("email", "email_input", label="Your email").display_name == "Your email"

    def test_node_is_immutable(self):
        node = make_node("name")
        with pytest.raises(ValidationError):
            node.label = "changed"

    def test_dump_keeps_type_specific_config(self):
        """Test serialization keeps the concrete config fields"""
        node = make_node("score", "number_input", config={"max": 3})
        assert node.model_dump()["config"]["max"] == 3


class TestChoiceOptions:
    def test_string_and_mapping_options(self):
        config = SingleChoiceConfig.model_validate(
            {"options": ["a", {"value": "b"}, {"value": "c", "label": "Option C"}]}
        )

        assert config.options == (
            ChoiceOption(value="a", label="a"),
            ChoiceOption(value="b", label="b"),
            ChoiceOption(value="c", label="Option C"),
        )
        assert config.option_values() == ["a", "b", "c"]

    def test_duplicate_values_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate option value 'a'"):
            SingleChoiceConfig.model_validate({"options": ["a", {"value": "a", "label": "A"}]})

    def test_options_required(self):
        with pytest.raises(ValidationError):
            SingleChoiceConfig.model_validate({"options": []})


class TestConditions:
    def test_discriminated_on_op(self):
        """Test nested conditions are parsed into the matching models"""
        config = ConditionalConfig.model_validate(
            {
                "branches": [
                    {
                        "when": {
                            "op": "all",
                            "conditions": [
                                {"op": "equals", "node": "plan", "value": "pro"},
                                {"op": "not", "condition": {"op": "is_answered", "node": "vat"}},
                            ],
                        },
                        "target": "billing",
                    },
                    {"target": "done"},
                ]
            }
        )

        when = config.branches[0].when
        assert isinstance(when, AllCondition)
        assert isinstance(when.conditions[0], AnswerCondition)
        assert isinstance(when.conditions[1], NotCondition)
        assert when.referenced_nodes() == {"plan", "vat"}
        assert config.branches[1].is_default

    def test_unknown_operator_rejected(self):
        with pytest.raises(ValidationError):
            ConditionalConfig.model_validate(
                {"branches": [{"when": {"op": "matches", "node": "a"}, "target": "b"}]}
            )


class TestFlowDefinition:
    def test_edges_include_branches(self):
        """Test edges() returns transitions plus guarded branch edges"""
        flow = make_age_flow()

        edges = flow.edges()

        assert Edge("age", "route") in edges
        assert [e.target for e in edges if e.source == "route"] == ["minor", "adult", "senior"]
        assert [e.condition is None for e in edges if e.source == "route"] == [False, False, True]

    def test_successors_and_outgoing(self):
        flow = make_age_flow()

        assert flow.successors("age") == ["route"]
        assert flow.outgoing("route") == []
        assert flow.get_node("missing") is None

    def test_requires_nodes(self):
        with pytest.raises(ValidationError):
            FlowDefinition.model_validate({"id": "empty", "entry": "a", "nodes": []})

    def test_version_defaults_to_unpublished(self):
        assert make_age_flow().version == 0


def test_terminal_sentinel():
    assert repr(TERMINAL) == "TERMINAL"
    assert TERMINAL == "__end__"
