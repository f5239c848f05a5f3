"""Test factories for creating test objects."""

from typing import Any

from flowform.flow.models import FlowDefinition, Node


def make_node(node_id: str, node_type: str = "text_input", **overrides: Any) -> Node:
    """Create a Node with defaults, allowing overrides."""
    data: dict[str, Any] = {"id": node_id, "type": node_type, "label": node_id.title()}
    data.update(overrides)
    return Node.model_validate(data)


def make_flow(
    nodes: list[dict[str, Any]],
    transitions: list[tuple[str, str]] | None = None,
    entry: str | None = None,
    **overrides: Any,
) -> FlowDefinition:
    """Create a FlowDefinition from node dicts and (source, target) pairs.

    ``entry`` defaults to the first node.
    """
    data: dict[str, Any] = {
        "id": "test_flow",
        "name": "Test flow",
        "entry": entry or nodes[0]["id"],
        "nodes": nodes,
        "transitions": [{"source": s, "target": t} for s, t in transitions or []],
    }
    data.update(overrides)
    return FlowDefinition.model_validate(data)


def make_linear_flow(**overrides: Any) -> FlowDefinition:
    """[text_input A] -> [email_input B] -> end"""
    return make_flow(
        nodes=[
            {"id": "A", "type": "text_input", "label": "Name"},
            {"id": "B", "type": "email_input", "label": "Email"},
        ],
        transitions=[("A", "B")],
        **overrides,
    )


def make_age_flow(**overrides: Any) -> FlowDefinition:
    """age -> route -> minor | adult | senior, each a terminal text node."""
    return make_flow(
        nodes=[
            {"id": "age", "type": "number_input", "config": {"min": 0, "max": 150}},
            {
                "id": "route",
                "type": "conditional",
                "config": {
                    "branches": [
                        {"when": {"op": "less_than", "node": "age", "value": 18}, "target": "minor"},
                        {"when": {"op": "less_than", "node": "age", "value": 65}, "target": "adult"},
                        {"target": "senior"},
                    ]
                },
            },
            {"id": "minor", "type": "text_input", "label": "Guardian name"},
            {"id": "adult", "type": "text_input", "label": "Occupation"},
            {"id": "senior", "type": "text_input", "label": "Pension fund"},
        ],
        transitions=[("age", "route")],
        id="age_flow",
        **overrides,
    )


def make_file_handle(**overrides: Any) -> dict[str, Any]:
    """Create a staged file handle mapping with defaults, allowing overrides."""
    defaults = {
        "file_id": "f-123",
        "filename": "resume.pdf",
        "content_type": "application/pdf",
        "size": 2048,
    }
    return {**defaults, **overrides}
