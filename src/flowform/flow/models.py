"""Flow definition models.

A flow is an immutable snapshot: nodes, unguarded transitions between
input nodes, and an entry node. Guarded edges live in the branches of
routing (conditional) nodes.
"""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny, field_validator, model_validator

from flowform.core.constants import TERMINAL
from flowform.nodes import NodeKind, NodeTypeRegistry
from flowform.nodes.conditions import Condition
from flowform.nodes.configs import NodeConfig


class Node(BaseModel):
    """One step of a flow.

    ``config`` is resolved through the Node Type Registry when the node
    is built, so an unknown ``type`` fails with ``UnknownNodeType``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Unique node identifier within the flow")
    type: str = Field(description="Registered node type tag")
    label: str = ""
    description: str | None = None
    required: bool = True
    config: SerializeAsAny[NodeConfig] = Field(default_factory=NodeConfig)

    @model_validator(mode="before")
    @classmethod
    def _resolve_config(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        kind = NodeTypeRegistry.get(data.get("type"))
        config = data.get("config")
        if not isinstance(config, kind.config_model):
            config = kind.config_model.model_validate(config or {})
        return {**data, "config": config}

    @field_validator("id")
    @classmethod
    def _not_reserved(cls, value: str) -> str:
        if value == TERMINAL.value:
            raise ValueError(f"'{value}' is reserved for the end of a flow")
        return value

    @property
    def kind(self) -> NodeKind:
        return NodeTypeRegistry.get(self.type)

    @property
    def display_name(self) -> str:
        return self.label or self.id


class Transition(BaseModel):
    """Unguarded edge from an input node to the next node."""

    model_config = ConfigDict(frozen=True)

    source: str
    target: str


@dataclass(frozen=True)
class Edge:
    """Any edge of the flow graph, guarded or not."""

    source: str
    target: str
    condition: Condition | None = None


class FlowDefinition(BaseModel):
    """Configuration for a flow.

    ``version`` is assigned by the flow store on publish; editing a
    published flow means publishing a new version.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = ""
    description: str = ""
    version: int = Field(default=0, ge=0, description="0 until published")
    entry: str = Field(description="Id of the first node")
    nodes: tuple[Node, ...] = Field(min_length=1)
    transitions: tuple[Transition, ...] = ()

    def get_node(self, node_id: str) -> Node | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def node_ids(self) -> list[str]:
        return [node.id for node in self.nodes]

    def outgoing(self, node_id: str) -> list[Transition]:
        """Unguarded transitions leaving ``node_id``, in declaration order."""
        return [t for t in self.transitions if t.source == node_id]

    def edges(self) -> list[Edge]:
        """All edges: declared transitions plus routing node branches."""
        edges = [Edge(t.source, t.target) for t in self.transitions]
        for node in self.nodes:
            for branch in node.config.route_branches():
                edges.append(Edge(node.id, branch.target, branch.when))
        return edges

    def successors(self, node_id: str) -> list[str]:
        return [edge.target for edge in self.edges() if edge.source == node_id]
