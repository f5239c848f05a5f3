"""Flow graph model: definitions, structural validation and routing."""

from flowform.flow.evaluator import evaluate_branches, evaluate_condition
from flowform.flow.graph import (
    StructureIssue,
    StructureReport,
    ensure_valid_structure,
    next_node,
    validate_structure,
)
from flowform.flow.models import Edge, FlowDefinition, Node, Transition

__all__ = [
    "Edge",
    "FlowDefinition",
    "Node",
    "Transition",
    "StructureIssue",
    "StructureReport",
    "validate_structure",
    "ensure_valid_structure",
    "next_node",
    "evaluate_branches",
    "evaluate_condition",
]
