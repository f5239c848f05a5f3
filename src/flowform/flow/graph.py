"""Flow graph validation and routing.

Both operations are read-only over an immutable ``FlowDefinition``.
"""

import logging
from collections import Counter, deque
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from flowform.core.constants import TERMINAL, Terminal
from flowform.core.errors import StructuralError, UnreachableNodeError
from flowform.flow.evaluator import evaluate_branches
from flowform.flow.models import FlowDefinition

logger = logging.getLogger(__name__)

Severity = Literal["error", "warning"]


@dataclass(frozen=True)
class StructureIssue:
    """One problem found in a flow graph."""

    kind: str
    message: str
    severity: Severity = "error"
    node_id: str | None = None

    def __str__(self) -> str:
        return f"[{self.severity}] {self.kind}: {self.message}"


@dataclass
class StructureReport:
    """Outcome of ``validate_structure``."""

    flow_id: str
    issues: list[StructureIssue] = field(default_factory=list)

    @property
    def errors(self) -> list[StructureIssue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[StructureIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def ok(self) -> bool:
        """No error-level issues (warnings allowed)."""
        return not self.errors

    @property
    def accepted(self) -> bool:
        """No issues at all, unreachable nodes included."""
        return not self.issues

    def kinds(self) -> set[str]:
        return {i.kind for i in self.issues}

    def add(self, kind: str, message: str, node_id: str | None = None, **kw: Any) -> None:
        self.issues.append(StructureIssue(kind=kind, message=message, node_id=node_id, **kw))


def validate_structure(flow: FlowDefinition) -> StructureReport:
    """Check the structural invariants of a flow.

    Checks:
    - node ids are unique and the entry node exists
    - every transition, branch target and condition reference exists
      (``__end__`` is a valid target and ends the flow)
    - input nodes have at most one transition, routing nodes none
    - routing nodes have branches and exactly one default, declared last
    - no cycle is made only of input nodes (a session would always fail it)
    - every node is reachable from the entry (warning)
    """
    report = StructureReport(flow_id=flow.id)
    node_ids = set(flow.node_ids())
    targets = node_ids | {TERMINAL.value}

    for node_id, count in Counter(flow.node_ids()).items():
        if count > 1:
            report.add("duplicate_node_id", f"Node id '{node_id}' is used {count} times", node_id)

    if flow.entry not in node_ids:
        report.add("missing_entry", f"Entry node '{flow.entry}' does not exist", flow.entry)

    for transition in flow.transitions:
        for end, known in ((transition.source, node_ids), (transition.target, targets)):
            if end not in known:
                report.add(
                    "dangling_reference",
                    f"Transition {transition.source} -> {transition.target} "
                    f"references unknown node '{end}'",
                    transition.source,
                )

    for node in flow.nodes:
        outgoing = flow.outgoing(node.id)
        if node.config.routing:
            if outgoing:
                report.add(
                    "conditional_outgoing_transition",
                    f"Routing node '{node.id}' must declare its edges as branches",
                    node.id,
                )
            _check_branches(flow, node.id, node.config.route_branches(), node_ids, report)
        elif len(outgoing) > 1:
            report.add(
                "multiple_transitions",
                f"Node '{node.id}' has {len(outgoing)} outgoing transitions, expected at most 1",
                node.id,
            )

    _check_unconditional_cycles(flow, report)

    if flow.entry in node_ids:
        reachable = _reachable_from(flow, flow.entry)
        for node in flow.nodes:
            if node.id not in reachable:
                report.add(
                    "unreachable_node",
                    f"Node '{node.id}' cannot be reached from entry '{flow.entry}'",
                    node.id,
                    severity="warning",
                )

    if report.issues:
        logger.debug(
            f"Flow '{flow.id}' has {len(report.errors)} error(s), {len(report.warnings)} warning(s)",
            extra={"flow_id": flow.id, "issues": [str(i) for i in report.issues]},
        )
    return report


def ensure_valid_structure(flow: FlowDefinition, allow_unreachable: bool = False) -> StructureReport:
    """Validate a flow and raise if it cannot be published.

    Raises:
        StructuralError: On any error-level issue, or on unreachable nodes
            unless ``allow_unreachable`` is set
    """
    report = validate_structure(flow)
    blocking = report.issues if not allow_unreachable else report.errors
    if blocking:
        raise StructuralError(
            f"Flow '{flow.id}' failed structural validation with {len(blocking)} issue(s)",
            issues=blocking,
        )
    for warning in report.warnings:
        logger.warning(str(warning), extra={"flow_id": flow.id, "node_id": warning.node_id})
    return report


def next_node(flow: FlowDefinition, current_node_id: str, answers: Mapping[str, Any]) -> str | Terminal:
    """Resolve the node that follows ``current_node_id``.

    Input nodes follow their single transition (or end the flow). Routing
    nodes evaluate their branches against ``answers``, which must already
    include the answer just submitted.

    Raises:
        UnreachableNodeError: ``current_node_id`` is not part of the flow
    """
    node = flow.get_node(current_node_id)
    if node is None:
        raise UnreachableNodeError(
            f"Node '{current_node_id}' does not exist in flow '{flow.id}' v{flow.version}",
            context={"flow_id": flow.id, "node_id": current_node_id},
        )

    if node.config.routing:
        target = evaluate_branches(node.config.route_branches(), answers)
    else:
        outgoing = flow.outgoing(node.id)
        target = outgoing[0].target if outgoing else TERMINAL
    return TERMINAL if target == TERMINAL else target


def _check_branches(
    flow: FlowDefinition,
    node_id: str,
    branches: tuple,
    node_ids: set[str],
    report: StructureReport,
) -> None:
    if not branches:
        report.add("empty_branches", f"Routing node '{node_id}' has no branches", node_id)
        return

    defaults = [i for i, b in enumerate(branches) if b.is_default]
    if not defaults:
        report.add("missing_default", f"Routing node '{node_id}' has no default branch", node_id)
    elif len(defaults) > 1:
        report.add(
            "multiple_defaults",
            f"Routing node '{node_id}' has {len(defaults)} default branches",
            node_id,
        )
    elif defaults[0] != len(branches) - 1:
        report.add(
            "default_not_last",
            f"Default branch of '{node_id}' must be declared after all guarded branches",
            node_id,
        )

    for branch in branches:
        if branch.target != TERMINAL and branch.target not in node_ids:
            report.add(
                "dangling_reference",
                f"Branch of '{node_id}' targets unknown node '{branch.target}'",
                node_id,
            )
        if branch.when is not None:
            for ref in sorted(branch.when.referenced_nodes() - node_ids):
                report.add(
                    "dangling_reference",
                    f"Condition in '{node_id}' references unknown node '{ref}'",
                    node_id,
                )


def _check_unconditional_cycles(flow: FlowDefinition, report: StructureReport) -> None:
    """Report cycles whose nodes all follow a single unguarded transition."""
    successor: dict[str, str] = {}
    for node in flow.nodes:
        if node.config.routing:
            continue
        outgoing = flow.outgoing(node.id)
        if len(outgoing) == 1:
            successor[node.id] = outgoing[0].target

    reported: set[str] = set()
    for start in successor:
        path: list[str] = []
        current: str | None = start
        while current is not None and current in successor and current not in path:
            path.append(current)
            current = successor[current]
        if current is None or current not in path:
            continue
        cycle = path[path.index(current) :]
        if reported.intersection(cycle):
            continue
        reported.update(cycle)
        report.add(
            "unconditional_cycle",
            f"Nodes {' -> '.join([*cycle, cycle[0]])} form a cycle with no conditional exit",
            cycle[0],
        )


def _reachable_from(flow: FlowDefinition, entry: str) -> set[str]:
    adjacency: dict[str, list[str]] = {}
    for edge in flow.edges():
        adjacency.setdefault(edge.source, []).append(edge.target)

    seen = {entry}
    queue = deque([entry])
    while queue:
        for target in adjacency.get(queue.popleft(), []):
            if target not in seen:
                seen.add(target)
                queue.append(target)
    return seen
