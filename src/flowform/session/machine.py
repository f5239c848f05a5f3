"""Response session state machine.

Pure transition functions: each takes a flow and a session and either
returns a new session or raises. A failed call never produces state, so
the caller's session is unchanged. Persistence is the runtime's job.

    in_progress --(reach end)--> completed
    in_progress --(abandon)----> abandoned
"""

import logging
import uuid
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from flowform.core.constants import TERMINAL, SessionStatus
from flowform.core.errors import (
    CycleDetected,
    InvalidNodeForAnswer,
    OutOfOrderSubmission,
    SessionClosedError,
    UnreachableNodeError,
)
from flowform.flow.graph import next_node
from flowform.flow.models import FlowDefinition, Node
from flowform.session.models import Answer, ResponseSession, SubmitResult, utcnow

logger = logging.getLogger(__name__)


def start_session(flow: FlowDefinition, session_id: str | None = None) -> ResponseSession:
    """Open a session at the flow's entry node.

    Routing nodes at the entry are resolved immediately with no answers.
    """
    now = utcnow()
    session = ResponseSession(
        id=session_id or str(uuid.uuid4()),
        flow_id=flow.id,
        flow_version=flow.version,
        started_at=now,
        updated_at=now,
    )
    _require_node(flow, flow.entry)
    current, visited = _settle(flow, flow.entry, {}, (flow.entry,), session)
    started = _arrive(session, current, visited, now)
    logger.debug(
        f"Session '{started.id}' opened at '{started.current_node_id}'",
        extra={"session_id": started.id, "flow_id": flow.id, "flow_version": flow.version},
    )
    return started


def submit_answer(
    flow: FlowDefinition,
    session: ResponseSession,
    node_id: str,
    raw_value: Any,
) -> SubmitResult:
    """Validate an answer for the current node and advance the session.

    Raises:
        SessionClosedError: The session is completed or abandoned
        OutOfOrderSubmission: ``node_id`` is not the current node
        InvalidNodeForAnswer: The node routes automatically
        ValidationError: The value failed the node's validator
        CycleDetected: Advancing would revisit a node
        UnreachableNodeError: Routing points outside the flow
    """
    if not session.is_open:
        raise SessionClosedError(
            f"Session '{session.id}' is {session.status.value}",
            context={"session_id": session.id, "status": session.status.value},
        )
    if node_id != session.current_node_id:
        raise OutOfOrderSubmission(
            f"Expected an answer for '{session.current_node_id}', got '{node_id}'",
            context={
                "session_id": session.id,
                "expected": session.current_node_id,
                "received": node_id,
            },
        )

    node = _require_node(flow, node_id)
    kind = node.kind
    if not kind.answerable:
        raise InvalidNodeForAnswer(f"Node '{node_id}' cannot be answered", node_id=node_id)
    value = kind.validate(node, raw_value)

    now = utcnow()
    answer = Answer(node_id=node_id, value=value, submitted_at=now)
    answers = {**session.answer_map(), node_id: value}

    target = next_node(flow, node_id, answers)
    visited = session.visited
    if target != TERMINAL:
        visited = _visit(session, visited, target)
        target, visited = _settle(flow, target, answers, visited, session)

    updated = _arrive(
        session.model_copy(update={"answers": (*session.answers, answer)}),
        target,
        visited,
        now,
    )
    logger.debug(
        f"Session '{session.id}' answered '{node_id}' -> '{updated.current_node_id or TERMINAL.value}'",
        extra={"session_id": session.id, "node_id": node_id, "status": updated.status.value},
    )
    return SubmitResult(session=updated, answer=answer, next_node_id=updated.current_node_id)


def abandon_session(session: ResponseSession, reason: str | None = None) -> ResponseSession:
    """Close a session without completing it.

    Raises:
        SessionClosedError: The session is already completed or abandoned
    """
    if not session.is_open:
        raise SessionClosedError(
            f"Session '{session.id}' is already {session.status.value}",
            context={"session_id": session.id, "status": session.status.value},
        )
    return session.model_copy(
        update={
            "status": SessionStatus.abandoned,
            "abandon_reason": reason,
            "updated_at": utcnow(),
        }
    )


def _settle(
    flow: FlowDefinition,
    node_id: str,
    answers: Mapping[str, Any],
    visited: tuple[str, ...],
    session: ResponseSession | None = None,
) -> tuple[Any, tuple[str, ...]]:
    """Auto-advance through routing nodes until an answerable node or the end."""
    current: Any = node_id
    while current != TERMINAL:
        node = _require_node(flow, current)
        if node.kind.answerable:
            break
        target = next_node(flow, current, answers)
        if target != TERMINAL:
            visited = _visit(session, visited, target)
        current = target
    return current, visited


def _visit(session: ResponseSession | None, visited: tuple[str, ...], target: str) -> tuple[str, ...]:
    if target in visited:
        raise CycleDetected(
            f"Node '{target}' was already visited in this session",
            context={
                "session_id": session.id if session else None,
                "node_id": target,
                "visited": list(visited),
            },
        )
    return (*visited, target)


def _require_node(flow: FlowDefinition, node_id: str) -> Node:
    node = flow.get_node(node_id)
    if node is None:
        raise UnreachableNodeError(
            f"Node '{node_id}' does not exist in flow '{flow.id}' v{flow.version}",
            context={"flow_id": flow.id, "node_id": node_id},
        )
    return node


def _arrive(
    session: ResponseSession, target: Any, visited: tuple[str, ...], now: datetime
) -> ResponseSession:
    if target == TERMINAL:
        return session.model_copy(
            update={
                "current_node_id": None,
                "visited": visited,
                "status": SessionStatus.completed,
                "updated_at": now,
                "completed_at": now,
            }
        )
    return session.model_copy(
        update={"current_node_id": target, "visited": visited, "updated_at": now}
    )
