"""In-memory storage collaborators.

Suitable for tests, the CLI and single-process deployments. Both stores
guard their dicts with a lock so they can be shared across threads.
"""

import logging
from threading import Lock

from flowform.core.errors import FlowNotFoundError, SessionNotFoundError
from flowform.flow.graph import ensure_valid_structure
from flowform.flow.models import FlowDefinition
from flowform.session.models import Answer, ResponseSession
from flowform.storage.interfaces import FlowRef

logger = logging.getLogger(__name__)


class InMemoryFlowStore:
    """Versioned store of immutable flow snapshots.

    Every ``put`` validates the flow and publishes it under the next
    version number; earlier versions stay readable for running sessions.
    """

    def __init__(self, allow_unreachable: bool = False) -> None:
        self.allow_unreachable = allow_unreachable
        self._flows: dict[str, dict[int, FlowDefinition]] = {}
        self._lock = Lock()

    async def get(self, flow_id: str, version: int | None = None) -> FlowDefinition:
        with self._lock:
            versions = self._flows.get(flow_id)
            if not versions:
                raise FlowNotFoundError(f"Flow '{flow_id}' not found", context={"flow_id": flow_id})
            if version is None:
                version = max(versions)
            flow = versions.get(version)
        if flow is None:
            raise FlowNotFoundError(
                f"Flow '{flow_id}' has no version {version}",
                context={"flow_id": flow_id, "version": version},
            )
        return flow

    async def put(self, flow: FlowDefinition) -> FlowRef:
        ensure_valid_structure(flow, allow_unreachable=self.allow_unreachable)
        with self._lock:
            versions = self._flows.setdefault(flow.id, {})
            version = max(versions, default=0) + 1
            versions[version] = flow.model_copy(update={"version": version})
        logger.info(
            f"Published flow '{flow.id}' v{version}",
            extra={"flow_id": flow.id, "version": version},
        )
        return FlowRef(flow.id, version)

    async def versions(self, flow_id: str) -> list[int]:
        with self._lock:
            return sorted(self._flows.get(flow_id, {}))


class InMemoryResponseStore:
    """Session snapshots plus an answer log keyed by node id."""

    def __init__(self) -> None:
        self._sessions: dict[str, ResponseSession] = {}
        self._answers: dict[str, dict[str, Answer]] = {}
        self._lock = Lock()

    async def append_answer(self, session_id: str, answer: Answer) -> None:
        with self._lock:
            answers = self._answers.setdefault(session_id, {})
            previous = answers.get(answer.node_id)
            if previous is not None and previous.value != answer.value:
                logger.debug(
                    f"Replacing stored answer for '{answer.node_id}' with a retried value",
                    extra={"session_id": session_id, "node_id": answer.node_id},
                )
            # Keeps its original position, so the log stays in submission order
            answers[answer.node_id] = answer

    async def save_session_state(self, session: ResponseSession) -> None:
        with self._lock:
            self._sessions[session.id] = session

    async def load_session(self, session_id: str) -> ResponseSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(
                f"Session '{session_id}' not found", context={"session_id": session_id}
            )
        return session

    async def list_answers(self, session_id: str) -> list[Answer]:
        with self._lock:
            return list(self._answers.get(session_id, {}).values())
