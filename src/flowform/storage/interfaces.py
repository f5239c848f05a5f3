"""Storage collaborator interfaces (Protocols).

The engine only reads flows and only appends answers and session
snapshots. Implementations must make ``append_answer`` an upsert on
``(session_id, node_id)`` so a retried submit never duplicates an answer
and the latest value wins.
"""

from typing import NamedTuple, Protocol

from flowform.flow.models import FlowDefinition
from flowform.session.models import Answer, ResponseSession


class FlowRef(NamedTuple):
    """Identifies one immutable published flow version."""

    flow_id: str
    version: int


class FlowStore(Protocol):
    """Interface for published flow storage."""

    async def get(self, flow_id: str, version: int | None = None) -> FlowDefinition:
        """Get a flow version, or the latest one when ``version`` is None.

        Raises:
            FlowNotFoundError: Unknown flow or version
        """
        ...

    async def put(self, flow: FlowDefinition) -> FlowRef:
        """Publish a flow as a new immutable version.

        Raises:
            StructuralError: The flow fails structural validation
        """
        ...

    async def versions(self, flow_id: str) -> list[int]:
        """List published versions of a flow, oldest first."""
        ...


class ResponseStore(Protocol):
    """Interface for response session storage."""

    async def append_answer(self, session_id: str, answer: Answer) -> None:
        """Record an answer, one per node id.

        A replay for a node id that is already stored replaces it, so a
        retried submit leaves the log matching the saved session.
        """
        ...

    async def save_session_state(self, session: ResponseSession) -> None:
        """Persist the latest snapshot of a session."""
        ...

    async def load_session(self, session_id: str) -> ResponseSession:
        """Load a session snapshot.

        Raises:
            SessionNotFoundError: Unknown session
        """
        ...

    async def list_answers(self, session_id: str) -> list[Answer]:
        """Stored answers of a session, in submission order."""
        ...
