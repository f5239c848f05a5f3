"""Flow runtime: drives response sessions against the storage collaborators.

The runtime is the only place where the pure session state machine meets
I/O. For each call it:

1. takes the per-session lock,
2. reloads the session and the exact flow version it started on,
3. runs the pure transition,
4. persists the result (answer first, then the session snapshot).

If persistence fails the new state is discarded and the previously stored
session stays authoritative; a retry of the same submit is safe because
answer appends upsert on ``(session_id, node_id)``.
"""

import logging
from collections.abc import Awaitable
from typing import Any, TypeVar

from flowform.config.models import FlowFormConfig
from flowform.config.settings import Settings
from flowform.core.errors import (
    EngineInvariantError,
    FlowFormError,
    InputError,
    PersistenceError,
)
from flowform.flow.models import FlowDefinition
from flowform.session.locks import SessionLockRegistry
from flowform.session.machine import abandon_session, start_session, submit_answer
from flowform.session.models import Answer, ResponseSession, SubmitResult
from flowform.storage.interfaces import FlowRef, FlowStore, ResponseStore
from flowform.storage.memory import InMemoryFlowStore, InMemoryResponseStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FlowRuntime:
    """Entry point for publishing flows and running response sessions.

    Usage:
        runtime = FlowRuntime()
        await runtime.publish(flow)
        session = await runtime.start("signup")
        result = await runtime.submit_answer(session.id, "email", "a@b.com")
    """

    def __init__(
        self,
        flow_store: FlowStore | None = None,
        response_store: ResponseStore | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.flow_store: FlowStore = flow_store or InMemoryFlowStore(
            allow_unreachable=self.settings.structure.allow_unreachable
        )
        self.response_store: ResponseStore = response_store or InMemoryResponseStore()
        self._locks = SessionLockRegistry()

    async def publish(self, flow: FlowDefinition) -> FlowRef:
        """Publish a flow as a new immutable version."""
        return await self.flow_store.put(flow)

    async def publish_all(self, config: FlowFormConfig) -> list[FlowRef]:
        """Publish every flow of a loaded flow document."""
        return [await self.publish(flow) for flow in config.flows]

    async def start(self, flow_id: str, version: int | None = None) -> ResponseSession:
        """Open a session on a flow version (latest when ``version`` is None)."""
        flow = await self._persist("load flow", self.flow_store.get(flow_id, version))
        session = start_session(flow)
        async with self._locks.hold(session.id):
            await self._persist("save session", self.response_store.save_session_state(session))
        logger.info(
            f"Started session '{session.id}' on flow '{flow.id}' v{flow.version}",
            extra={"session_id": session.id, "flow_id": flow.id, "flow_version": flow.version},
        )
        return session

    async def submit_answer(self, session_id: str, node_id: str, raw_value: Any) -> SubmitResult:
        """Submit an answer for the session's current node.

        Raises:
            InputError: Rejected input; nothing was changed
            EngineInvariantError: The flow misbehaved; the session is abandoned
            PersistenceError: Storage failed; nothing was applied
        """
        async with self._locks.hold(session_id):
            session = await self._load(session_id)
            flow = await self._persist(
                "load flow", self.flow_store.get(session.flow_id, session.flow_version)
            )

            try:
                result = submit_answer(flow, session, node_id, raw_value)
            except InputError as e:
                logger.debug(
                    f"Rejected answer for '{node_id}': {e.message}",
                    extra={"session_id": session_id, "node_id": node_id, "error_code": e.code},
                )
                raise
            except EngineInvariantError as e:
                await self._force_abandon(session, e)
                raise

            await self._persist(
                "append answer", self.response_store.append_answer(session_id, result.answer)
            )
            await self._persist(
                "save session", self.response_store.save_session_state(result.session)
            )

        if result.completed:
            logger.info(
                f"Session '{session_id}' completed with {len(result.session.answers)} answer(s)",
                extra={"session_id": session_id, "flow_id": session.flow_id},
            )
        return result

    async def abandon(self, session_id: str, reason: str | None = None) -> ResponseSession:
        """Abandon an in-progress session, e.g. after an inactivity timeout."""
        async with self._locks.hold(session_id):
            session = await self._load(session_id)
            abandoned = abandon_session(session, reason)
            await self._persist("save session", self.response_store.save_session_state(abandoned))
        logger.info(
            f"Session '{session_id}' abandoned",
            extra={"session_id": session_id, "reason": reason},
        )
        return abandoned

    async def get_session(self, session_id: str) -> ResponseSession:
        return await self._load(session_id)

    async def answers(self, session_id: str) -> list[Answer]:
        return await self._persist("list answers", self.response_store.list_answers(session_id))

    async def _load(self, session_id: str) -> ResponseSession:
        return await self._persist("load session", self.response_store.load_session(session_id))

    async def _force_abandon(self, session: ResponseSession, error: EngineInvariantError) -> None:
        logger.error(
            f"Session '{session.id}' hit an engine invariant violation: {error.message}",
            extra={
                "session_id": session.id,
                "flow_id": session.flow_id,
                "flow_version": session.flow_version,
                "error_code": error.code,
            },
        )
        abandoned = abandon_session(session, reason=error.code)
        try:
            await self._persist("save session", self.response_store.save_session_state(abandoned))
        except PersistenceError:
            logger.exception(f"Could not persist abandonment of session '{session.id}'")

    async def _persist(self, action: str, call: Awaitable[T]) -> T:
        """Await a storage call, normalizing unexpected failures to PersistenceError."""
        try:
            return await call
        except FlowFormError:
            raise
        except Exception as e:
            logger.error(
                f"Storage failed to {action}: {e}",
                extra={"action": action, "error_type": type(e).__name__},
            )
            raise PersistenceError(f"Failed to {action}: {e}", context={"action": action}) from e
