"""Integration tests for FlowRuntime over the in-memory stores"""

import asyncio

import pytest

from flowform.config import FlowLoader
from flowform.core.constants import SessionStatus
from flowform.core.errors import (
    CycleDetected,
    InvalidFormat,
    OutOfOrderSubmission,
    PersistenceError,
    SessionClosedError,
    SessionNotFoundError,
    StructuralError,
)
from flowform.runtime import FlowRuntime
from flowform.session.models import Answer, ResponseSession
from flowform.storage import InMemoryFlowStore, InMemoryResponseStore
from tests.factories import make_flow


class FlakyResponseStore(InMemoryResponseStore):
    """Fails the next ``failures`` session saves."""

    def __init__(self, failures: int = 0) -> None:
        super().__init__()
        self.failures = failures

    async def save_session_state(self, session: ResponseSession) -> None:
        if self.failures:
            self.failures -= 1
            raise ConnectionError("database unavailable")
        await super().save_session_state(session)


class SlowResponseStore(InMemoryResponseStore):
    """Yields to the event loop on every write."""

    async def append_answer(self, session_id: str, answer: Answer) -> None:
        await asyncio.sleep(0.01)
        await super().append_answer(session_id, answer)


def _loop_flow():
    return make_flow(
        nodes=[
            {"id": "a", "type": "text_input"},
            {
                "id": "route",
                "type": "conditional",
                "config": {
                    "branches": [
                        {"when": {"op": "equals", "node": "a", "value": "again"}, "target": "a"},
                        {"target": "done"},
                    ]
                },
            },
            {"id": "done", "type": "text_input"},
        ],
        transitions=[("a", "route")],
        id="loop",
    )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_linear_round_trip(runtime, linear_flow):
    """Test a full walk persists both answers in order and completes"""
    # Arrange
    await runtime.publish(linear_flow)
    session = await runtime.start("test_flow")

    # Act
    await runtime.submit_answer(session.id, "A", "hi")
    result = await runtime.submit_answer(session.id, "B", "x@y.com")

    # Assert
    assert result.completed
    stored = await runtime.get_session(session.id)
    assert stored.status == SessionStatus.completed
    assert [a.node_id for a in await runtime.answers(session.id)] == ["A", "B"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_input_error_keeps_stored_session(runtime, linear_flow):
    await runtime.publish(linear_flow)
    session = await runtime.start("test_flow")

    with pytest.raises(InvalidFormat):
        await runtime.submit_answer(session.id, "A", 123)
    with pytest.raises(OutOfOrderSubmission):
        await runtime.submit_answer(session.id, "B", "x@y.com")

    assert await runtime.get_session(session.id) == session
    assert await runtime.answers(session.id) == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_session_stays_on_its_flow_version(runtime, age_flow):
    """Test publishing a new version does not affect running sessions"""
    # Arrange
    await runtime.publish(age_flow)
    old_session = await runtime.start("age_flow")
    edited = age_flow.model_copy(
        update={"nodes": age_flow.nodes[:1], "transitions": ()}
    )
    await runtime.publish(edited)

    # Act
    old_result = await runtime.submit_answer(old_session.id, "age", 30)
    new_session = await runtime.start("age_flow")
    new_result = await runtime.submit_answer(new_session.id, "age", 30)

    # Assert
    assert old_session.flow_version == 1
    assert old_result.next_node_id == "adult"
    assert new_session.flow_version == 2
    assert new_result.completed


@pytest.mark.asyncio
@pytest.mark.integration
async def test_start_pinned_version(runtime, linear_flow):
    await runtime.publish(linear_flow)
    await runtime.publish(linear_flow)

    session = await runtime.start("test_flow", version=1)

    assert session.flow_version == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_persistence_failure_is_retry_safe(linear_flow):
    """Test a failed save leaves the stored session authoritative"""
    # Arrange
    store = FlakyResponseStore()
    runtime = FlowRuntime(response_store=store)
    await runtime.publish(linear_flow)
    session = await runtime.start("test_flow")
    store.failures = 1

    # Act
    with pytest.raises(PersistenceError) as exc_info:
        await runtime.submit_answer(session.id, "A", "hi")

    # Assert
    assert isinstance(exc_info.value.__cause__, ConnectionError)
    assert await runtime.get_session(session.id) == session

    # Retry succeeds and the answer appended before the failure is not duplicated
    result = await runtime.submit_answer(session.id, "A", "hi")
    assert result.next_node_id == "B"
    assert [a.node_id for a in await runtime.answers(session.id)] == ["A"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_retry_with_different_value_keeps_log_and_session_in_sync(linear_flow):
    """Test a retry after a failed save stores the retried value in both places"""
    # Arrange
    store = FlakyResponseStore()
    runtime = FlowRuntime(response_store=store)
    await runtime.publish(linear_flow)
    session = await runtime.start("test_flow")
    store.failures = 1
    with pytest.raises(PersistenceError):
        await runtime.submit_answer(session.id, "A", "hi")

    # Act
    result = await runtime.submit_answer(session.id, "A", "hello")

    # Assert
    stored_session = await runtime.get_session(session.id)
    assert result.session.answer_map() == {"A": "hello"}
    assert stored_session.answer_map() == {"A": "hello"}
    assert [(a.node_id, a.value) for a in await runtime.answers(session.id)] == [("A", "hello")]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_flow_store_failure_is_persistence_error(linear_flow):
    class BrokenFlowStore(InMemoryFlowStore):
        async def get(self, flow_id, version=None):
            raise TimeoutError("flow store timed out")

    runtime = FlowRuntime(flow_store=BrokenFlowStore())
    await runtime.publish(linear_flow)

    with pytest.raises(PersistenceError, match="load flow"):
        await runtime.start("test_flow")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cycle_forces_abandon(runtime):
    """Test an engine invariant violation abandons and persists the session"""
    # Arrange
    await runtime.publish(_loop_flow())
    session = await runtime.start("loop")

    # Act
    with pytest.raises(CycleDetected):
        await runtime.submit_answer(session.id, "a", "again")

    # Assert
    stored = await runtime.get_session(session.id)
    assert stored.status == SessionStatus.abandoned
    assert stored.abandon_reason == "cycle_detected"
    with pytest.raises(SessionClosedError):
        await runtime.submit_answer(session.id, "a", "done")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_concurrent_submits_are_serialized(linear_flow):
    """Test two simultaneous submits for one node apply exactly once"""
    # Arrange
    runtime = FlowRuntime(response_store=SlowResponseStore())
    await runtime.publish(linear_flow)
    session = await runtime.start("test_flow")

    # Act
    results = await asyncio.gather(
        runtime.submit_answer(session.id, "A", "first"),
        runtime.submit_answer(session.id, "A", "second"),
        return_exceptions=True,
    )

    # Assert
    errors = [r for r in results if isinstance(r, Exception)]
    assert len(errors) == 1
    assert isinstance(errors[0], OutOfOrderSubmission)
    stored = await runtime.get_session(session.id)
    assert stored.current_node_id == "B"
    assert len(stored.answers) == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_independent_sessions(runtime, linear_flow):
    await runtime.publish(linear_flow)
    first = await runtime.start("test_flow")
    second = await runtime.start("test_flow")

    await asyncio.gather(
        runtime.submit_answer(first.id, "A", "one"),
        runtime.submit_answer(second.id, "A", "two"),
    )

    assert (await runtime.get_session(first.id)).answer_map() == {"A": "one"}
    assert (await runtime.get_session(second.id)).answer_map() == {"A": "two"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_abandon(runtime, linear_flow):
    await runtime.publish(linear_flow)
    session = await runtime.start("test_flow")

    abandoned = await runtime.abandon(session.id, reason="inactivity")

    assert abandoned.status == SessionStatus.abandoned
    assert (await runtime.get_session(session.id)).abandon_reason == "inactivity"
    with pytest.raises(SessionClosedError):
        await runtime.abandon(session.id)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_session(runtime):
    with pytest.raises(SessionNotFoundError):
        await runtime.submit_answer("missing", "A", "hi")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_publish_rejects_invalid_flow(runtime):
    flow = make_flow(nodes=[{"id": "a", "type": "text_input"}], transitions=[("a", "a")])

    with pytest.raises(StructuralError) as exc_info:
        await runtime.publish(flow)

    assert [i.kind for i in exc_info.value.issues] == ["unconditional_cycle"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_publish_all_from_document(tmp_path):
    """Test a loaded document can be published and walked end to end"""
    # Arrange
    path = tmp_path / "flows.yaml"
    path.write_text(
        """
settings:
  structure:
    allow_unreachable: true
flows:
  - id: feedback
    entry: rating
    nodes:
      - id: rating
        type: single_choice
        config: {options: [good, bad]}
      - id: why
        type: conditional
        config:
          branches:
            - when: {op: equals, node: rating, value: bad}
              target: complaint
            - target: __end__
      - {id: complaint, type: text_input}
      - {id: legacy, type: text_input}
    transitions:
      - {source: rating, target: why}
"""
    )
    config = FlowLoader.load(path)
    runtime = FlowRuntime(settings=config.settings)

    # Act
    refs = await runtime.publish_all(config)
    happy = await runtime.start("feedback")
    unhappy = await runtime.start("feedback")
    happy_result = await runtime.submit_answer(happy.id, "rating", "good")
    unhappy_result = await runtime.submit_answer(unhappy.id, "rating", "bad")

    # Assert
    assert [(r.flow_id, r.version) for r in refs] == [("feedback", 1)]
    assert happy_result.completed
    assert unhappy_result.next_node_id == "complaint"
