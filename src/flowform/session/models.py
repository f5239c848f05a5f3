"""Response session state models."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from flowform.core.constants import SessionStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Answer(BaseModel):
    """A validated answer to one node."""

    model_config = ConfigDict(frozen=True)

    node_id: str
    value: Any = Field(description="Normalized value, None when skipped")
    submitted_at: datetime = Field(default_factory=utcnow)


class ResponseSession(BaseModel):
    """One respondent's walk through a published flow version.

    Sessions are immutable; every transition returns a new instance.
    ``visited`` is the full node trace, routing nodes included, and is
    what the loop policy checks against.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    flow_id: str
    flow_version: int
    current_node_id: str | None = None
    answers: tuple[Answer, ...] = ()
    visited: tuple[str, ...] = ()
    status: SessionStatus = SessionStatus.in_progress
    abandon_reason: str | None = None
    started_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.status == SessionStatus.in_progress

    def answer_map(self) -> dict[str, Any]:
        """Node id -> value, in traversal order."""
        return {answer.node_id: answer.value for answer in self.answers}

    def get_answer(self, node_id: str) -> Answer | None:
        for answer in self.answers:
            if answer.node_id == node_id:
                return answer
        return None


class SubmitResult(BaseModel):
    """Outcome of a successful ``submit_answer``."""

    model_config = ConfigDict(frozen=True)

    session: ResponseSession
    answer: Answer
    next_node_id: str | None = Field(description="None when the session completed")

    @property
    def completed(self) -> bool:
        return self.session.status == SessionStatus.completed
