"""Response sessions: state models and the pure state machine."""

from flowform.session.locks import SessionLockRegistry
from flowform.session.machine import abandon_session, start_session, submit_answer
from flowform.session.models import Answer, ResponseSession, SubmitResult

__all__ = [
    "Answer",
    "ResponseSession",
    "SubmitResult",
    "SessionLockRegistry",
    "start_session",
    "submit_answer",
    "abandon_session",
]
