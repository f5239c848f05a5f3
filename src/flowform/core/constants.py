"""Core constants and enums."""

from enum import Enum


class SessionStatus(str, Enum):
    """Lifecycle state of a response session."""

    in_progress = "in_progress"
    completed = "completed"
    abandoned = "abandoned"


class Terminal(str, Enum):
    """Sentinel returned by routing when a flow has no further node."""

    END = "__end__"

    def __repr__(self) -> str:
        return "TERMINAL"


TERMINAL = Terminal.END
