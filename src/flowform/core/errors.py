"""FlowForm error hierarchy.

Errors fall into four families:

- AuthoringError: a flow definition is broken. Raised when loading or
  publishing a flow, never while a session is running.
- InputError: the respondent sent something unacceptable. Recoverable,
  the session is left untouched.
- EngineInvariantError: a published flow misbehaved at runtime. Fatal to
  the session, which is forced to ``abandoned``.
- PersistenceError: a storage collaborator failed.
"""

from typing import Any


class FlowFormError(Exception):
    """Base class for all FlowForm errors."""

    code = "flowform_error"

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


# =============================================================================
# AUTHORING
# =============================================================================


class AuthoringError(FlowFormError):
    """Raised when a flow definition cannot be published."""

    code = "authoring_error"


class UnknownNodeType(AuthoringError):
    """Raised when a node declares a type that is not registered."""

    code = "unknown_node_type"


class ConfigError(AuthoringError):
    """Raised when a flow document is invalid."""

    code = "config_error"


class StructuralError(AuthoringError):
    """Raised when a flow graph fails structural validation."""

    code = "structural_error"

    def __init__(self, message: str, issues: list[Any] | None = None):
        super().__init__(message, context={"issues": [str(i) for i in issues or []]})
        self.issues = list(issues or [])


# =============================================================================
# INPUT
# =============================================================================


class InputError(FlowFormError):
    """Recoverable error caused by respondent input."""

    code = "input_error"


class ValidationError(InputError):
    """Raised when an answer fails its node's validator."""

    code = "validation_error"

    def __init__(self, message: str, node_id: str | None = None, **context: Any):
        super().__init__(message, context={"node_id": node_id, **context})
        self.node_id = node_id


class MissingRequiredAnswer(ValidationError):
    code = "missing_required_answer"


class InvalidFormat(ValidationError):
    code = "invalid_format"


class OutOfRange(ValidationError):
    code = "out_of_range"


class NotANumber(ValidationError):
    code = "not_a_number"


class InvalidOption(ValidationError):
    code = "invalid_option"


class InvalidDate(ValidationError):
    code = "invalid_date"


class FileConstraintViolation(ValidationError):
    code = "file_constraint_violation"


class InvalidNodeForAnswer(ValidationError):
    """Raised when an answer targets a node respondents cannot answer."""

    code = "invalid_node_for_answer"


class OutOfOrderSubmission(InputError):
    """Raised when an answer is not for the session's current node."""

    code = "out_of_order_submission"


class SessionClosedError(OutOfOrderSubmission):
    """Raised when submitting to a completed or abandoned session.

    A closed session has no current node, so every submission is out of order.
    """

    code = "session_closed"


# =============================================================================
# ENGINE INVARIANTS
# =============================================================================


class EngineInvariantError(FlowFormError):
    """A published flow misbehaved at runtime."""

    code = "engine_invariant"


class CycleDetected(EngineInvariantError):
    """Raised when a session would visit the same node twice."""

    code = "cycle_detected"


class UnreachableNodeError(EngineInvariantError):
    """Raised when routing points at a node the flow does not contain."""

    code = "unreachable_node"


class UnresolvableBranchError(EngineInvariantError):
    """Raised when no branch of a conditional node matched and no default exists."""

    code = "unresolvable_branch"


# =============================================================================
# STORAGE
# =============================================================================


class PersistenceError(FlowFormError):
    """Raised when a storage collaborator fails."""

    code = "persistence_error"


class FlowNotFoundError(FlowFormError):
    """Raised when a flow (or flow version) does not exist."""

    code = "flow_not_found"


class SessionNotFoundError(FlowFormError):
    """Raised when a response session does not exist."""

    code = "session_not_found"
