"""FlowForm - dynamic flow definition and response engine.

Operators author flows of typed input prompts and conditional routing
nodes; respondents walk a published flow version one answer at a time.

Quick start:
    from flowform import FlowLoader, FlowRuntime

    config = FlowLoader.load("flows/signup.yaml")
    runtime = FlowRuntime(settings=config.settings)
    await runtime.publish_all(config)

    session = await runtime.start("signup")
    result = await runtime.submit_answer(session.id, session.current_node_id, "Ada")
"""

from flowform.__version__ import __version__
from flowform.config import FlowFormConfig, FlowLoader, Settings
from flowform.core.constants import TERMINAL, SessionStatus
from flowform.core.errors import (
    AuthoringError,
    CycleDetected,
    EngineInvariantError,
    FlowFormError,
    InputError,
    OutOfOrderSubmission,
    PersistenceError,
    StructuralError,
    UnknownNodeType,
    ValidationError,
)
from flowform.flow import FlowDefinition, Node, Transition, next_node, validate_structure
from flowform.nodes import FileHandle, NodeTypeRegistry
from flowform.runtime import FlowRuntime
from flowform.session import Answer, ResponseSession, SubmitResult

__all__ = [
    "__version__",
    # High-level API
    "FlowRuntime",
    "FlowLoader",
    "FlowFormConfig",
    "Settings",
    # Model
    "FlowDefinition",
    "Node",
    "Transition",
    "NodeTypeRegistry",
    "FileHandle",
    "Answer",
    "ResponseSession",
    "SubmitResult",
    "SessionStatus",
    "TERMINAL",
    "validate_structure",
    "next_node",
    # Errors
    "FlowFormError",
    "AuthoringError",
    "StructuralError",
    "UnknownNodeType",
    "InputError",
    "ValidationError",
    "OutOfOrderSubmission",
    "EngineInvariantError",
    "CycleDetected",
    "PersistenceError",
]
