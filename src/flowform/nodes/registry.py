"""Thread-safe registry of node types.

A node type is a (config model, answer validator) pair keyed by a tag.
Adding a new node type means registering one more pair; graph and
session code never special-case tags.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock
from typing import TYPE_CHECKING, Any

from flowform.core.errors import UnknownNodeType
from flowform.nodes.configs import NodeConfig

if TYPE_CHECKING:
    from flowform.flow.models import Node

logger = logging.getLogger(__name__)

AnswerValidator = Callable[["Node", Any], Any]


@dataclass(frozen=True)
class NodeKind:
    """Everything the engine needs to know about one node type."""

    name: str
    config_model: type[NodeConfig]
    validator: AnswerValidator
    answerable: bool = True

    def validate(self, node: "Node", raw_value: Any) -> Any:
        """Validate a raw answer, returning its normalized value."""
        return self.validator(node, raw_value)


_kinds: dict[str, NodeKind] = {}
_kinds_lock = Lock()


class NodeTypeRegistry:
    """
    Thread-safe registry for node types.

    All mutations are protected by a lock so types can be registered
    from plugins while sessions are running.
    """

    @classmethod
    def register(
        cls,
        name: str,
        config_model: type[NodeConfig],
        answerable: bool | None = None,
    ) -> Callable[[AnswerValidator], AnswerValidator]:
        """
        Register a node type with its answer validator.

        Usage:
            @NodeTypeRegistry.register("phone_input", PhoneInputConfig)
            def validate_phone(node: Node, value: Any) -> str:
                ...

        Args:
            name: Type tag used in flow definitions
            config_model: Pydantic model for the node's ``config``
            answerable: Whether respondents submit answers to this type.
                Defaults to True for everything except routing types.

        Returns:
            Decorator function
        """

        def decorator(func: AnswerValidator) -> AnswerValidator:
            kind = NodeKind(
                name=name,
                config_model=config_model,
                validator=func,
                answerable=(not config_model.routing) if answerable is None else answerable,
            )
            with _kinds_lock:
                if name in _kinds:
                    logger.warning(
                        f"Node type '{name}' already registered, overwriting",
                        extra={"node_type": name},
                    )
                _kinds[name] = kind
                logger.debug(f"Registered node type '{name}'", extra={"node_type": name})
            return func

        return decorator

    @classmethod
    def get(cls, name: Any) -> NodeKind:
        """
        Get a node type by tag.

        Raises:
            UnknownNodeType: If the tag is not registered
        """
        with _kinds_lock:
            kind = _kinds.get(name) if isinstance(name, str) else None
            if kind is None:
                raise UnknownNodeType(
                    f"Unknown node type '{name}'. Available: {sorted(_kinds)}",
                    context={"node_type": name},
                )
            return kind

    @classmethod
    def list_types(cls) -> list[str]:
        with _kinds_lock:
            return list(_kinds.keys())

    @classmethod
    def is_registered(cls, name: str) -> bool:
        with _kinds_lock:
            return name in _kinds

    @classmethod
    def unregister(cls, name: str) -> None:
        """
        Remove a node type.

        Warning: This is primarily for testing. Flows that use the type
        can no longer be loaded.
        """
        with _kinds_lock:
            _kinds.pop(name, None)
            logger.debug(f"Unregistered node type '{name}'", extra={"node_type": name})
