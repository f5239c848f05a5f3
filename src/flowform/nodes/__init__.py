"""Node types: configuration models, conditions and answer validators."""

# Import validators to auto-register the built-in node types
from flowform.nodes import validators  # noqa: F401
from flowform.nodes.registry import NodeKind, NodeTypeRegistry
from flowform.nodes.validators import FileHandle

__all__ = ["NodeKind", "NodeTypeRegistry", "FileHandle"]
