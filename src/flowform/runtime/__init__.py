"""Runtime facade over sessions and storage."""

from flowform.runtime.runtime import FlowRuntime

__all__ = ["FlowRuntime"]
