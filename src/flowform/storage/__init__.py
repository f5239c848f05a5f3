"""Storage collaborators for flows and response sessions."""

from flowform.storage.interfaces import FlowRef, FlowStore, ResponseStore
from flowform.storage.memory import InMemoryFlowStore, InMemoryResponseStore

__all__ = [
    "FlowRef",
    "FlowStore",
    "ResponseStore",
    "InMemoryFlowStore",
    "InMemoryResponseStore",
]
