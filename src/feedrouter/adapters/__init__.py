"""
Local collaborator implementations.

File-backed term source and worker inventory, an in-memory event store,
and a dummy feed for development runs without upstream credentials.
"""

from feedrouter.adapters.dummy_feed import DummyFeedHandle, DummyFeedSource
from feedrouter.adapters.files import YamlTermSource, YamlWorkerInventory
from feedrouter.adapters.memory import (
    DuplicateEventError,
    InMemoryEventStore,
    InMemoryTermSource,
    StaticWorkerInventory,
)

__all__ = [
    "DummyFeedHandle",
    "DummyFeedSource",
    "YamlTermSource",
    "YamlWorkerInventory",
    "DuplicateEventError",
    "InMemoryEventStore",
    "InMemoryTermSource",
    "StaticWorkerInventory",
]
