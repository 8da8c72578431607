"""
Persistence module - Snapshots of the universe.

The engine treats the persisted format as opaque:
- serialize / deserialize: export strings
- LocalSnapshotStore: the auto-snapshot (save, load, clear)

A corrupt snapshot raises SnapshotCorruptionError so the caller can
prompt the user instead of silently starting over.
"""

from .codec import (
    SnapshotCorruptionError,
    serialize,
    deserialize,
    state_to_dict,
    state_from_dict,
    state_to_json,
    state_from_json,
)
from .store import LocalSnapshotStore, MemorySnapshotStore, StorageUnavailableError

__all__ = [
    "SnapshotCorruptionError",
    "serialize",
    "deserialize",
    "state_to_dict",
    "state_from_dict",
    "state_to_json",
    "state_from_json",
    "LocalSnapshotStore",
    "MemorySnapshotStore",
    "StorageUnavailableError",
]
