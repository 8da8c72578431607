"""
Snapshot Store - Local auto-snapshot of the running universe.

The store:
- Keeps one snapshot file on local disk (plain JSON)
- Writes atomically (temp file + rename)
- Never stops the engine: write failures are logged and reported
  through the return value, the game keeps running in memory
- Distinguishes "no snapshot" (None) from "unreadable snapshot"
  (SnapshotCorruptionError)
"""

from __future__ import annotations
import logging
import os
from pathlib import Path

from ..engine_core.state import UniverseState
from .codec import state_from_json, state_to_json


logger = logging.getLogger(__name__)


class StorageUnavailableError(OSError):
    """Raised internally when the snapshot location cannot be written."""


class LocalSnapshotStore:
    """
    File-based auto-snapshot store.

    Usage:
        store = LocalSnapshotStore("~/.idleverse/save.json")

        state = store.load()
        if state is None:
            state = initial_state()

        store.save(state)
    """

    def __init__(self, path: str | Path | None = None):
        if path is None:
            path = Path.home() / ".idleverse" / "save.json"
        self.path = Path(path).expanduser()

    def save(self, state: UniverseState) -> bool:
        """
        Write the snapshot.

        Returns False (and logs) if storage is unavailable.
        """
        try:
            self._write(state_to_json(state))
        except StorageUnavailableError:
            logger.warning("Snapshot not saved to %s", self.path, exc_info=True)
            return False
        return True

    def load(self) -> UniverseState | None:
        """
        Read the snapshot.

        Returns None if there is none.

        Raises:
            SnapshotCorruptionError: if a snapshot exists but is unreadable
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError:
            logger.warning("Snapshot at %s could not be read", self.path, exc_info=True)
            return None
        return state_from_json(text)

    def clear(self) -> bool:
        """Delete the snapshot."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Snapshot at %s could not be removed", self.path, exc_info=True)
            return False
        return True

    def exists(self) -> bool:
        return self.path.exists()

    def _write(self, text: str):
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageUnavailableError(str(e)) from e


class MemorySnapshotStore(LocalSnapshotStore):
    """Snapshot store that keeps the snapshot in memory (tests, API sessions)."""

    def __init__(self):
        super().__init__(path=Path(os.devnull))
        self._text: str | None = None

    def load(self) -> UniverseState | None:
        if self._text is None:
            return None
        return state_from_json(self._text)

    def clear(self) -> bool:
        self._text = None
        return True

    def exists(self) -> bool:
        return self._text is not None

    def _write(self, text: str):
        self._text = text
