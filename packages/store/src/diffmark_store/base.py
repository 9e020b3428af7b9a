"""Abstract store interface.

The CLI depends on BaseStateStore, not on a concrete backend, so a review
can run with on-disk persistence or with none at all without touching CLI
code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from diffmark_store.models import PersistedState, StoredStateInfo


class StateLoadError(Exception):
    """A state file exists but cannot be used.

    Never handled silently: the caller decides whether to delete the file
    and start fresh or to continue without persisting.
    """

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot load review state from {path}: {reason}")
        self.path = path
        self.reason = reason


class SchemaVersionError(StateLoadError):
    """The state file was written by an incompatible version."""

    def __init__(self, path: str, found, expected: int):
        super().__init__(path, f"schema version {found!r} is not supported (expected {expected})")
        self.found = found
        self.expected = expected


class StateSaveError(Exception):
    """A state file could not be written (unwritable data dir, disk full)."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot save review state to {path}: {reason}")
        self.path = path
        self.reason = reason


class BaseStateStore(ABC):
    """Pluggable persistence layer for review state, one record per (repo, branch, mode)."""

    @abstractmethod
    def load(self, repo: str, branch: str, mode: str) -> PersistedState | None:
        """Return the stored state, or None if nothing has been saved yet.

        Raises StateLoadError when a file exists but is unreadable.
        """

    @abstractmethod
    def save(self, repo: str, branch: str, mode: str, state: PersistedState) -> None:
        """Persist ``state``, replacing any previous record for the same key.

        Raises StateSaveError when the record cannot be written.
        """

    @abstractmethod
    def delete(self, repo: str, branch: str, mode: str) -> bool:
        """Remove the stored record. Returns False if there was none."""

    @abstractmethod
    def list_states(self, repo: str) -> list[StoredStateInfo]:
        """Return every stored record for a repo, most recently used first."""

    def state_path(self, repo: str, branch: str, mode: str) -> str | None:
        """Where the record for this key lives, if the backend has such a thing."""
        return None

    def close(self) -> None:
        """Release any resources held by the store.

        Default is a no-op so callers can always call close() safely.
        """
