"""No-op store, used for ``store: none`` and for runs that must not persist.

Using a NoOpStateStore rather than None lets the CLI always call
store.save() without conditional checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from diffmark_store.base import BaseStateStore

if TYPE_CHECKING:
    from diffmark_store.models import PersistedState, StoredStateInfo


class NoOpStateStore(BaseStateStore):
    """Never loads anything and silently discards every save."""

    def load(self, repo: str, branch: str, mode: str) -> PersistedState | None:
        return None

    def save(self, repo: str, branch: str, mode: str, state: PersistedState) -> None:
        pass  # intentional no-op

    def delete(self, repo: str, branch: str, mode: str) -> bool:
        return False

    def list_states(self, repo: str) -> list[StoredStateInfo]:
        return []
