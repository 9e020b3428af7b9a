"""Seen/unseen bookkeeping for one review session.

Marks are keyed by ``(entry_key, content_id)``. The entry key is the scope at
which marks are shared: the filename in both review modes, so a hunk that
was reviewed once stays reviewed in every commit that carries the same
content. Hunk counts and content-ID lists are caches: they can be dropped and
recomputed from fresh diffs without losing any decision already recorded in
the mark set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

logger = logging.getLogger(__name__)

BY_FILE = "by_file"
BY_COMMIT = "by_commit"
REVIEW_MODES = (BY_FILE, BY_COMMIT)

SEEN = "seen"
UNSEEN = "unseen"


@dataclass(frozen=True)
class SessionKey:
    """Identifies a review session.

    ``identity`` is the HEAD hash in by-file mode and the branch name in
    by-commit mode; persistence is always keyed by ``(repo_name,
    branch_name, mode)``.
    """

    repo_name: str
    branch_name: str
    base_branch: str
    identity: str
    mode: str

    @property
    def registry_key(self) -> tuple[str, str, str]:
        return (self.base_branch, self.identity, self.mode)


@dataclass
class Position:
    section: str = UNSEEN
    filename: str | None = None
    cursor_lnum: int | None = None


@dataclass
class StateSnapshot:
    marks: set[tuple[str, str]] = field(default_factory=set)
    hunk_counts: dict[str, int] = field(default_factory=dict)
    content_ids: dict[str, list[str]] = field(default_factory=dict)


class ReviewState:
    """Mark set plus per-entry caches for one (base, head-or-branch, mode) session."""

    def __init__(self, base_branch: str = "", identity: str = "", mode: str = BY_FILE):
        self.base_branch = base_branch
        self.identity = identity
        self.mode = mode
        self._marks: set[tuple[str, str]] = set()
        self._hunk_counts: dict[str, int] = {}
        self._content_ids: dict[str, list[str]] = {}
        self._position = Position()

    # ------------------------------------------------------------------ #
    # Marks                                                                #
    # ------------------------------------------------------------------ #

    def is_seen(self, key: str, content_id: str) -> bool:
        return (key, content_id) in self._marks

    def mark(self, key: str, content_id: str) -> None:
        self._marks.add((key, content_id))

    def unmark(self, key: str, content_id: str) -> None:
        self._marks.discard((key, content_id))

    def mark_all(self, key: str, content_ids: Iterable[str]) -> None:
        for content_id in content_ids:
            self.mark(key, content_id)

    def unmark_all(self, key: str, content_ids: Iterable[str]) -> None:
        for content_id in content_ids:
            self.unmark(key, content_id)

    def has_seen(self, key: str, content_ids: list[str] | None) -> bool:
        """True if any of ``content_ids`` is marked.

        Without identity information nothing can be claimed as seen.
        """
        if not content_ids:
            return False
        return any(self.is_seen(key, cid) for cid in content_ids)

    def has_unseen(self, key: str, content_ids: list[str] | None) -> bool:
        """True if any of ``content_ids`` is unmarked.

        Without identity information the entry is assumed to still have work
        left, so it never drops out of the unseen list before its IDs exist.
        """
        if not content_ids:
            return True
        return any(not self.is_seen(key, cid) for cid in content_ids)

    def seen_count(self, key: str, content_ids: list[str] | None) -> int:
        return sum(1 for cid in content_ids or [] if self.is_seen(key, cid))

    def reset(self) -> None:
        logger.debug("Clearing %d mark(s) for %s", len(self._marks), self.mode)
        self._marks = set()

    @property
    def marks(self) -> frozenset[tuple[str, str]]:
        return frozenset(self._marks)

    # ------------------------------------------------------------------ #
    # Caches                                                               #
    # ------------------------------------------------------------------ #

    def set_hunk_count(self, cache_key: str, count: int) -> None:
        self._hunk_counts[cache_key] = count

    def get_hunk_count(self, cache_key: str) -> int | None:
        return self._hunk_counts.get(cache_key)

    def set_content_ids(self, cache_key: str, content_ids: list[str]) -> None:
        self._content_ids[cache_key] = list(content_ids)

    def get_content_ids(self, cache_key: str) -> list[str] | None:
        ids = self._content_ids.get(cache_key)
        return list(ids) if ids is not None else None

    def clear_content_ids(self) -> None:
        """Drop cached content IDs (HEAD may have moved); marks are kept."""
        self._content_ids = {}

    # ------------------------------------------------------------------ #
    # Re-entry position (never persisted)                                  #
    # ------------------------------------------------------------------ #

    def save_position(self, section: str, filename: str | None, cursor_lnum: int | None = None) -> None:
        self._position = Position(section=section, filename=filename, cursor_lnum=cursor_lnum)

    def get_position(self) -> Position:
        return self._position

    # ------------------------------------------------------------------ #
    # Snapshot / restore                                                   #
    # ------------------------------------------------------------------ #

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            marks=set(self._marks),
            hunk_counts=dict(self._hunk_counts),
            content_ids={k: list(v) for k, v in self._content_ids.items()},
        )

    def restore(
        self,
        marks: Iterable[tuple[str, str]],
        hunk_counts: dict[str, int] | None = None,
        content_ids: dict[str, list[str]] | None = None,
    ) -> None:
        self._marks = set(marks)
        self._hunk_counts = dict(hunk_counts or {})
        self._content_ids = {k: list(v) for k, v in (content_ids or {}).items()}


class SessionRegistry:
    """Explicit table of review states, owned by whoever owns the review screen.

    A fresh registry per screen (or per CLI invocation) keeps sessions from
    leaking into each other through module-level state.
    """

    def __init__(self):
        self._states: dict[tuple[str, str, str], ReviewState] = {}

    def open(self, key: SessionKey) -> tuple[ReviewState, bool]:
        """Return ``(state, created)`` for ``key``, creating it on first use."""
        state = self._states.get(key.registry_key)
        if state is not None:
            return state, False
        state = ReviewState(base_branch=key.base_branch, identity=key.identity, mode=key.mode)
        self._states[key.registry_key] = state
        return state, True

    def discard(self, key: SessionKey) -> None:
        self._states.pop(key.registry_key, None)

    def __len__(self) -> int:
        return len(self._states)
