"""One review session: a model variant, its mark state, and the mutation guard.

All writes to the mark state go through the five mutation methods below.
Each one rebuilds the entry list before returning, so readers never see a
mark set that disagrees with the Seen/Unseen sections. Mutations are
single-flight: while one is running, further calls are dropped rather than
queued, so a rapid double key-press cannot apply a mark twice.
"""

from __future__ import annotations

import dataclasses
import functools
import logging
import threading
from typing import Callable

from diffmark_core.diff import Diff, render_diff
from diffmark_core.review.base import ReviewModel
from diffmark_core.review.by_commit import ByCommitModel
from diffmark_core.review.by_file import ByFileModel
from diffmark_core.review.entries import Entry, Section
from diffmark_core.state import BY_COMMIT, BY_FILE, SEEN, ReviewState, SessionKey, SessionRegistry

logger = logging.getLogger(__name__)

MODEL_TYPES: dict[str, type[ReviewModel]] = {
    BY_FILE: ByFileModel,
    BY_COMMIT: ByCommitModel,
}

RestoreHook = Callable[[SessionKey, ReviewState], None]


def filter_diff(full_diff: Diff, state: ReviewState, entry_key: str, entry_type: str) -> Diff:
    """Narrow ``full_diff`` to the hunks whose seen-state matches ``entry_type``.

    The result carries ``original_indices`` (1-based positions in the full
    hunk list) so cursor positions in the filtered view can be mapped back
    to the hunk identity they refer to.
    """
    want_seen = entry_type == SEEN
    indices = [i for i, cid in enumerate(full_diff.content_ids, 1) if state.is_seen(entry_key, cid) == want_seen]

    if not indices:
        return Diff.empty(entry_type)

    if len(indices) == len(full_diff.content_ids):
        # The cached full diff is shared by both entry types; never mutate it.
        return dataclasses.replace(full_diff, original_indices=indices, entry_type=entry_type)

    hunks = [full_diff.hunks[i - 1] for i in indices]
    filtered = render_diff(hunks, full_diff.file_lines, is_deleted=full_diff.is_deleted)
    filtered.content_ids = [full_diff.content_ids[i - 1] for i in indices]
    filtered.original_indices = indices
    filtered.entry_type = entry_type
    return filtered


def _single_flight(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        if not self._mutation_lock.acquire(blocking=False):
            logger.debug("Dropped %s: another mark operation is in flight", method.__name__)
            return False
        try:
            if self.model.state is None:
                return False
            method(self, *args, **kwargs)
            self.model.rebuild_entries()
            return True
        finally:
            self._mutation_lock.release()

    return wrapper


class ReviewSession:
    def __init__(
        self,
        mode: str = BY_FILE,
        path: str = ".",
        context_lines: int = 5,
        registry: SessionRegistry | None = None,
        restore: RestoreHook | None = None,
        auto_fetch: bool = False,
    ):
        if mode not in MODEL_TYPES:
            raise ValueError(f"Unknown review mode: {mode!r}. Choose 'by_file' or 'by_commit'.")
        self.registry = registry if registry is not None else SessionRegistry()
        self._restore = restore
        self._mutation_lock = threading.Lock()
        self.model: ReviewModel = MODEL_TYPES[mode](
            open_state=self._open_state,
            path=path,
            context_lines=context_lines,
            auto_fetch=auto_fetch,
        )

    def _open_state(self, key: SessionKey) -> ReviewState:
        state, created = self.registry.open(key)
        if created and self._restore is not None:
            self._restore(key, state)
        return state

    # ------------------------------------------------------------------ #
    # Read side                                                            #
    # ------------------------------------------------------------------ #

    def fetch(self, base_override: str | None = None) -> list[Section]:
        return self.model.fetch(base_override)

    @property
    def mode(self) -> str:
        return self.model.mode

    @property
    def state(self) -> ReviewState | None:
        return self.model.state

    @property
    def key(self) -> SessionKey | None:
        return self.model.session_key

    @property
    def sections(self) -> list[Section]:
        return self.model.sections

    @property
    def entries(self) -> list[Entry]:
        return self.model.entries

    def get_entry(self, entry_id: str) -> Entry | None:
        return self.model.get_entry(entry_id)

    def find_entry(self, filename: str, commit_hash: str | None = None, entry_type: str | None = None) -> Entry | None:
        return self.model.find_entry(filename, commit_hash, entry_type)

    def get_entry_key(self, entry: Entry) -> str:
        return self.model.get_entry_key(entry)

    def get_full_diff(self, entry: Entry) -> Diff:
        return self.model.get_full_diff(*self.model.get_diff_args(entry))

    def ensure_content_ids(self, entry: Entry) -> list[str]:
        return self.get_full_diff(entry).content_ids

    def ensure_hunk_count(self, entry: Entry) -> int:
        return len(self.ensure_content_ids(entry))

    def is_hunk_seen(self, entry: Entry, hunk_index: int) -> bool:
        content_id = self._content_id(entry, hunk_index)
        return self.state.is_seen(self.get_entry_key(entry), content_id)

    def get_filtered_diff(self, entry: Entry) -> Diff:
        full_diff = self.get_full_diff(entry)
        return filter_diff(full_diff, self.state, self.get_entry_key(entry), entry.type)

    def _content_id(self, entry: Entry, hunk_index: int) -> str:
        ids = self.ensure_content_ids(entry)
        if not 1 <= hunk_index <= len(ids):
            raise ValueError(f"Hunk {hunk_index} is out of range for {entry.filename} (1..{len(ids)})")
        return ids[hunk_index - 1]

    # ------------------------------------------------------------------ #
    # Mutations                                                            #
    # ------------------------------------------------------------------ #

    @_single_flight
    def mark_hunk(self, entry: Entry, hunk_index: int) -> bool:
        self.state.mark(self.get_entry_key(entry), self._content_id(entry, hunk_index))

    @_single_flight
    def unmark_hunk(self, entry: Entry, hunk_index: int) -> bool:
        self.state.unmark(self.get_entry_key(entry), self._content_id(entry, hunk_index))

    @_single_flight
    def mark_file(self, entry: Entry) -> bool:
        self.state.mark_all(self.get_entry_key(entry), self.ensure_content_ids(entry))

    @_single_flight
    def unmark_file(self, entry: Entry) -> bool:
        self.state.unmark_all(self.get_entry_key(entry), self.ensure_content_ids(entry))

    @_single_flight
    def reset_marks(self) -> bool:
        self.state.reset()
