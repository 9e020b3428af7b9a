"""Cursor movement across the review list while entries appear and vanish.

Marking the last unseen hunk of a file removes that file's Unseen entry;
unmarking the last seen hunk removes its Seen entry; and every flip changes
the filtered-to-original hunk mapping. The navigator captures what it needs
(entry key, filename, commit, content IDs) *before* a mutation and re-anchors
the cursor afterwards, so it always points at a currently visible entry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from diffmark_core.review.entries import Entry, find_first, matches
from diffmark_core.state import SEEN, UNSEEN

if TYPE_CHECKING:
    from diffmark_core.diff import Diff
    from diffmark_core.review.session import ReviewSession

logger = logging.getLogger(__name__)


@dataclass
class Cursor:
    entry_id: str
    hunk: int = 1  # 1-based index into the entry's filtered diff


def _type_for(seen: bool) -> str:
    return SEEN if seen else UNSEEN


class Navigator:
    def __init__(self, session: ReviewSession):
        self.session = session
        self.cursor: Cursor | None = None

    # ------------------------------------------------------------------ #
    # Where are we                                                         #
    # ------------------------------------------------------------------ #

    def current_entry(self) -> Entry | None:
        if self.cursor is None:
            return None
        return self.session.get_entry(self.cursor.entry_id)

    def current_diff(self) -> Diff | None:
        entry = self.current_entry()
        if entry is None:
            return None
        return self.session.get_filtered_diff(entry)

    def current_hunk_index(self) -> tuple[int | None, int]:
        """Return ``(original_index, total_hunks)`` for the hunk under the cursor.

        A binary or otherwise hunk-less file still counts as a single hunk.
        """
        entry = self.current_entry()
        if entry is None:
            return None, 0
        diff = self.session.get_filtered_diff(entry)
        if not diff.original_indices:
            return None, 0
        filtered = min(max(self.cursor.hunk, 1), len(diff.original_indices))
        return diff.original_indices[filtered - 1], self.session.ensure_hunk_count(entry)

    # ------------------------------------------------------------------ #
    # Plain movement                                                       #
    # ------------------------------------------------------------------ #

    def _filtered_index(self, entry: Entry, original_index: int | None) -> int:
        if original_index is None:
            return 1
        diff = self.session.get_filtered_diff(entry)
        for filtered, original in enumerate(diff.original_indices or [], 1):
            if original == original_index:
                return filtered
        return 1

    def move_to(self, entry_id: str, original_index: int | None = None) -> Entry | None:
        """Put the cursor on ``entry_id``, at the hunk whose original index is given."""
        entry = self.session.get_entry(entry_id)
        if entry is None:
            return None
        self.cursor = Cursor(entry.id, self._filtered_index(entry, original_index))
        return entry

    def _move_to_last_hunk(self, entry: Entry) -> Entry:
        diff = self.session.get_filtered_diff(entry)
        self.cursor = Cursor(entry.id, max(len(diff.original_indices or []), 1))
        return entry

    def _step_file(self, step: int) -> Entry | None:
        entries = self.session.entries
        if not entries:
            self.cursor = None
            return None
        ids = [e.id for e in entries]
        current = self.current_entry()
        if current is None or current.id not in ids:
            index = 0 if step > 0 else len(entries) - 1
        else:
            index = (ids.index(current.id) + step) % len(entries)
        return entries[index]

    def next_file(self) -> Entry | None:
        entry = self._step_file(1)
        return self.move_to(entry.id) if entry else None

    def prev_file(self) -> Entry | None:
        entry = self._step_file(-1)
        return self._move_to_last_hunk(entry) if entry else None

    def next_hunk(self) -> Entry | None:
        entry = self.current_entry()
        if entry is None:
            return self.next_file()
        diff = self.session.get_filtered_diff(entry)
        if self.cursor.hunk < len(diff.original_indices or []):
            self.cursor.hunk += 1
            return entry
        return self.next_file()

    def prev_hunk(self) -> Entry | None:
        entry = self.current_entry()
        if entry is None:
            return self.prev_file()
        if self.cursor.hunk > 1:
            self.cursor.hunk -= 1
            return entry
        return self.prev_file()

    # ------------------------------------------------------------------ #
    # Seen-state aware movement                                            #
    # ------------------------------------------------------------------ #

    def _anchor_near(self, filename: str, commit_hash: str | None) -> Entry | None:
        """Last resort: any entry for the same file, else the first entry, else nothing."""
        entries = self.session.entries
        entry = find_first(entries, lambda e: matches(e, filename, commit_hash)) or (entries[0] if entries else None)
        if entry is None:
            self.cursor = None
            return None
        return self.move_to(entry.id)

    def _scan_entries(self, target_seen: bool) -> Entry | None:
        state = self.session.state
        target_type = _type_for(target_seen)
        for entry in self.session.entries:
            if entry.type != target_type:
                continue
            key = self.session.get_entry_key(entry)
            for i, content_id in enumerate(self.session.ensure_content_ids(entry), 1):
                if state.is_seen(key, content_id) == target_seen:
                    return self.move_to(entry.id, i)
        return None

    def first_hunk_matching(self, target_seen: bool) -> Entry | None:
        """Move to the first hunk, in display order, whose seen-state is ``target_seen``."""
        entry = self._scan_entries(target_seen)
        if entry is not None:
            return entry
        first = find_first(self.session.entries, lambda e: e.type == _type_for(target_seen))
        if first is not None:
            return self.move_to(first.id)
        return None

    def move_to_hunk_matching(
        self,
        target_seen: bool,
        entry_key: str,
        filename: str,
        commit_hash: str | None,
        content_ids: list[str],
        from_hunk: int,
    ) -> Entry | None:
        """Move to the next hunk whose seen-state is ``target_seen``.

        Looks first at the hunks after ``from_hunk`` in the same file, then
        at every visible entry of the target type, then falls back to the
        first such entry, and finally to whatever entry is still visible for
        this file so the cursor is never left dangling.
        """
        state = self.session.state
        target_type = _type_for(target_seen)

        for i in range(from_hunk + 1, len(content_ids) + 1):
            if state.is_seen(entry_key, content_ids[i - 1]) == target_seen:
                entry = self.session.find_entry(filename, commit_hash, target_type)
                if entry is not None:
                    return self.move_to(entry.id, i)
                break

        entry = self.first_hunk_matching(target_seen)
        if entry is not None:
            return entry

        logger.debug("No %s hunks left; staying near %s", target_type, filename)
        return self._anchor_near(filename, commit_hash)

    # ------------------------------------------------------------------ #
    # Mutations with re-anchoring                                          #
    # ------------------------------------------------------------------ #

    def _set_hunk_state(self, mark_as_seen: bool) -> Entry | None:
        entry = self.current_entry()
        if entry is None:
            return None
        hunk_index, _ = self.current_hunk_index()
        if hunk_index is None:
            return entry

        # The entry may vanish once the hunk flips; keep what traversal needs.
        entry_key = self.session.get_entry_key(entry)
        content_ids = self.session.ensure_content_ids(entry)

        if mark_as_seen:
            applied = self.session.mark_hunk(entry, hunk_index)
        else:
            applied = self.session.unmark_hunk(entry, hunk_index)
        if not applied:
            return self.current_entry()

        return self.move_to_hunk_matching(
            not mark_as_seen, entry_key, entry.filename, entry.commit_hash, content_ids, hunk_index
        )

    def mark_hunk(self) -> Entry | None:
        """Mark the hunk under the cursor and move to the next unseen one."""
        return self._set_hunk_state(True)

    def unmark_hunk(self) -> Entry | None:
        """Unmark the hunk under the cursor and move to the next seen one."""
        return self._set_hunk_state(False)

    def _set_file_state(self, mark_as_seen: bool) -> Entry | None:
        entry = self.current_entry()
        if entry is None:
            return None

        same_type = _type_for(mark_as_seen)
        opposite_type = _type_for(not mark_as_seen)
        saved_index, _ = self.current_hunk_index()
        order_before = [e.id for e in self.session.entries]

        if mark_as_seen:
            applied = self.session.mark_file(entry)
        else:
            applied = self.session.unmark_file(entry)
        if not applied:
            return self.current_entry()

        if entry.type == same_type:
            # Every hunk is now in this state, so original and filtered indices agree.
            target = self.session.find_entry(entry.filename, entry.commit_hash, same_type)
            if target is not None:
                return self.move_to(target.id, saved_index)
            return self._anchor_near(entry.filename, entry.commit_hash)

        # The entry we were on is gone: continue with the next file still in that state.
        if entry.id in order_before:
            for entry_id in order_before[order_before.index(entry.id) + 1 :]:
                candidate = self.session.get_entry(entry_id)
                if candidate is not None and candidate.type == opposite_type:
                    return self.move_to(candidate.id)

        first = find_first(self.session.entries, lambda e: e.type == opposite_type)
        if first is not None:
            return self.move_to(first.id)

        target = self.session.find_entry(entry.filename, entry.commit_hash, same_type)
        if target is not None:
            return self.move_to(target.id, saved_index)
        return self._anchor_near(entry.filename, entry.commit_hash)

    def mark_file(self) -> Entry | None:
        return self._set_file_state(True)

    def unmark_file(self) -> Entry | None:
        return self._set_file_state(False)

    def reset_marks(self) -> Entry | None:
        entry = self.current_entry()
        if not self.session.reset_marks():
            return entry
        if entry is not None:
            target = self.session.find_entry(entry.filename, entry.commit_hash, UNSEEN)
            if target is not None:
                return self.move_to(target.id)
        return self.first_hunk_matching(False)

    # ------------------------------------------------------------------ #
    # Re-entry                                                             #
    # ------------------------------------------------------------------ #

    def save_position(self) -> None:
        entry = self.current_entry()
        if entry is None or self.session.state is None:
            return
        diff = self.session.get_filtered_diff(entry)
        lnum = None
        if diff.marks:
            lnum = diff.marks[min(self.cursor.hunk, len(diff.marks)) - 1].top
        self.session.state.save_position(entry.type, entry.filename, lnum)

    def restore(self, current_filename: str | None = None) -> Entry | None:
        """Place the cursor for a re-entered session.

        Tries the saved position (down to the hunk under the saved cursor
        line), then the file the user is currently in, then the first unseen
        entry, then anything at all.
        """
        entries = self.session.entries
        position = self.session.state.get_position() if self.session.state else None
        section = position.section if position else UNSEEN

        saved = position.filename if position else None
        for filename in (saved, current_filename):
            if not filename:
                continue
            entry = find_first(entries, lambda e: e.filename == filename and e.type == section) or find_first(
                entries, lambda e: e.filename == filename
            )
            if entry is None:
                continue
            self.move_to(entry.id)
            if filename == saved and entry.type == section and position.cursor_lnum:
                hunk = self.session.get_filtered_diff(entry).mark_at(position.cursor_lnum)
                if hunk is not None:
                    self.cursor.hunk = hunk
            return entry

        entry = find_first(entries, lambda e: e.type == UNSEEN) or (entries[0] if entries else None)
        if entry is None:
            self.cursor = None
            return None
        return self.move_to(entry.id)
