"""By-file review: one entry per file changed between merge-base and HEAD."""

from __future__ import annotations

import logging

from diffmark_core.diff import Diff
from diffmark_core.errors import NoChangesError
from diffmark_core.git import branch as git_branch
from diffmark_core.git import repo as git_repo
from diffmark_core.git.status import FileStatus
from diffmark_core.review.base import ReviewModel, StateOpener
from diffmark_core.review.entries import (
    Entry,
    EntryGroup,
    Section,
    build_sections,
    categorize,
    find_first,
    flatten,
    matches,
)
from diffmark_core.review.loading import load_unit_diff, resolve_base
from diffmark_core.state import BY_FILE, SEEN, ReviewState, SessionKey

logger = logging.getLogger(__name__)


def entry_id(filename: str, entry_type: str) -> str:
    return f"{filename}|{entry_type}"


class ByFileModel(ReviewModel):
    mode = BY_FILE

    def __init__(self, open_state: StateOpener, path: str = ".", context_lines: int = 5, auto_fetch: bool = False):
        self._open_state = open_state
        self._path = path
        self._context_lines = context_lines
        self._auto_fetch = auto_fetch
        self._reset()

    def _reset(self) -> None:
        self.repo: str | None = None
        self.base_branch: str | None = None
        self.merge_base: str | None = None
        self.head_hash: str | None = None
        self.changed_files: list[FileStatus] = []
        self._files_by_name: dict[str, FileStatus] = {}
        self._diffs: dict[str, Diff] = {}
        self._sections: list[Section] = []
        self._entries: dict[str, Entry] = {}
        self._state: ReviewState | None = None
        self._key: SessionKey | None = None

    # ------------------------------------------------------------------ #
    # Keys                                                                 #
    # ------------------------------------------------------------------ #

    def get_entry_key(self, entry: Entry) -> str:
        return entry.filename

    def get_cache_key(self, entry: Entry) -> str:
        return entry.filename

    def get_diff_args(self, entry: Entry) -> tuple[str, ...]:
        return (entry.filename,)

    # ------------------------------------------------------------------ #
    # Loading                                                              #
    # ------------------------------------------------------------------ #

    def fetch(self, base_override: str | None = None) -> list[Section]:
        self._reset()

        repo = git_repo.discover(self._path)
        self.repo = repo
        base = resolve_base(repo, base_override, self._auto_fetch)
        self.base_branch = base

        self.head_hash = git_branch.head(repo)
        branch_name = git_branch.current(repo)
        self.merge_base = git_branch.merge_base(repo, base, "HEAD")

        changed = git_branch.changed_files(repo, self.merge_base, "HEAD")
        if not changed:
            raise NoChangesError(base)
        self.changed_files = changed
        self._files_by_name = {f.filename: f for f in changed}

        self._key = SessionKey(
            repo_name=git_repo.repo_name(repo),
            branch_name=branch_name,
            base_branch=base,
            identity=self.head_hash,
            mode=self.mode,
        )
        self._state = self._open_state(self._key)
        # HEAD may have moved since these IDs were cached; marks stay valid.
        self._state.clear_content_ids()

        for status in changed:
            self.get_full_diff(status.filename)

        return self.rebuild_entries()

    def get_full_diff(self, *diff_args: str) -> Diff:
        (filename,) = diff_args
        cached = self._diffs.get(filename)
        if cached is not None:
            return cached

        status = self._files_by_name.get(filename)
        if status is None or self.repo is None or self.merge_base is None:
            raise ValueError(f"{filename} is not part of this review")

        diff = load_unit_diff(
            self.repo, self.merge_base, "HEAD", filename, status.is_deleted, self._context_lines
        )
        self._state.set_hunk_count(filename, len(diff.content_ids))
        self._state.set_content_ids(filename, diff.content_ids)
        self._diffs[filename] = diff
        logger.debug("Loaded %d hunk(s) for %s", len(diff.hunks), filename)
        return diff

    # ------------------------------------------------------------------ #
    # Entries                                                              #
    # ------------------------------------------------------------------ #

    def _content_ids(self, filename: str) -> list[str] | None:
        cached = self._diffs.get(filename)
        if cached is not None:
            return cached.content_ids
        return self._state.get_content_ids(filename)

    def rebuild_entries(self) -> list[Section]:
        if self._state is None:
            return []

        self._entries = {}
        seen: list[Entry] = []
        unseen: list[Entry] = []

        for status in self.changed_files:
            key = status.filename
            ids = self._content_ids(key)
            types = categorize(self._state.has_seen(key, ids), self._state.has_unseen(key, ids))
            for entry_type in types:
                entry = Entry(id=entry_id(key, entry_type), filename=key, type=entry_type, status=status)
                self._entries[entry.id] = entry
                (seen if entry_type == SEEN else unseen).append(entry)

        self._sections = build_sections([EntryGroup(None, seen)], [EntryGroup(None, unseen)])
        return self._sections

    @property
    def state(self) -> ReviewState | None:
        return self._state

    @property
    def session_key(self) -> SessionKey | None:
        return self._key

    @property
    def sections(self) -> list[Section]:
        return self._sections

    @property
    def entries(self) -> list[Entry]:
        return flatten(self._sections)

    def get_entry(self, entry_id: str) -> Entry | None:
        return self._entries.get(entry_id)

    def find_entry(self, filename: str, commit_hash: str | None = None, entry_type: str | None = None) -> Entry | None:
        return find_first(self.entries, lambda e: matches(e, filename, None, entry_type))
