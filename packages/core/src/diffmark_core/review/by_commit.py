"""By-commit review: files grouped under each commit in ``merge-base..HEAD``.

Marks are keyed by filename alone, so content reviewed in one commit is
also seen in any later commit that carries the identical hunk. Caches are
keyed by ``<hash>:<filename>`` since every commit has its own hunks.
"""

from __future__ import annotations

import logging

from diffmark_core.diff import Diff
from diffmark_core.errors import NoChangesError
from diffmark_core.git import branch as git_branch
from diffmark_core.git import repo as git_repo
from diffmark_core.git.branch import Commit
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
from diffmark_core.state import BY_COMMIT, SEEN, ReviewState, SessionKey

logger = logging.getLogger(__name__)


def make_key(commit_hash: str, filename: str) -> str:
    return f"{commit_hash}:{filename}"


def entry_id(commit_hash: str, filename: str, entry_type: str) -> str:
    return f"{commit_hash}|{filename}|{entry_type}"


class ByCommitModel(ReviewModel):
    mode = BY_COMMIT

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
        self.branch_name: str | None = None
        self.commits: list[Commit] = []
        self.commit_files: dict[str, list[FileStatus]] = {}
        self._diffs: dict[str, Diff] = {}
        self._sections: list[Section] = []
        self._entries: dict[str, Entry] = {}
        self._state: ReviewState | None = None
        self._key: SessionKey | None = None

    def get_entry_key(self, entry: Entry) -> str:
        return entry.filename

    def get_cache_key(self, entry: Entry) -> str:
        return make_key(entry.commit_hash, entry.filename)

    def get_diff_args(self, entry: Entry) -> tuple[str, ...]:
        return (entry.commit_hash, entry.filename)

    def fetch(self, base_override: str | None = None) -> list[Section]:
        self._reset()

        repo = git_repo.discover(self._path)
        self.repo = repo
        base = resolve_base(repo, base_override, self._auto_fetch)
        self.base_branch = base

        # The branch name, not HEAD, keys the session so marks survive new commits.
        self.branch_name = git_branch.current(repo)
        self.merge_base = git_branch.merge_base(repo, base, "HEAD")

        commits = git_branch.commits_in_range(repo, self.merge_base, "HEAD")
        if not commits:
            raise NoChangesError(base)
        self.commits = commits
        self.commit_files = git_branch.all_commit_files(repo, self.merge_base, "HEAD")

        self._key = SessionKey(
            repo_name=git_repo.repo_name(repo),
            branch_name=self.branch_name,
            base_branch=base,
            identity=self.branch_name,
            mode=self.mode,
        )
        self._state = self._open_state(self._key)
        self._state.clear_content_ids()

        for commit in commits:
            for status in self.commit_files.get(commit.hash, []):
                self.get_full_diff(commit.hash, status.filename)

        return self.rebuild_entries()

    def _status(self, commit_hash: str, filename: str) -> FileStatus | None:
        return find_first(self.commit_files.get(commit_hash, []), lambda f: f.filename == filename)

    def get_full_diff(self, *diff_args: str) -> Diff:
        commit_hash, filename = diff_args
        cache_key = make_key(commit_hash, filename)
        cached = self._diffs.get(cache_key)
        if cached is not None:
            return cached

        status = self._status(commit_hash, filename)
        if status is None or self.repo is None:
            raise ValueError(f"{filename} is not changed in commit {commit_hash}")

        diff = load_unit_diff(
            self.repo, f"{commit_hash}^", commit_hash, filename, status.is_deleted, self._context_lines
        )
        self._state.set_hunk_count(cache_key, len(diff.content_ids))
        self._state.set_content_ids(cache_key, diff.content_ids)
        self._diffs[cache_key] = diff
        logger.debug("Loaded %d hunk(s) for %s", len(diff.hunks), cache_key)
        return diff

    def _content_ids(self, cache_key: str) -> list[str] | None:
        cached = self._diffs.get(cache_key)
        if cached is not None:
            return cached.content_ids
        return self._state.get_content_ids(cache_key)

    def rebuild_entries(self) -> list[Section]:
        if self._state is None:
            return []

        self._entries = {}
        seen_groups: list[EntryGroup] = []
        unseen_groups: list[EntryGroup] = []

        for commit in self.commits:
            seen = EntryGroup(commit)
            unseen = EntryGroup(commit)

            for status in self.commit_files.get(commit.hash, []):
                mark_key = status.filename
                ids = self._content_ids(make_key(commit.hash, status.filename))
                types = categorize(self._state.has_seen(mark_key, ids), self._state.has_unseen(mark_key, ids))
                for entry_type in types:
                    entry = Entry(
                        id=entry_id(commit.hash, status.filename, entry_type),
                        filename=status.filename,
                        type=entry_type,
                        status=status,
                        commit=commit,
                    )
                    self._entries[entry.id] = entry
                    (seen if entry_type == SEEN else unseen).entries.append(entry)

            seen_groups.append(seen)
            unseen_groups.append(unseen)

        self._sections = build_sections(seen_groups, unseen_groups)
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
        return find_first(self.entries, lambda e: matches(e, filename, commit_hash, entry_type))
