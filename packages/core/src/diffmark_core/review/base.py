"""The review-model interface.

Two variants exist, by-file and by-commit, and they differ only in how an
entry maps to a mark scope, a cache key and a diff. The session picks one at
construction time; nothing is shared through inheritance.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from diffmark_core.diff import Diff
    from diffmark_core.review.entries import Entry, Section
    from diffmark_core.state import ReviewState, SessionKey

StateOpener = Callable[["SessionKey"], "ReviewState"]


class ReviewModel(ABC):
    """Capability interface implemented by ByFileModel and ByCommitModel."""

    mode: str

    @abstractmethod
    def fetch(self, base_override: str | None = None) -> list[Section]:
        """Resolve base and merge-base, load the change set, open the session state.

        Content IDs are computed eagerly for every changed unit so the first
        categorization is accurate. Raises RepositoryNotFoundError,
        BaseBranchNotFoundError, GitError or NoChangesError.
        """

    @abstractmethod
    def rebuild_entries(self) -> list[Section]:
        """Re-derive the Seen/Unseen sections from the mark set; diff caches are kept."""

    @abstractmethod
    def get_full_diff(self, *diff_args: str) -> Diff:
        """Unfiltered diff for one unit, cached for the lifetime of the session."""

    @abstractmethod
    def get_entry_key(self, entry: Entry) -> str:
        """Scope at which marks are shared."""

    @abstractmethod
    def get_cache_key(self, entry: Entry) -> str:
        """Key of the hunk-count and content-ID caches."""

    @abstractmethod
    def get_diff_args(self, entry: Entry) -> tuple[str, ...]:
        """Arguments to pass to get_full_diff for ``entry``."""

    @property
    @abstractmethod
    def state(self) -> ReviewState | None:
        """The session state, or None before fetch()."""

    @property
    @abstractmethod
    def session_key(self) -> SessionKey | None:
        """Identity of the fetched session, or None before fetch()."""

    @property
    @abstractmethod
    def sections(self) -> list[Section]:
        """Current Seen/Unseen sections in display order."""

    @property
    @abstractmethod
    def entries(self) -> list[Entry]:
        """All entries, flattened in display order."""

    @abstractmethod
    def get_entry(self, entry_id: str) -> Entry | None:
        """Look up a currently visible entry by id."""

    @abstractmethod
    def find_entry(self, filename: str, commit_hash: str | None = None, entry_type: str | None = None) -> Entry | None:
        """First visible entry for a file, optionally narrowed by commit and type."""
