"""Entries shown in the review list, grouped into Seen/Unseen sections."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable

from diffmark_core.git.branch import Commit
from diffmark_core.git.status import FileStatus
from diffmark_core.state import SEEN, UNSEEN


@dataclass(frozen=True)
class Entry:
    """One (file, optional commit, seen|unseen) row. Derived, never persisted."""

    id: str
    filename: str
    type: str  # SEEN | UNSEEN
    status: FileStatus
    commit: Commit | None = None

    @property
    def commit_hash(self) -> str | None:
        return self.commit.hash if self.commit else None


@dataclass
class EntryGroup:
    commit: Commit | None
    entries: list[Entry] = field(default_factory=list)


@dataclass
class Section:
    title: str  # "Seen" | "Unseen"
    groups: list[EntryGroup] = field(default_factory=list)

    @property
    def entries(self) -> list[Entry]:
        return [entry for group in self.groups for entry in group.entries]


def build_sections(seen: list[EntryGroup], unseen: list[EntryGroup]) -> list[Section]:
    """Seen first, then Unseen; empty groups and sections are dropped."""
    sections = []
    for title, groups in (("Seen", seen), ("Unseen", unseen)):
        groups = [g for g in groups if g.entries]
        if groups:
            sections.append(Section(title=title, groups=groups))
    return sections


def categorize(has_seen: bool, has_unseen: bool) -> list[str]:
    types = []
    if has_unseen:
        types.append(UNSEEN)
    if has_seen:
        types.append(SEEN)
    return types


def flatten(sections: Iterable[Section]) -> list[Entry]:
    return [entry for section in sections for entry in section.entries]


def matches(entry: Entry, filename: str, commit_hash: str | None = None, entry_type: str | None = None) -> bool:
    if entry.filename != filename:
        return False
    if commit_hash and not (entry.commit_hash or "").startswith(commit_hash):
        return False
    if entry_type and entry.type != entry_type:
        return False
    return True


def find_first(entries: Iterable[Entry], predicate: Callable[[Entry], bool]) -> Entry | None:
    return next((e for e in entries if predicate(e)), None)
