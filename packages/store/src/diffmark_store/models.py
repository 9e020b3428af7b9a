"""Persisted review-state data models.

Decoupled from diffmark_core so the store layer can be used independently
and diffmark_core has no knowledge of persistence concerns.
"""

from __future__ import annotations

from dataclasses import dataclass, field

CURRENT_VERSION = 1


@dataclass
class PersistedState:
    """One review session's marks and caches as written to disk.

    Created by the CLI layer from a ReviewState snapshot. Each mark is the
    string ``"<entry_key>:<content_id>"``; the CLI maps between the two.
    """

    marks: set[str] = field(default_factory=set)
    hunk_counts: dict[str, int] = field(default_factory=dict)
    content_ids: dict[str, list[str]] = field(default_factory=dict)
    last_used: float = 0.0  # unix timestamp, stamped by the store on save
    branch_name: str = ""
    version: int = CURRENT_VERSION


@dataclass
class StoredStateInfo:
    """A persisted state file as listed by ``diffmark sessions``."""

    path: str
    branch_name: str
    mode: str
    last_used: float
    mark_count: int
