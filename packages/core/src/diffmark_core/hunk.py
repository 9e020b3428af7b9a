"""Unified-diff hunks and their content-addressed identity.

A hunk's position in a file is not a stable identity: regenerating the diff
after a rebase or an unrelated edit shifts every line number below it. The
content ID hashes what the hunk *says* (its diff lines, plus a few unchanged
lines around it when the file content is available) so a mark survives line
drift as long as the content itself does not change.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field

from diffmark_core.errors import HunkParseError

EMPTY_CONTENT_ID = "empty"

# Truncated sha256: 64 bits is plenty for the number of hunks in one review.
_CONTENT_ID_LENGTH = 16

_RANGE_RE = re.compile(r"^[-+](\d+)(?:,(\d+))?$")

Range = tuple[int, int]


def parse_header(header: str) -> tuple[Range, Range]:
    """Parse ``@@ -a,b +c,d @@`` into ``((a, b), (c, d))``.

    A missing length defaults to 1, as git omits it for single-line ranges.
    """
    parts = header.split("@@")
    if len(parts) < 3:
        raise HunkParseError(f"Not a hunk header: {header!r}")

    ranges = parts[1].split()
    if len(ranges) != 2:
        raise HunkParseError(f"Expected two ranges in hunk header: {header!r}")

    parsed = []
    for text, sign in zip(ranges, "-+"):
        match = _RANGE_RE.match(text)
        if not match or not text.startswith(sign):
            raise HunkParseError(f"Malformed range {text!r} in hunk header: {header!r}")
        start = int(match.group(1))
        length = int(match.group(2)) if match.group(2) is not None else 1
        parsed.append((start, length))

    return parsed[0], parsed[1]


def generate_header(previous: Range, current: Range) -> str:
    return f"@@ -{previous[0]},{previous[1]} +{current[0]},{current[1]} @@"


@dataclass
class HunkStat:
    added: int = 0
    removed: int = 0


@dataclass
class Hunk:
    """One contiguous diff region, positioned in the new (current) file."""

    header: str
    previous: Range
    current: Range
    top: int
    bottom: int
    kind: str  # "add" | "remove" | "change"
    diff: list[str] = field(default_factory=list)
    stat: HunkStat = field(default_factory=HunkStat)

    @classmethod
    def from_header(cls, header: str | tuple[Range, Range]) -> Hunk:
        """Build an empty hunk from a raw header or a ``(previous, current)`` pair."""
        if isinstance(header, str):
            previous, current = parse_header(header)
        else:
            previous, current = header
            header = generate_header(previous, current)

        top = current[0]
        bottom = current[0] + current[1] - 1

        if current[1] == 0:
            bottom = top
            kind = "remove"
        elif previous[1] == 0:
            kind = "add"
        else:
            kind = "change"

        return cls(header=header, previous=previous, current=current, top=top, bottom=bottom, kind=kind)

    def push(self, line: str) -> Hunk:
        if line.startswith("+"):
            self.stat.added += 1
        elif line.startswith("-"):
            self.stat.removed += 1
        self.diff.append(line)
        return self

    def removed_lines(self) -> list[str]:
        return [line[1:] for line in self.diff if line.startswith("-")]

    def added_lines(self) -> list[str]:
        return [line[1:] for line in self.diff if line.startswith("+")]


def build_hunk(header: str | tuple[Range, Range], lines: list[str] | None = None) -> Hunk:
    hunk = Hunk.from_header(header)
    for line in lines or []:
        hunk.push(line)
    return hunk


def parse_hunks(diff_text: str) -> list[Hunk]:
    """Split single-file ``git diff`` output into hunks.

    Everything before the first ``@@`` (the ``diff --git``/``---``/``+++``
    preamble) is skipped. Binary files produce no hunks.
    """
    hunks: list[Hunk] = []
    current: Hunk | None = None

    for line in diff_text.splitlines():
        if line.startswith("@@"):
            current = Hunk.from_header(line)
            hunks.append(current)
        elif current is None:
            continue
        elif line.startswith("\\"):
            # "\ No newline at end of file"
            continue
        elif line[:1] in ("+", "-", " "):
            current.push(line)

    return hunks


def _digest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8", errors="surrogateescape")).hexdigest()[:_CONTENT_ID_LENGTH]


def compute_content_id(hunk: Hunk, file_lines: list[str] | None = None, context_size: int | None = None) -> str:
    """Return the stable identifier of a hunk.

    With ``file_lines`` and a positive ``context_size``, up to ``context_size``
    unchanged lines above ``hunk.top`` and below ``hunk.bottom`` are folded in,
    which tells apart two identical edits made in different places of a file.
    """
    if not hunk.diff:
        return EMPTY_CONTENT_ID

    if file_lines is not None and context_size and context_size > 0:
        before_start = max(1, hunk.top - context_size)
        before = file_lines[before_start - 1 : max(hunk.top - 1, 0)]
        after = file_lines[hunk.bottom : min(len(file_lines), hunk.bottom + context_size)]
        return _digest("\n".join([*before, *hunk.diff, *after]))

    return _digest("\n".join(hunk.diff))


def content_ids_for(hunks: list[Hunk], file_lines: list[str] | None = None, context_size: int | None = None) -> list[str]:
    """Content IDs for every hunk of one file; a hunk-less file counts as one unit."""
    ids = [compute_content_id(h, file_lines, context_size) for h in hunks]
    return ids or [EMPTY_CONTENT_ID]
