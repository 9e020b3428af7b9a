"""Line-by-line rendering of a file's hunks.

A ``Diff`` is what the UI layer consumes: the rendered lines, one mark per
hunk giving its rendered line range, and a running stat. When it was produced
by filtering, ``original_indices[i]`` is the 1-based position in the full
hunk list of the hunk shown at filtered position ``i + 1``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from diffmark_core.hunk import Hunk


@dataclass(frozen=True)
class DiffLine:
    kind: str  # " " context, "+" added, "-" removed
    text: str
    lnum: int | None = None  # line number in the current file; None for removed lines


@dataclass(frozen=True)
class Mark:
    top: int  # first rendered line of the hunk (1-based)
    bot: int  # last rendered line of the hunk
    top_relative: int  # hunk bounds in the current file
    bot_relative: int


@dataclass
class DiffStat:
    added: int = 0
    removed: int = 0


@dataclass
class Diff:
    hunks: list[Hunk] = field(default_factory=list)
    marks: list[Mark] = field(default_factory=list)
    lines: list[DiffLine] = field(default_factory=list)
    stat: DiffStat = field(default_factory=DiffStat)
    file_lines: list[str] = field(default_factory=list)
    is_deleted: bool = False
    content_ids: list[str] = field(default_factory=list)
    original_indices: list[int] | None = None
    entry_type: str | None = None

    @classmethod
    def empty(cls, entry_type: str | None = None) -> Diff:
        return cls(original_indices=[], entry_type=entry_type)

    def mark_at(self, lnum: int) -> int | None:
        """Return the 1-based hunk index whose rendered range covers ``lnum``.

        Between two hunks the preceding one wins, so a cursor sitting on
        context lines still has a current hunk.
        """
        if not self.marks:
            return None
        for i, mark in enumerate(self.marks, 1):
            if mark.top <= lnum <= mark.bot:
                return i
            if mark.top > lnum:
                return max(1, i - 1)
        return len(self.marks)


def render_diff(hunks: list[Hunk], file_lines: list[str], is_deleted: bool = False) -> Diff:
    """Interleave ``hunks`` with the current file content in unified layout.

    Hunks must come from a zero-context diff (``git diff -U0``) and be sorted
    by position, which is how git emits them.
    """
    lines: list[DiffLine] = []
    marks: list[Mark] = []
    stat = DiffStat()
    emitted = 0  # number of current-file lines written so far

    def emit_context(until: int) -> None:
        nonlocal emitted
        while emitted < min(until, len(file_lines)):
            lines.append(DiffLine(" ", file_lines[emitted], emitted + 1))
            emitted += 1

    for hunk in hunks:
        # A pure removal is anchored after line ``top``; everything else replaces from ``top``.
        emit_context(hunk.top if hunk.kind == "remove" else hunk.top - 1)

        mark_top = len(lines) + 1
        for text in hunk.removed_lines():
            lines.append(DiffLine("-", text))
        for text in hunk.added_lines():
            lines.append(DiffLine("+", text, emitted + 1))
            emitted += 1
        stat.added += hunk.stat.added
        stat.removed += hunk.stat.removed

        if len(lines) >= mark_top:
            marks.append(Mark(mark_top, len(lines), hunk.top, hunk.bottom))

    emit_context(len(file_lines))

    return Diff(
        hunks=list(hunks),
        marks=marks,
        lines=lines,
        stat=stat,
        file_lines=file_lines,
        is_deleted=is_deleted,
    )
