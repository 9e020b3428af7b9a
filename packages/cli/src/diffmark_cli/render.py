"""Rich rendering of review sections and filtered diffs."""

from __future__ import annotations

from rich.console import Console
from rich.text import Text
from rich.tree import Tree

from diffmark_core.diff import Diff
from diffmark_core.review.entries import Entry
from diffmark_core.review.session import ReviewSession
from diffmark_core.state import SEEN

DISPLAY_CONTEXT = 3  # context lines printed around each hunk

_STATUS_STYLE = {
    "A": "green",
    "M": "yellow",
    "D": "red",
    "R": "cyan",
}

_LINE_STYLE = {
    "+": "green",
    "-": "red",
    " ": "dim",
}


def entry_label(session: ReviewSession, entry: Entry) -> Text:
    """``M  path/to/file  2/3 seen`` with the status letter coloured."""
    content_ids = session.ensure_content_ids(entry)
    seen = session.state.seen_count(session.get_entry_key(entry), content_ids)
    code = entry.status.code
    label = Text()
    label.append(f"{code}  ", style=_STATUS_STYLE.get(code, "white"))
    label.append(entry.status.label, style="bold")
    label.append(f"  {seen}/{len(content_ids)} seen", style="dim")
    return label


def sections_tree(session: ReviewSession) -> Tree:
    key = session.key
    root = Tree(f"[bold]{key.branch_name}[/bold] vs [cyan]{key.base_branch}[/cyan] ({session.mode.replace('_', '-')})")
    for section in session.sections:
        style = "green" if section.title == "Seen" else "yellow"
        node = root.add(f"[bold {style}]{section.title}[/bold {style}] ({len(section.entries)})")
        for group in section.groups:
            parent = node
            if group.commit is not None:
                parent = node.add(f"[magenta]{group.commit.short_hash}[/magenta] {group.commit.subject}")
            for entry in group.entries:
                parent.add(entry_label(session, entry))
    return root


def print_diff(
    console: Console,
    session: ReviewSession,
    entry: Entry,
    diff: Diff,
    current_hunk: int | None = None,
    only_current: bool = False,
) -> None:
    """Print each hunk of ``diff`` with its original (unfiltered) hunk number.

    ``current_hunk`` is the 1-based filtered index to highlight. With
    ``only_current`` every other hunk is skipped.
    """
    total = session.ensure_hunk_count(entry)
    where = f" @ {entry.commit.short_hash}" if entry.commit else ""
    console.print(f"[bold]{entry.status.label}[/bold]{where} [dim]({entry.type}, +{diff.stat.added} -{diff.stat.removed})[/dim]")

    if not diff.marks:
        if diff.original_indices:
            console.print(f"[dim]No textual changes (hunk 1/{total}).[/dim]")
        else:
            console.print(f"[dim]No {entry.type} hunks.[/dim]")
        return

    indices = diff.original_indices or list(range(1, len(diff.marks) + 1))
    for i, mark in enumerate(diff.marks, 1):
        if only_current and i != current_hunk:
            continue
        original = indices[i - 1] if i <= len(indices) else i
        pointer = "▶ " if i == current_hunk else "  "
        state = "seen" if entry.type == SEEN else "unseen"
        console.print(
            f"{pointer}[bold cyan]hunk {original}/{total}[/bold cyan] "
            f"[dim]lines {mark.top_relative}-{mark.bot_relative}, {state}[/dim]"
        )
        start = max(mark.top - 1 - DISPLAY_CONTEXT, 0)
        end = min(mark.bot + DISPLAY_CONTEXT, len(diff.lines))
        for line in diff.lines[start:end]:
            lnum = f"{line.lnum:>5}" if line.lnum is not None else "     "
            text = Text(f"{lnum} {line.kind} {line.text}", style=_LINE_STYLE.get(line.kind, ""))
            console.print(text, highlight=False)
        console.print()
