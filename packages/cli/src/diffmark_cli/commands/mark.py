"""mark, unmark and reset commands: the only commands that change review state."""

from __future__ import annotations

import click
from rich.console import Console

from diffmark_cli.session import review_run
from diffmark_core.navigation import Navigator
from diffmark_core.review.entries import matches
from diffmark_core.state import SEEN, UNSEEN

console = Console()


def _print_landing(navigator: Navigator) -> None:
    entry = navigator.current_entry()
    if entry is None:
        console.print("[dim]No entries left.[/dim]")
        return
    original, total = navigator.current_hunk_index()
    where = f" @ {entry.commit.short_hash}" if entry.commit else ""
    hunk = f"hunk {original}/{total}" if original is not None else "no hunks"
    console.print(f"[dim]Next: {entry.filename}{where}, {hunk} ({entry.type})[/dim]")


def _set_seen(ctx, filename: str, hunk: int | None, commit_hash: str | None, mark_as_seen: bool) -> None:
    target = SEEN if mark_as_seen else UNSEEN
    source = UNSEEN if mark_as_seen else SEEN

    with review_run(ctx) as run:
        session, navigator = run.session, run.navigator
        if not any(matches(e, filename, commit_hash) for e in session.entries):
            raise click.ClickException(f"{filename} has no changes on this branch.")

        if hunk is None:
            entry = session.find_entry(filename, commit_hash, source)
            if entry is None:
                console.print(f"[yellow]{filename} is already fully {target}.[/yellow]")
                return
            navigator.move_to(entry.id)
            if mark_as_seen:
                navigator.mark_file()
            else:
                navigator.unmark_file()
            console.print(f"[green]Marked every hunk of {filename} as {target}.[/green]")
            _print_landing(navigator)
            return

        entry = session.find_entry(filename, commit_hash, source)
        total = session.ensure_hunk_count(entry or session.find_entry(filename, commit_hash))
        if not 1 <= hunk <= total:
            raise click.BadParameter(f"{filename} has {total} hunk(s); got {hunk}.", param_hint="--hunk")

        if entry is None or session.is_hunk_seen(entry, hunk) == mark_as_seen:
            console.print(f"[yellow]Hunk {hunk} of {filename} is already {target}.[/yellow]")
            return

        navigator.move_to(entry.id, hunk)
        if mark_as_seen:
            navigator.mark_hunk()
        else:
            navigator.unmark_hunk()
        console.print(f"[green]Marked hunk {hunk}/{total} of {filename} as {target}.[/green]")
        _print_landing(navigator)


_hunk_option = click.option("--hunk", type=int, default=None, help="Hunk number as printed by `diffmark show`. Omit for the whole file.")
_commit_option = click.option("--commit", "commit_hash", default=None, help="Commit (hash prefix) the file belongs to, in by-commit mode.")


@click.command("mark")
@click.argument("filename")
@_hunk_option
@_commit_option
@click.pass_context
def mark_cmd(ctx, filename: str, hunk: int | None, commit_hash: str | None):
    """Mark a hunk of FILENAME (or the whole file) as seen.

    Marks follow hunk content, not line numbers: a hunk stays seen after
    rebases and unrelated edits as long as its text and surroundings match.
    """
    _set_seen(ctx, filename, hunk, commit_hash, mark_as_seen=True)


@click.command("unmark")
@click.argument("filename")
@_hunk_option
@_commit_option
@click.pass_context
def unmark_cmd(ctx, filename: str, hunk: int | None, commit_hash: str | None):
    """Return a hunk of FILENAME (or the whole file) to the unseen list."""
    _set_seen(ctx, filename, hunk, commit_hash, mark_as_seen=False)


@click.command("reset")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@click.pass_context
def reset_cmd(ctx, yes: bool):
    """Clear every mark of the current branch and review mode."""
    with review_run(ctx) as run:
        session, navigator = run.session, run.navigator
        count = len(session.state.marks)
        if count == 0:
            console.print("[yellow]Nothing is marked as seen.[/yellow]")
            return
        if not yes and not click.confirm(f"Clear {count} mark(s) on {session.key.branch_name}?", default=False):
            console.print("[dim]Aborted.[/dim]")
            return
        navigator.reset_marks()
        console.print(f"[green]Cleared {count} mark(s).[/green]")
        _print_landing(navigator)
