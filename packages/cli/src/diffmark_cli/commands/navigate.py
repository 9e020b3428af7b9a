"""show and next commands: read-only views of the filtered diff."""

from __future__ import annotations

import click
from rich.console import Console

from diffmark_cli.render import print_diff
from diffmark_cli.session import review_run
from diffmark_core.review.entries import matches
from diffmark_core.state import SEEN, UNSEEN

console = Console()


@click.command("show")
@click.argument("filename")
@click.option("--commit", "commit_hash", default=None, help="Commit (hash prefix) to show, in by-commit mode.")
@click.option("--seen", is_flag=True, help="Show the hunks already marked as seen instead of the unseen ones.")
@click.pass_context
def show_cmd(ctx, filename: str, commit_hash: str | None, seen: bool):
    """Show the unseen (or seen) hunks of FILENAME.

    Hunk numbers are positions in the file's full hunk list, so they can be
    passed to `diffmark mark --hunk` regardless of which hunks are hidden.
    """
    entry_type = SEEN if seen else UNSEEN
    with review_run(ctx) as run:
        session, navigator = run.session, run.navigator
        entry = session.find_entry(filename, commit_hash, entry_type)
        if entry is None:
            if not any(matches(e, filename, commit_hash) for e in session.entries):
                raise click.ClickException(f"{filename} has no changes on this branch.")
            console.print(f"[yellow]{filename} has no {entry_type} hunks.[/yellow]")
            return

        navigator.move_to(entry.id)
        print_diff(console, session, entry, navigator.current_diff(), navigator.cursor.hunk)
        navigator.save_position()


@click.command("next")
@click.option("--seen", is_flag=True, help="Jump to the first seen hunk instead of the first unseen one.")
@click.pass_context
def next_cmd(ctx, seen: bool):
    """Show the next hunk that still needs review (or, with --seen, was already reviewed)."""
    with review_run(ctx) as run:
        session, navigator = run.session, run.navigator
        entry = navigator.first_hunk_matching(seen)
        if entry is None:
            if seen:
                console.print("[yellow]Nothing has been marked as seen yet.[/yellow]")
            else:
                console.print("[green]Every hunk on this branch has been seen.[/green]")
            return

        original, total = navigator.current_hunk_index()
        console.print(f"[dim]Hunk {original}/{total} of {entry.filename}[/dim]")
        print_diff(console, session, entry, navigator.current_diff(), navigator.cursor.hunk, only_current=True)
        navigator.save_position()
