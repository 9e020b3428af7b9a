"""sessions and forget commands: inspect and delete persisted review state."""

from __future__ import annotations

from datetime import datetime

import click
from rich.console import Console
from rich.table import Table

from diffmark_core.errors import DiffmarkError
from diffmark_core.git import branch as git_branch
from diffmark_core.git import repo as git_repo

console = Console()


def _require_store(ctx):
    from diffmark_store.noop import NoOpStateStore

    store = ctx.obj.get("store") if ctx.obj else None
    if store is None or isinstance(store, NoOpStateStore):
        raise click.UsageError("No state store configured. Set 'store: json' in .diffmark.yml.")
    return store


def _current_repo() -> tuple[str, str]:
    """Return ``(repo_name, branch_name)`` for the working directory."""
    try:
        toplevel = git_repo.discover(".")
        return git_repo.repo_name(toplevel), git_branch.current(toplevel)
    except DiffmarkError as e:
        raise click.ClickException(str(e)) from e


@click.command("sessions")
@click.pass_context
def sessions_cmd(ctx):
    """List the review states saved for this repository, most recent first."""
    store = _require_store(ctx)
    repo, branch = _current_repo()

    states = store.list_states(repo)
    if not states:
        console.print("[yellow]No saved review states for this repository.[/yellow]")
        return

    table = Table(title=f"Review states: {repo}", show_header=True, header_style="bold cyan")
    table.add_column("Branch", style="bold", no_wrap=True)
    table.add_column("Mode", no_wrap=True)
    table.add_column("Marks", justify="right")
    table.add_column("Last used", no_wrap=True)

    for info in states:
        name = f"[green]{info.branch_name}[/green]" if info.branch_name == branch else info.branch_name
        last_used = datetime.fromtimestamp(info.last_used).strftime("%Y-%m-%d %H:%M:%S") if info.last_used else "-"
        table.add_row(name, info.mode.replace("_", "-"), str(info.mark_count), last_used)

    console.print(table)


@click.command("forget")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@click.pass_context
def forget_cmd(ctx, yes: bool):
    """Delete the saved review state of the current branch and mode."""
    store = _require_store(ctx)
    repo, branch = _current_repo()
    mode = ctx.obj["config"]["mode"]

    path = store.state_path(repo, branch, mode)
    if not yes and not click.confirm(f"Delete saved marks for {branch} ({mode.replace('_', '-')})?", default=False):
        console.print("[dim]Aborted.[/dim]")
        return

    if store.delete(repo, branch, mode):
        console.print(f"[green]Deleted {path}.[/green]")
    else:
        console.print(f"[yellow]No saved state for {branch} ({mode.replace('_', '-')}).[/yellow]")
