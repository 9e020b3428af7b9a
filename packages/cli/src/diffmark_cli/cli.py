"""CLI entry point for diffmark.

Commands:
  review    list changed files split into Seen and Unseen sections
  show      show the seen or unseen hunks of one file
  mark      mark a hunk (or a whole file) as reviewed
  unmark    return a hunk (or a whole file) to the unseen list
  next      jump to the next unseen (or seen) hunk
  reset     clear every mark of the current session
  sessions  list persisted review states for this repository
  forget    delete the persisted state of the current branch and mode
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from diffmark_cli.commands.mark import mark_cmd, reset_cmd, unmark_cmd
from diffmark_cli.commands.navigate import next_cmd, show_cmd
from diffmark_cli.commands.review import review_cmd
from diffmark_cli.commands.sessions import forget_cmd, sessions_cmd

console = Console()


def _build_store(config: dict):
    """Instantiate the configured state store from .diffmark.yml settings.

    Store selection:
      store: json  → JsonStateStore under data_dir (default: platform user data dir)
      store: none  → NoOpStateStore (marks live for one invocation only)

    This factory lives in cli.py so neither diffmark_core nor diffmark_store
    know about the CLI config format.
    """
    from diffmark_store.noop import NoOpStateStore

    if config.get("store") == "json":
        import platformdirs

        from diffmark_store.json_store import JsonStateStore

        data_root = config.get("data_dir") or platformdirs.user_data_path()
        return JsonStateStore(data_root=data_root, max_states=config.get("max_states", 16))

    return NoOpStateStore()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("diffmark"),
    prog_name="diffmark",
)
@click.option(
    "--config",
    "config_path",
    default=".diffmark.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="DIFFMARK_CONFIG",
)
@click.option(
    "--mode",
    type=click.Choice(["by-file", "by-commit"]),
    default=None,
    help="Review mode. Overrides config file.",
)
@click.option("--base", "base_branch", default=None, help="Base ref to diff against. Default: auto-detect.")
@click.option("--verbose", "-v", is_flag=True, help="Log git calls and cache decisions.")
@click.pass_context
def main(ctx: click.Context, config_path: str, mode: str | None, base_branch: str | None, verbose: bool):
    """Track which hunks of a branch you have already reviewed."""
    from diffmark_core.config import load_config

    ctx.ensure_object(dict)
    _setup_logging(verbose)

    try:
        config = load_config(config_path, cli_overrides={"mode": mode, "base_branch": base_branch})
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.call_on_close(store.close)


main.add_command(review_cmd)
main.add_command(show_cmd)
main.add_command(mark_cmd)
main.add_command(unmark_cmd)
main.add_command(next_cmd)
main.add_command(reset_cmd)
main.add_command(sessions_cmd)
main.add_command(forget_cmd)
