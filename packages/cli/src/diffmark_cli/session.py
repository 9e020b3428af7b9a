"""Bridges a core ReviewSession and the configured state store.

The CLI layer owns this mapping: diffmark_core has no store knowledge and
diffmark_store has no core knowledge.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

import click
from rich.console import Console
from rich.markup import escape

from diffmark_core.errors import DiffmarkError, NoChangesError
from diffmark_core.navigation import Navigator
from diffmark_core.review.session import ReviewSession
from diffmark_core.state import ReviewState, SessionKey
from diffmark_store.base import BaseStateStore, StateLoadError, StateSaveError
from diffmark_store.models import PersistedState

logger = logging.getLogger(__name__)

console = Console()


def state_to_record(state: ReviewState) -> PersistedState:
    """Map a ReviewState snapshot to the record the store persists."""
    snapshot = state.snapshot()
    return PersistedState(
        marks={f"{key}:{content_id}" for key, content_id in snapshot.marks},
        hunk_counts=snapshot.hunk_counts,
        content_ids=snapshot.content_ids,
    )


def record_to_marks(record: PersistedState) -> set[tuple[str, str]]:
    """Split persisted ``"<entry_key>:<content_id>"`` strings back into pairs.

    Content IDs never contain a colon, so the last one separates the two
    even when a filename has colons of its own.
    """
    marks = set()
    for mark in record.marks:
        key, sep, content_id = mark.rpartition(":")
        if not sep or not key:
            logger.warning("Ignoring malformed mark %r", mark)
            continue
        marks.add((key, content_id))
    return marks


@dataclass
class ReviewRun:
    """One CLI invocation's review session plus its persistence policy."""

    store: BaseStateStore
    persist: bool = True
    session: ReviewSession | None = None
    navigator: Navigator | None = None

    def restore_state(self, key: SessionKey, state: ReviewState) -> None:
        """Seed a freshly created ReviewState from the store.

        A state file that cannot be read is never overwritten silently: the
        user either deletes it and starts fresh, or keeps it and runs with
        session-only marks.
        """
        try:
            record = self.store.load(key.repo_name, key.branch_name, key.mode)
        except StateLoadError as e:
            logger.warning("%s", e)
            console.print(f"[yellow]Warning: {escape(str(e))}[/yellow]")
            if click.confirm("Delete corrupted state and start fresh?", default=True):
                self.store.delete(key.repo_name, key.branch_name, key.mode)
            else:
                console.print("[dim]Continuing without saving marks for this run.[/dim]")
                self.persist = False
            return

        if record is None:
            logger.debug("No saved state for %s/%s (%s)", key.repo_name, key.branch_name, key.mode)
            return
        state.restore(record_to_marks(record), record.hunk_counts, record.content_ids)
        logger.debug("Restored %d marks for %s", len(record.marks), key.branch_name)

    def save(self) -> None:
        if not self.persist or self.session is None or self.session.state is None:
            return
        key = self.session.key
        self.store.save(key.repo_name, key.branch_name, key.mode, state_to_record(self.session.state))


@contextmanager
def review_run(ctx: click.Context) -> Iterator[ReviewRun]:
    """Open, fetch and position a review session; save it when the command is done.

    A branch with nothing to review is reported and exits cleanly. Any other
    domain error becomes a ClickException. A failed save is reported as a
    warning; the command itself still succeeds.
    """
    config = ctx.obj["config"]
    run = ReviewRun(store=ctx.obj["store"])

    try:
        run.session = ReviewSession(
            mode=config["mode"],
            context_lines=config["context_lines"],
            restore=run.restore_state,
            auto_fetch=config["auto_fetch"],
        )
        run.session.fetch(config.get("base_branch"))
    except NoChangesError as e:
        console.print(f"[yellow]{e}. Nothing to review.[/yellow]")
        ctx.exit(0)
    except DiffmarkError as e:
        raise click.ClickException(str(e)) from e

    run.navigator = Navigator(run.session)
    run.navigator.restore()

    try:
        yield run
    except DiffmarkError as e:
        raise click.ClickException(str(e)) from e

    try:
        run.save()
    except StateSaveError as e:
        logger.warning("%s", e)
        console.print(f"[yellow]Warning: {escape(str(e))}[/yellow]")
        console.print("[yellow]Marks from this run were not saved.[/yellow]")
