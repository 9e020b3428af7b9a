"""Git-backed loading helpers used by both review variants."""

from __future__ import annotations

import logging

from diffmark_core.diff import Diff, render_diff
from diffmark_core.errors import GitError
from diffmark_core.git import branch as git_branch
from diffmark_core.git import repo as git_repo
from diffmark_core.hunk import content_ids_for

logger = logging.getLogger(__name__)


def resolve_base(repo: str, base_override: str | None, auto_fetch: bool = False) -> str:
    base = base_override or git_branch.detect_base(repo)
    if auto_fetch and git_branch.ref_exists(repo, f"refs/remotes/{base}"):
        git_branch.fetch_ref_if_stale(repo, base)
    return base


def load_unit_diff(
    repo: str,
    parent: str,
    current: str,
    filename: str,
    is_deleted: bool,
    context_lines: int,
) -> Diff:
    """Hunks of ``filename`` between two refs, rendered, with content IDs attached."""
    hunks = git_repo.list_hunks(repo, parent, current, filename)

    lines: list[str] = []
    if not is_deleted:
        try:
            lines = git_repo.show_lines(repo, filename, current)
        except GitError as e:
            logger.debug("No content for %s at %s: %s", filename, current, e)

    diff = render_diff(hunks, lines, is_deleted=is_deleted)
    diff.content_ids = content_ids_for(hunks, lines, context_lines)
    return diff
