"""Repository discovery and per-file content/hunk retrieval."""

from __future__ import annotations

import logging
import os

from diffmark_core.errors import GitError, RepositoryNotFoundError
from diffmark_core.git.command import run_git
from diffmark_core.hunk import Hunk, parse_hunks

logger = logging.getLogger(__name__)


def discover(path: str = ".") -> str:
    """Return the absolute toplevel directory of the repository containing ``path``."""
    try:
        toplevel = run_git(path, ["rev-parse", "--show-toplevel"]).strip()
    except GitError:
        raise RepositoryNotFoundError(f"No git repository found at {os.path.abspath(path)}")
    if not toplevel:
        raise RepositoryNotFoundError(f"No git repository found at {os.path.abspath(path)}")
    return toplevel


def repo_name(toplevel: str) -> str:
    return os.path.basename(os.path.normpath(toplevel))


def show_lines(repo: str, filename: str, ref: str) -> list[str]:
    """Content of ``filename`` at ``ref``, split into lines."""
    if not filename:
        raise ValueError("filename is required")
    if not ref:
        raise ValueError("ref is required")
    return run_git(repo, ["--no-pager", "show", f"{ref}:{filename}"]).splitlines()


def list_hunks(repo: str, parent: str, current: str, filename: str) -> list[Hunk]:
    """Zero-context hunks of ``filename`` between two refs."""
    if not parent or not current:
        raise ValueError("parent and current refs are required")
    output = run_git(
        repo,
        ["--no-pager", "diff", "--no-color", "--no-ext-diff", "-U0", parent, current, "--", filename],
    )
    return parse_hunks(output)
