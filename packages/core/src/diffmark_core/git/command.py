"""Thin subprocess wrapper around the git CLI."""

from __future__ import annotations

import logging
import subprocess

from diffmark_core.errors import GitError

logger = logging.getLogger(__name__)

_GIT_TIMEOUT = 30


def run_git(repo: str, args: list[str], timeout: int = _GIT_TIMEOUT) -> str:
    """Run ``git -C <repo> <args>`` and return stdout.

    Raises GitError on a non-zero exit, a missing git binary, or a timeout.
    """
    if not repo:
        raise ValueError("repo is required")

    cmd = ["git", "-C", repo, "-c", "core.quotepath=off", *args]
    logger.debug("Running %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError:
        raise GitError("git executable not found on PATH", args)
    except subprocess.TimeoutExpired:
        raise GitError(f"git {' '.join(args)} timed out after {timeout}s", args)

    if result.returncode != 0:
        stderr = result.stderr.strip()
        raise GitError(stderr or f"git {' '.join(args)} failed with exit code {result.returncode}", args, stderr)

    return result.stdout


def run_git_lines(repo: str, args: list[str]) -> list[str]:
    return run_git(repo, args).splitlines()


def git_succeeds(repo: str, args: list[str]) -> bool:
    try:
        run_git(repo, args)
    except GitError:
        return False
    return True
