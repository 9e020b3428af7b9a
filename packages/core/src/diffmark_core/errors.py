"""Domain errors raised by diffmark_core.

Every error here is scoped to one review session. Callers (the CLI, an
editor integration) decide how to present it. None of them should ever take
down the host process.
"""

from __future__ import annotations


class DiffmarkError(Exception):
    """Base class for review-session failures with a human-readable message."""


class GitError(DiffmarkError):
    """A git invocation failed (bad ref, no merge-base, process error)."""

    def __init__(self, message: str, args: list[str] | None = None, stderr: str = ""):
        super().__init__(message)
        self.git_args = args or []
        self.stderr = stderr


class RepositoryNotFoundError(DiffmarkError):
    pass


class BaseBranchNotFoundError(DiffmarkError):
    pass


class NoChangesError(DiffmarkError):
    """The branch has nothing to review relative to its base.

    Informational, not a failure: the CLI prints it and exits cleanly.
    """

    def __init__(self, base_branch: str):
        super().__init__(f"Branch is the same as {base_branch}")
        self.base_branch = base_branch


class HunkParseError(DiffmarkError, ValueError):
    pass
