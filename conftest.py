"""Shared fixtures: throwaway git repositories for integration tests."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

import pytest

_GIT_ENV = {
    "GIT_AUTHOR_NAME": "Test Author",
    "GIT_AUTHOR_EMAIL": "author@example.com",
    "GIT_COMMITTER_NAME": "Test Author",
    "GIT_COMMITTER_EMAIL": "author@example.com",
    "GIT_CONFIG_NOSYSTEM": "1",
}


class GitRepo:
    """A scratch repository with helpers to write files and commit them."""

    def __init__(self, path: Path):
        self.path = path

    def git(self, *args: str) -> str:
        result = subprocess.run(
            ["git", "-C", str(self.path), "-c", "commit.gpgsign=false", *args],
            capture_output=True,
            text=True,
            check=True,
            env={**os.environ, **_GIT_ENV},
        )
        return result.stdout

    def write(self, filename: str, content: str) -> None:
        target = self.path / filename
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)

    def remove(self, filename: str) -> None:
        self.git("rm", "-q", filename)

    def commit(self, message: str, files: dict[str, str] | None = None) -> str:
        for filename, content in (files or {}).items():
            self.write(filename, content)
        self.git("add", "-A")
        self.git("commit", "-q", "--allow-empty", "-m", message)
        return self.head()

    def head(self) -> str:
        return self.git("rev-parse", "HEAD").strip()

    def checkout(self, branch: str, create: bool = False) -> None:
        if create:
            self.git("checkout", "-q", "-b", branch)
        else:
            self.git("checkout", "-q", branch)


def numbered_lines(count: int, prefix: str = "line") -> list[str]:
    return [f"{prefix} {i}" for i in range(1, count + 1)]


def as_text(lines: list[str]) -> str:
    return "\n".join(lines) + "\n"


@pytest.fixture
def git_repo(tmp_path) -> GitRepo:
    """An empty repository on ``main``."""
    path = tmp_path / "project"
    path.mkdir()
    repo = GitRepo(path)
    repo.git("init", "-q", "-b", "main")
    return repo


@pytest.fixture
def feature_repo(git_repo) -> GitRepo:
    """``main`` with a 30-line ``a.lua``; ``feature`` edits lines 3, 15 and 27.

    With zero-context diffs that is exactly three hunks.
    """
    base = numbered_lines(30)
    git_repo.commit("initial", {"a.lua": as_text(base), "README.md": "# project\n"})
    git_repo.checkout("feature", create=True)

    changed = list(base)
    for n in (3, 15, 27):
        changed[n - 1] = f"changed {n}"
    git_repo.commit("edit a.lua", {"a.lua": as_text(changed)})
    return git_repo
