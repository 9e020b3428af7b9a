"""Branch, ref and change-set queries against the local repository.

Every function takes the repository toplevel path first and raises GitError
when git refuses; missing arguments are rejected with ValueError before any
process is spawned.
"""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path

from diffmark_core.errors import BaseBranchNotFoundError, GitError
from diffmark_core.git.command import git_succeeds, run_git, run_git_lines
from diffmark_core.git.status import FileStatus, parse_name_status, parse_status_line

logger = logging.getLogger(__name__)

# Background fetches of the base ref run at most this often per repository.
FETCH_INTERVAL_SECONDS = 3600

_COMMIT_MARKER = "COMMIT:"
_FIELD_SEP = "\x1f"


@dataclass(frozen=True)
class Commit:
    hash: str
    short_hash: str
    subject: str


def _require(**values: str | None) -> None:
    for name, value in values.items():
        if not value:
            raise ValueError(f"{name} is required")


def current(repo: str) -> str:
    """Name of the checked-out branch (``HEAD`` when detached)."""
    _require(repo=repo)
    name = run_git(repo, ["rev-parse", "--abbrev-ref", "HEAD"]).strip()
    if not name:
        raise GitError("Could not determine current branch")
    return name


def head(repo: str) -> str:
    _require(repo=repo)
    sha = run_git(repo, ["rev-parse", "HEAD"]).strip()
    if not sha:
        raise GitError("Could not determine HEAD")
    return sha


def exists(repo: str, branch_name: str) -> bool:
    """True if a local branch called ``branch_name`` exists."""
    if not repo or not branch_name:
        return False
    return git_succeeds(repo, ["show-ref", "--verify", "--quiet", f"refs/heads/{branch_name}"])


def ref_exists(repo: str, ref: str) -> bool:
    """True if ``ref`` resolves to anything (branch, remote-tracking ref, tag, sha)."""
    if not repo or not ref:
        return False
    return git_succeeds(repo, ["rev-parse", "--verify", "--quiet", ref])


def merge_base(repo: str, ref1: str, ref2: str) -> str:
    _require(repo=repo, ref1=ref1, ref2=ref2)
    sha = run_git(repo, ["merge-base", ref1, ref2]).strip()
    if not sha:
        raise GitError(f"Could not find merge-base of {ref1} and {ref2}")
    return sha


def detect_base(repo: str) -> str:
    """Guess the branch this one will merge into.

    Remote-tracking refs win over local branches of the same name: a local
    ``main`` that was never pulled would otherwise make every upstream commit
    show up as part of the review. Order: ``origin/HEAD`` target,
    ``origin/main``, ``origin/master``, local ``main``, local ``master``.
    """
    _require(repo=repo)

    try:
        symbolic = run_git(repo, ["symbolic-ref", "refs/remotes/origin/HEAD"]).strip()
    except GitError:
        symbolic = ""
    prefix = "refs/remotes/origin/"
    if symbolic.startswith(prefix) and symbolic[len(prefix) :]:
        return "origin/" + symbolic[len(prefix) :]

    for candidate in ("origin/main", "origin/master"):
        if ref_exists(repo, candidate):
            return candidate

    for candidate in ("main", "master"):
        if exists(repo, candidate):
            return candidate

    raise BaseBranchNotFoundError("Could not detect base branch. Please specify it as an argument.")


def commits_in_range(repo: str, base_ref: str, head_ref: str = "HEAD") -> list[Commit]:
    """Commits in ``base_ref..head_ref``, oldest first."""
    _require(repo=repo, base_ref=base_ref)
    lines = run_git_lines(
        repo,
        [
            "--no-pager",
            "log",
            "--reverse",
            f"--pretty=format:%H{_FIELD_SEP}%h{_FIELD_SEP}%s",
            f"{base_ref}..{head_ref}",
        ],
    )
    commits = []
    for line in lines:
        parts = line.split(_FIELD_SEP, 2)
        if len(parts) == 3 and parts[0]:
            commits.append(Commit(hash=parts[0], short_hash=parts[1], subject=parts[2]))
    return commits


def changed_files(repo: str, base_ref: str, head_ref: str = "HEAD") -> list[FileStatus]:
    """Files changed on ``head_ref`` since it diverged from ``base_ref``."""
    _require(repo=repo, base_ref=base_ref)
    lines = run_git_lines(repo, ["--no-pager", "diff", "--name-status", f"{base_ref}...{head_ref}"])
    return parse_name_status(lines)


def commit_files(repo: str, commit_hash: str) -> list[FileStatus]:
    _require(repo=repo, commit_hash=commit_hash)
    lines = run_git_lines(
        repo, ["--no-pager", "diff-tree", "--no-commit-id", "--name-status", "-r", commit_hash]
    )
    return parse_name_status(lines)


def parse_commit_file_log(lines: list[str]) -> dict[str, list[FileStatus]]:
    """Parse ``git log --name-status --pretty=format:COMMIT:%H`` output."""
    result: dict[str, list[FileStatus]] = {}
    files: list[FileStatus] | None = None

    for line in lines:
        if line.startswith(_COMMIT_MARKER):
            files = []
            result[line[len(_COMMIT_MARKER) :].strip()] = files
        elif line.strip() and files is not None:
            status = parse_status_line(line)
            if status is not None:
                files.append(status)

    return result


def all_commit_files(repo: str, base_ref: str, head_ref: str = "HEAD") -> dict[str, list[FileStatus]]:
    """Changed files for every commit in ``base_ref..head_ref`` in one git call."""
    _require(repo=repo, base_ref=base_ref)
    lines = run_git_lines(
        repo,
        [
            "--no-pager",
            "log",
            "--reverse",
            "--name-status",
            f"--pretty=format:{_COMMIT_MARKER}%H",
            f"{base_ref}..{head_ref}",
        ],
    )
    return parse_commit_file_log(lines)


# ---------------------------------------------------------------------------
# Background fetch of the base ref
# ---------------------------------------------------------------------------


@dataclass
class _FetchState:
    last_success: float | None = None
    in_progress: bool = False


_fetch_states: dict[str, _FetchState] = {}
_fetch_lock = threading.Lock()

# Touched in the git dir when a background fetch starts so the interval holds
# across separate processes, not just within one.
FETCH_STAMP_NAME = "diffmark-fetch"


def _fetch_stamp_path(repo: str) -> Path | None:
    try:
        git_dir = run_git(repo, ["rev-parse", "--absolute-git-dir"]).strip()
    except GitError as e:
        logger.debug("Cannot locate git dir for %s: %s", repo, e)
        return None
    return Path(git_dir) / FETCH_STAMP_NAME if git_dir else None


def _last_fetch_time(stamp: Path | None) -> float | None:
    """Most recent fetch recorded on disk: our stamp or git's own FETCH_HEAD."""
    if stamp is None:
        return None
    times = []
    for path in (stamp, stamp.with_name("FETCH_HEAD")):
        try:
            times.append(path.stat().st_mtime)
        except OSError:
            continue
    return max(times) if times else None


def _run_fetch(repo: str, remote: str, branch: str, state: _FetchState, stamp: Path | None = None) -> None:
    try:
        result = subprocess.run(
            ["git", "-C", repo, "fetch", remote, branch],
            capture_output=True,
            text=True,
            timeout=120,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        logger.warning("Background fetch of %s/%s failed: %s", remote, branch, e)
        result = None

    with _fetch_lock:
        state.in_progress = False
        if result is not None and result.returncode == 0:
            state.last_success = time.time()
            logger.info("Fetched %s/%s; reopen the review to see the updated diff", remote, branch)
            return
        if result is not None:
            logger.warning("Background fetch of %s/%s failed: %s", remote, branch, result.stderr.strip())
        # A failed attempt must not hold off the next one.
        if stamp is not None:
            stamp.unlink(missing_ok=True)


def fetch_ref_if_stale(repo: str, ref: str, interval: float = FETCH_INTERVAL_SECONDS) -> threading.Thread | None:
    """Fetch a remote-tracking ref in the background unless done recently.

    Never blocks the review: returns the started thread, or None when the
    ref is not remote-qualified, a fetch is already running, or the last
    fetch (in this process or recorded in the git dir by an earlier one) is
    younger than ``interval``.
    """
    if not repo or not ref or "/" not in ref:
        return None
    remote, branch = ref.split("/", 1)
    if not remote or not branch:
        return None

    stamp = _fetch_stamp_path(repo)
    now = time.time()

    with _fetch_lock:
        state = _fetch_states.setdefault(repo, _FetchState())
        if state.in_progress:
            return None
        if state.last_success is not None and now - state.last_success < interval:
            return None
        last_on_disk = _last_fetch_time(stamp)
        if last_on_disk is not None and now - last_on_disk < interval:
            logger.debug("Skipping fetch of %s: last fetch was %.0fs ago", ref, now - last_on_disk)
            return None
        if stamp is not None:
            try:
                stamp.touch()
            except OSError as e:
                logger.debug("Cannot write fetch stamp %s: %s", stamp, e)
        state.in_progress = True

    thread = threading.Thread(target=_run_fetch, args=(repo, remote, branch, state, stamp), daemon=True)
    thread.start()
    return thread
