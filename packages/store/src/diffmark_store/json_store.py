"""JsonStateStore: one JSON file per (repository, branch, review mode).

Layout under the data root::

    diffmark/<repo>/<branch with "/" -> "--">/<mode>.json

Each file holds::

    {"version": 1, "marks": {"<entry_key>:<content_id>": true},
     "hunkCounts": {...}, "contentIds": {...},
     "lastUsed": <unix timestamp>, "branchName": "<branch>"}

Writes are atomic (temp file in the same directory, then ``os.replace``) so a
crash mid-save never leaves a half-written file behind. The number of files
per repository is capped; the least recently used ones are evicted before a
new file is created.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Callable

from diffmark_store.base import BaseStateStore, SchemaVersionError, StateLoadError, StateSaveError
from diffmark_store.models import CURRENT_VERSION, PersistedState, StoredStateInfo

logger = logging.getLogger(__name__)

APP_NAMESPACE = "diffmark"
DEFAULT_MAX_STATES = 16


def encode_branch(branch: str) -> str:
    """Keep a branch name to a single path segment: ``feature/x`` -> ``feature--x``."""
    return branch.replace("/", "--")


class JsonStateStore(BaseStateStore):
    """Stores review state as JSON files under a per-user data directory.

    ``clock`` supplies the ``lastUsed`` timestamp; tests pass a fake one to
    control eviction order.
    """

    def __init__(self, data_root: str | Path, max_states: int = DEFAULT_MAX_STATES, clock: Callable[[], float] = time.time):
        self._root = Path(data_root) / APP_NAMESPACE
        self._max_states = max_states
        self._clock = clock

    def state_dir(self, repo: str) -> Path:
        return self._root / repo

    def state_path(self, repo: str, branch: str, mode: str) -> str:
        return str(self.state_dir(repo) / encode_branch(branch) / f"{mode}.json")

    def load(self, repo: str, branch: str, mode: str) -> PersistedState | None:
        path = Path(self.state_path(repo, branch, mode))
        if not path.exists():
            return None
        data = self._read(path)
        version = data.get("version")
        if version != CURRENT_VERSION:
            raise SchemaVersionError(str(path), version, CURRENT_VERSION)
        try:
            return self._from_dict(data)
        except (AttributeError, TypeError, ValueError) as e:
            raise StateLoadError(str(path), f"malformed state ({e})") from e

    def save(self, repo: str, branch: str, mode: str, state: PersistedState) -> None:
        path = Path(self.state_path(repo, branch, mode))
        if not path.exists():
            self._evict(repo)

        state.version = CURRENT_VERSION
        state.last_used = self._clock()
        state.branch_name = branch

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
        except OSError as e:
            raise StateSaveError(str(path), e.strerror or str(e)) from e
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(self._to_dict(state), f, indent=2, sort_keys=True)
            os.replace(tmp, path)
        except OSError as e:
            Path(tmp).unlink(missing_ok=True)
            raise StateSaveError(str(path), e.strerror or str(e)) from e
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        logger.debug("Saved %d marks to %s", len(state.marks), path)

    def delete(self, repo: str, branch: str, mode: str) -> bool:
        path = Path(self.state_path(repo, branch, mode))
        if not path.exists():
            return False
        path.unlink()
        try:
            path.parent.rmdir()
        except OSError:
            pass  # other modes still stored for this branch
        logger.debug("Deleted %s", path)
        return True

    def list_states(self, repo: str) -> list[StoredStateInfo]:
        infos = []
        for path in self._state_files(repo):
            try:
                data = self._read(path)
            except StateLoadError as e:
                logger.warning("Skipping unreadable state file: %s", e)
                continue
            infos.append(
                StoredStateInfo(
                    path=str(path),
                    branch_name=data.get("branchName") or path.parent.name,
                    mode=path.stem,
                    last_used=float(data.get("lastUsed") or 0),
                    mark_count=len(data.get("marks") or {}),
                )
            )
        return sorted(infos, key=lambda i: i.last_used, reverse=True)

    # ------------------------------------------------------------------ #
    # Internals                                                            #
    # ------------------------------------------------------------------ #

    def _state_files(self, repo: str) -> list[Path]:
        directory = self.state_dir(repo)
        if not directory.is_dir():
            return []
        return sorted(directory.glob("*/*.json"))

    def _last_used(self, path: Path) -> float:
        try:
            return float(self._read(path).get("lastUsed") or 0)
        except (StateLoadError, TypeError, ValueError):
            # Unreadable files rank by mtime so they still age out.
            return path.stat().st_mtime

    def _evict(self, repo: str) -> None:
        files = self._state_files(repo)
        excess = len(files) - self._max_states + 1
        if excess <= 0:
            return
        for path in sorted(files, key=self._last_used)[:excess]:
            logger.debug("Evicting least recently used state %s", path)
            path.unlink(missing_ok=True)
            try:
                path.parent.rmdir()
            except OSError:
                pass

    @staticmethod
    def _read(path: Path) -> dict:
        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StateLoadError(str(path), str(e)) from e
        if not isinstance(data, dict):
            raise StateLoadError(str(path), "top-level JSON value is not an object")
        return data

    @staticmethod
    def _to_dict(state: PersistedState) -> dict:
        return {
            "version": state.version,
            "marks": {mark: True for mark in sorted(state.marks)},
            "hunkCounts": dict(state.hunk_counts),
            "contentIds": {key: list(ids) for key, ids in state.content_ids.items()},
            "lastUsed": state.last_used,
            "branchName": state.branch_name,
        }

    @staticmethod
    def _from_dict(d: dict) -> PersistedState:
        return PersistedState(
            marks={mark for mark, seen in (d.get("marks") or {}).items() if seen},
            hunk_counts={key: int(count) for key, count in (d.get("hunkCounts") or {}).items()},
            content_ids={key: list(ids) for key, ids in (d.get("contentIds") or {}).items()},
            last_used=float(d.get("lastUsed") or 0),
            branch_name=d.get("branchName", ""),
            version=d.get("version", CURRENT_VERSION),
        )
