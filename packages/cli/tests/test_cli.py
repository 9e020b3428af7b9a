"""Tests for the CLI entry point and commands, run against scratch git repositories."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner

from diffmark_cli.cli import _build_store, main
from diffmark_cli.session import record_to_marks, state_to_record
from diffmark_core.errors import HunkParseError
from diffmark_core.state import ReviewState
from diffmark_store.json_store import JsonStateStore
from diffmark_store.models import PersistedState, StoredStateInfo
from diffmark_store.noop import NoOpStateStore


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    path = tmp_path / "data"
    monkeypatch.setenv("DIFFMARK_DATA_DIR", str(path))
    return path


@pytest.fixture
def invoke(feature_repo, data_dir, monkeypatch):
    monkeypatch.chdir(feature_repo.path)
    runner = CliRunner()

    def _invoke(*args, input=None):
        return runner.invoke(main, list(args), input=input)

    return _invoke


def _state_file(data_dir: Path, branch="feature", mode="by_file") -> Path:
    return data_dir / "diffmark" / "project" / branch / f"{mode}.json"


# ---------------------------------------------------------------------------
# Store factory and record mapping
# ---------------------------------------------------------------------------


class TestBuildStore:
    def test_returns_json_store_with_data_dir(self, tmp_path):
        store = _build_store({"store": "json", "data_dir": str(tmp_path), "max_states": 4})
        assert isinstance(store, JsonStateStore)
        assert store.state_path("r", "b", "by_file").startswith(str(tmp_path))

    def test_json_store_defaults_to_user_data_dir(self, tmp_path, mocker):
        mocker.patch("platformdirs.user_data_path", return_value=tmp_path / "xdg")
        store = _build_store({"store": "json", "data_dir": None})
        assert store.state_path("r", "b", "by_file").startswith(str(tmp_path / "xdg"))

    def test_returns_noop_when_disabled(self):
        assert isinstance(_build_store({"store": "none"}), NoOpStateStore)


class TestRecordMapping:
    def test_state_to_record_and_back(self):
        state = ReviewState()
        state.mark("src/a.lua", "h1")
        state.mark("weird:name.lua", "h2")
        state.set_hunk_count("src/a.lua", 2)

        record = state_to_record(state)
        assert record.marks == {"src/a.lua:h1", "weird:name.lua:h2"}
        assert record.hunk_counts == {"src/a.lua": 2}
        assert record_to_marks(record) == {("src/a.lua", "h1"), ("weird:name.lua", "h2")}

    def test_malformed_marks_skipped(self):
        assert record_to_marks(PersistedState(marks={"no-separator", ":h1"})) == set()


# ---------------------------------------------------------------------------
# Group options
# ---------------------------------------------------------------------------


class TestMainGroup:
    def test_unknown_store_is_usage_error(self, tmp_path, monkeypatch):
        cfg = tmp_path / "bad.yml"
        cfg.write_text("store: sqlite\n")
        monkeypatch.chdir(tmp_path)
        result = CliRunner().invoke(main, ["--config", str(cfg), "sessions"])
        assert result.exit_code == 2
        assert "sqlite" in result.output

    def test_not_a_repository(self, tmp_path, data_dir, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = CliRunner().invoke(main, ["review"])
        assert result.exit_code == 1
        assert "No git repository found" in result.output

    def test_nothing_to_review_exits_cleanly(self, invoke, feature_repo):
        feature_repo.checkout("main")
        result = invoke("review")
        assert result.exit_code == 0
        assert "Nothing to review" in result.output

    def test_store_close_called(self, invoke, mocker):
        store = MagicMock(spec=JsonStateStore)
        store.load.return_value = None
        mocker.patch("diffmark_cli.cli._build_store", return_value=store)
        invoke("review")
        store.close.assert_called_once()


# ---------------------------------------------------------------------------
# review / show / next
# ---------------------------------------------------------------------------


class TestReviewCommand:
    def test_lists_unseen_file(self, invoke):
        result = invoke("review")
        assert result.exit_code == 0, result.output
        assert "Unseen" in result.output
        assert "a.lua" in result.output
        assert "0 of 3 hunks seen" in result.output

    def test_by_commit_groups_under_commit(self, invoke):
        result = invoke("--mode", "by-commit", "review")
        assert result.exit_code == 0, result.output
        assert "edit a.lua" in result.output

    def test_explicit_base(self, invoke):
        result = invoke("--base", "main", "review")
        assert result.exit_code == 0
        assert "vs main" in result.output

    def test_unknown_base(self, invoke):
        result = invoke("--base", "nope", "review")
        assert result.exit_code == 1
        assert "Error" in result.output


class TestShowAndNext:
    def test_show_unseen_hunks(self, invoke):
        result = invoke("show", "a.lua")
        assert result.exit_code == 0, result.output
        assert "hunk 1/3" in result.output
        assert "hunk 3/3" in result.output
        assert "changed 15" in result.output

    def test_show_seen_uses_original_hunk_numbers(self, invoke):
        invoke("mark", "a.lua", "--hunk", "2")
        result = invoke("show", "a.lua", "--seen")
        assert "hunk 2/3" in result.output
        assert "hunk 1/3" not in result.output

    def test_show_file_without_seen_hunks(self, invoke):
        result = invoke("show", "a.lua", "--seen")
        assert result.exit_code == 0
        assert "no seen hunks" in result.output

    def test_show_unchanged_file(self, invoke):
        result = invoke("show", "README.md")
        assert result.exit_code == 1
        assert "has no changes" in result.output

    def test_next_shows_first_unseen_hunk(self, invoke):
        invoke("mark", "a.lua", "--hunk", "1")
        result = invoke("next")
        assert result.exit_code == 0
        assert "Hunk 2/3 of a.lua" in result.output
        assert "changed 15" in result.output
        assert "changed 27" not in result.output

    def test_next_when_everything_seen(self, invoke):
        invoke("mark", "a.lua")
        result = invoke("next")
        assert "Every hunk on this branch has been seen" in result.output

    def test_next_seen_when_nothing_marked(self, invoke):
        result = invoke("next", "--seen")
        assert "Nothing has been marked" in result.output


# ---------------------------------------------------------------------------
# mark / unmark / reset
# ---------------------------------------------------------------------------


class TestMarkCommands:
    def test_mark_hunk_is_persisted(self, invoke, data_dir):
        result = invoke("mark", "a.lua", "--hunk", "2")
        assert result.exit_code == 0, result.output
        assert "Marked hunk 2/3 of a.lua as seen" in result.output
        assert "Next: a.lua, hunk 3/3 (unseen)" in result.output

        data = json.loads(_state_file(data_dir).read_text())
        assert data["version"] == 1
        assert len(data["marks"]) == 1
        assert next(iter(data["marks"])).startswith("a.lua:")
        assert data["branchName"] == "feature"

        assert "1 of 3 hunks seen" in invoke("review").output

    def test_mark_same_hunk_twice(self, invoke):
        invoke("mark", "a.lua", "--hunk", "2")
        result = invoke("mark", "a.lua", "--hunk", "2")
        assert "already seen" in result.output

    def test_mark_hunk_out_of_range(self, invoke):
        result = invoke("mark", "a.lua", "--hunk", "9")
        assert result.exit_code == 2
        assert "3 hunk(s)" in result.output

    def test_mark_whole_file(self, invoke):
        result = invoke("mark", "a.lua")
        assert "Marked every hunk of a.lua as seen" in result.output
        assert "3 of 3 hunks seen" in invoke("review").output
        assert "already fully seen" in invoke("mark", "a.lua").output

    def test_unmark_hunk(self, invoke):
        invoke("mark", "a.lua")
        result = invoke("unmark", "a.lua", "--hunk", "3")
        assert "Marked hunk 3/3 of a.lua as unseen" in result.output
        assert "2 of 3 hunks seen" in invoke("review").output

    def test_unmark_hunk_not_seen(self, invoke):
        result = invoke("unmark", "a.lua", "--hunk", "1")
        assert "already unseen" in result.output

    def test_mark_unchanged_file(self, invoke):
        result = invoke("mark", "README.md")
        assert result.exit_code == 1

    def test_mark_in_by_commit_mode(self, invoke, data_dir):
        result = invoke("--mode", "by-commit", "mark", "a.lua", "--hunk", "1")
        assert result.exit_code == 0, result.output
        assert _state_file(data_dir, mode="by_commit").exists()
        assert not _state_file(data_dir).exists()

    def test_reset_with_yes(self, invoke):
        invoke("mark", "a.lua")
        result = invoke("reset", "--yes")
        assert "Cleared 3 mark(s)" in result.output
        assert "0 of 3 hunks seen" in invoke("review").output

    def test_reset_declined(self, invoke):
        invoke("mark", "a.lua")
        result = invoke("reset", input="n\n")
        assert "Aborted" in result.output
        assert "3 of 3 hunks seen" in invoke("review").output

    def test_reset_nothing_marked(self, invoke):
        assert "Nothing is marked" in invoke("reset", "--yes").output


class TestCorruptedState:
    def test_delete_and_start_fresh(self, invoke, data_dir):
        path = _state_file(data_dir)
        path.parent.mkdir(parents=True)
        path.write_text("{broken")

        result = invoke("mark", "a.lua", "--hunk", "1", input="y\n")

        assert result.exit_code == 0, result.output
        assert "Delete corrupted state and start fresh?" in result.output
        assert len(json.loads(path.read_text())["marks"]) == 1

    def test_continue_without_persisting(self, invoke, data_dir):
        path = _state_file(data_dir)
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"version": 99}))

        result = invoke("mark", "a.lua", "--hunk", "1", input="n\n")

        assert result.exit_code == 0, result.output
        assert "Continuing without saving" in result.output
        assert "Marked hunk 1/3" in result.output
        assert json.loads(path.read_text()) == {"version": 99}


class TestUnparseableDiff:
    def test_reported_without_traceback(self, invoke, mocker):
        mocker.patch(
            "diffmark_core.git.repo.list_hunks",
            side_effect=HunkParseError("Not a hunk header: '@@ garbage'"),
        )

        result = invoke("review")

        assert result.exit_code == 1
        assert "Not a hunk header" in result.output
        assert not isinstance(result.exception, HunkParseError)


class TestUnwritableDataDir:
    def test_failed_save_is_reported(self, invoke, data_dir):
        data_dir.write_text("not a directory")

        result = invoke("mark", "a.lua", "--hunk", "1")

        assert result.exit_code == 0, result.output
        assert result.exception is None
        assert "Marked hunk 1/3" in result.output
        assert "Cannot save review state" in result.output
        assert "Marks from this run were not saved." in result.output


# ---------------------------------------------------------------------------
# sessions / forget
# ---------------------------------------------------------------------------


class TestSessionsCommands:
    def test_sessions_lists_saved_states(self, invoke):
        invoke("mark", "a.lua", "--hunk", "1")
        result = invoke("sessions")
        assert result.exit_code == 0, result.output
        assert "feature" in result.output
        assert "by-file" in result.output

    def test_sessions_empty(self, invoke):
        result = invoke("sessions")
        assert "No saved review states" in result.output

    def test_sessions_require_store(self, feature_repo, monkeypatch, tmp_path):
        monkeypatch.chdir(feature_repo.path)
        cfg = tmp_path / "none.yml"
        cfg.write_text("store: none\n")
        result = CliRunner().invoke(main, ["--config", str(cfg), "sessions"])
        assert result.exit_code == 2
        assert "No state store configured" in result.output

    def test_sessions_uses_store_listing(self, invoke, mocker):
        store = MagicMock(spec=JsonStateStore)
        store.list_states.return_value = [
            StoredStateInfo(path="/x/feature/by_file.json", branch_name="feature", mode="by_file", last_used=0, mark_count=7)
        ]
        mocker.patch("diffmark_cli.cli._build_store", return_value=store)
        result = invoke("sessions")
        store.list_states.assert_called_once_with("project")
        assert "7" in result.output

    def test_forget_deletes_state(self, invoke, data_dir):
        invoke("mark", "a.lua", "--hunk", "1")
        assert _state_file(data_dir).exists()

        result = invoke("forget", "--yes")
        assert "Deleted" in result.output
        assert not _state_file(data_dir).exists()
        assert "0 of 3 hunks seen" in invoke("review").output

    def test_forget_without_state(self, invoke):
        result = invoke("forget", "--yes")
        assert "No saved state" in result.output

    def test_forget_declined(self, invoke, data_dir):
        invoke("mark", "a.lua", "--hunk", "1")
        result = invoke("forget", input="n\n")
        assert "Aborted" in result.output
        assert _state_file(data_dir).exists()
