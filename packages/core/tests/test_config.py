"""Tests for configuration loading."""

import pytest

from diffmark_core.config import load_config


@pytest.fixture(autouse=True)
def _no_data_dir_env(monkeypatch):
    monkeypatch.delenv("DIFFMARK_DATA_DIR", raising=False)


def test_defaults_applied_when_no_config_file(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["mode"] == "by_file"
    assert config["base_branch"] is None
    assert config["context_lines"] == 5
    assert config["store"] == "json"
    assert config["data_dir"] is None
    assert config["max_states"] == 16
    assert config["auto_fetch"] is False


def test_config_file_overrides_defaults(tmp_path):
    cfg = tmp_path / ".diffmark.yml"
    cfg.write_text("mode: by_commit\ncontext_lines: 3\nbase_branch: origin/develop\n")
    config = load_config(config_path=str(cfg))
    assert config["mode"] == "by_commit"
    assert config["context_lines"] == 3
    assert config["base_branch"] == "origin/develop"


def test_empty_config_file(tmp_path):
    cfg = tmp_path / ".diffmark.yml"
    cfg.write_text("")
    assert load_config(config_path=str(cfg))["mode"] == "by_file"


def test_cli_overrides_config_file(tmp_path):
    cfg = tmp_path / ".diffmark.yml"
    cfg.write_text("mode: by_commit\n")
    config = load_config(config_path=str(cfg), cli_overrides={"mode": "by-file"})
    assert config["mode"] == "by_file"


def test_none_cli_overrides_ignored(tmp_path):
    cfg = tmp_path / ".diffmark.yml"
    cfg.write_text("base_branch: main\n")
    config = load_config(config_path=str(cfg), cli_overrides={"base_branch": None})
    assert config["base_branch"] == "main"


def test_data_dir_from_environment(tmp_path, monkeypatch):
    cfg = tmp_path / ".diffmark.yml"
    cfg.write_text("data_dir: /from/file\n")
    monkeypatch.setenv("DIFFMARK_DATA_DIR", str(tmp_path / "state"))
    config = load_config(config_path=str(cfg))
    assert config["data_dir"] == str(tmp_path / "state")


def test_unknown_mode_rejected(tmp_path):
    cfg = tmp_path / ".diffmark.yml"
    cfg.write_text("mode: by_author\n")
    with pytest.raises(ValueError, match="by_author"):
        load_config(config_path=str(cfg))


def test_unknown_store_rejected(tmp_path):
    cfg = tmp_path / ".diffmark.yml"
    cfg.write_text("store: sqlite\n")
    with pytest.raises(ValueError, match="sqlite"):
        load_config(config_path=str(cfg))


def test_defaults_not_mutated(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    config["mode"] = "by_commit"
    assert load_config(config_path=str(tmp_path / "nonexistent.yml"))["mode"] == "by_file"
