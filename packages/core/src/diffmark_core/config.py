import os
from pathlib import Path
from typing import Optional

import yaml

from diffmark_core.state import REVIEW_MODES

STORE_BACKENDS = ("json", "none")

DEFAULT_CONFIG: dict = {
    "mode": "by_file",
    "base_branch": None,  # None = detect origin/HEAD, origin/main, origin/master, main, master
    "context_lines": 5,  # lines of surrounding context folded into each hunk's content ID
    "store": "json",
    "data_dir": None,  # None = platform user data dir (honours XDG_DATA_HOME)
    "max_states": 16,
    "auto_fetch": False,
}


def load_config(config_path: str = ".diffmark.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .diffmark.yml in the current directory
      3. CLI argument overrides
      4. DIFFMARK_DATA_DIR from the environment
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    data_dir = os.environ.get("DIFFMARK_DATA_DIR")
    if data_dir:
        config["data_dir"] = data_dir

    config["mode"] = str(config["mode"]).replace("-", "_")
    if config["mode"] not in REVIEW_MODES:
        raise ValueError(f"Unknown review mode: {config['mode']!r}. Choose 'by_file' or 'by_commit'.")
    if config["store"] not in STORE_BACKENDS:
        raise ValueError(f"Unknown store backend: {config['store']!r}. Choose 'json' or 'none'.")

    return config
