from pathlib import Path
from typing import Optional

import yaml

from gitbench_core.compare import Thresholds
from gitbench_core.errors import ConfigError

DEFAULT_CONFIG: dict = {
    "name": "cargo",  # suite name the run is recorded under
    "tool": "cargo",
    "data_file": "benchmark-data.json",
    "external_data_json_path": None,  # overrides data_file when set
    "alert_threshold": "200%",
    "fail_threshold": None,  # None = same as alert_threshold
    "fail_on_alert": False,
    "comment_on_alert": False,
    "comment_always": False,
    "alert_comment_cc_users": None,
    "max_items_in_chart": None,  # None = keep every run
    "save_data_file": True,
    "auto_push": False,
    "gh_pages_branch": "gh-pages",
    "benchmark_data_dir_path": "dev/bench",
    "remote": "origin",
    "skip_fetch_gh_pages": False,
    "dashboard_dir": None,  # static assets published next to data.json
}

MAX_ITEMS_LIMIT = 10000
_BRANCH_FORBIDDEN = ("..", "@{", "~", "^", ":", "?", "*", "[", " ", "\t", "\\")


def load_config(config_path: str = ".gitbench.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .gitbench.yml at config_path
      3. CLI argument overrides (None values are ignored)

    Credentials and CI variables are not read here; the CLI resolves them
    and passes explicit values.
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            try:
                file_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Could not parse {config_path}: {e}")
        if not isinstance(file_config, dict):
            raise ConfigError(f"{config_path} must contain a mapping of settings.")
        config.update({k.replace("-", "_"): v for k, v in file_config.items()})

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    return config


def build_thresholds(config: dict) -> Thresholds:
    fail = config.get("fail_threshold")
    return Thresholds.from_percentages(
        str(config.get("alert_threshold") or DEFAULT_CONFIG["alert_threshold"]),
        str(fail) if fail is not None else None,
    )


def validate_branch_name(branch: str) -> None:
    """Reject names git would refuse as a branch."""
    if not branch:
        raise ConfigError("Branch name cannot be empty")
    if len(branch) > 255:
        raise ConfigError("Branch name cannot exceed 255 characters")
    if branch.startswith(".") or branch.endswith(".lock"):
        raise ConfigError("Branch name cannot start with '.' or end with '.lock'")
    for pattern in _BRANCH_FORBIDDEN:
        if pattern in branch:
            raise ConfigError(f"Branch name cannot contain {pattern!r}")


def validate_max_items(max_items: Optional[int]) -> None:
    if max_items is None:
        return
    if max_items < 1:
        raise ConfigError("Maximum items in chart must be at least 1")
    if max_items > MAX_ITEMS_LIMIT:
        raise ConfigError(f"Maximum items in chart cannot exceed {MAX_ITEMS_LIMIT}")


def validate_config(config: dict) -> Thresholds:
    """Validate everything that must be right before any work starts.

    Returns the parsed thresholds so callers don't parse them twice.
    """
    thresholds = build_thresholds(config)
    validate_branch_name(config.get("gh_pages_branch") or "")
    max_items = config.get("max_items_in_chart")
    if max_items is not None:
        try:
            max_items = int(max_items)
        except (TypeError, ValueError):
            raise ConfigError(f"max_items_in_chart must be an integer, got {max_items!r}")
    validate_max_items(max_items)
    return thresholds
