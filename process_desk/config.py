"""Config loading and validation for process-desk.

Loads process-desk.config.json, validates required fields, applies
defaults and expands ~ in paths.
"""

import json
from pathlib import Path
from typing import Any


class ConfigError(Exception):
    """Raised when configuration is invalid or missing required fields."""


CONFIG_FILENAME = "process-desk.config.json"

DEFAULT_DB_PATH = "~/.process-desk/process-desk.db"

REQUIRED_FIELDS = ["db_path"]

PATH_FIELDS = ["db_path", "log_dir"]

DEFAULTS: dict[str, Any] = {
    "host": "127.0.0.1",
    "port": 8765,
    "log_level": "INFO",
    "log_dir": "~/.process-desk/logs",
}


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load and validate process-desk.config.json.

    Args:
        config_path: Path to config file. Defaults to ./process-desk.config.json.

    Returns:
        Validated config dict with paths expanded and defaults applied.

    Raises:
        ConfigError: If file is missing, unreadable, or has invalid content.
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        config = json.loads(config_path.read_text())
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {config_path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigError(f"Config in {config_path} must be a JSON object")

    _validate(config)
    _apply_defaults(config)
    _expand_paths(config)

    return config


def _validate(config: dict[str, Any]) -> None:
    for field in REQUIRED_FIELDS:
        if field not in config:
            raise ConfigError(
                f"Missing required config field: '{field}'. "
                f"Run 'process-desk init' to create a starter {CONFIG_FILENAME}."
            )

    port = config.get("port")
    if port is not None and (isinstance(port, bool) or not isinstance(port, int)):
        raise ConfigError(f"Config field 'port' must be an integer, got {port!r}")


def _apply_defaults(config: dict[str, Any]) -> None:
    for key, default in DEFAULTS.items():
        if key not in config:
            config[key] = default


def _expand_paths(config: dict[str, Any]) -> None:
    """Expand ~ in path fields to the user's home directory."""
    for field in PATH_FIELDS:
        if field in config and isinstance(config[field], str):
            config[field] = str(Path(config[field]).expanduser())
