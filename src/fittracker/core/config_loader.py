"""
YAML → typed config loader.

Reads optional user settings from <home>/config.yaml, where <home> is
$FITTRACKER_HOME or ~/.fittracker, and merges them over the built-in
defaults.

Usage:
    from fittracker.core.config_loader import load_app_config
    cfg = load_app_config()
    store = SessionStore(cfg.data_dir)

A config file that cannot be read or parsed is ignored with a warning
(no crash).  Unknown keys are ignored.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .config import CONFIG_FILENAME, DATA_DIR_ENV, DEFAULT_DATA_DIRNAME, DEFAULT_REST_SECONDS

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class AppConfig:
    """Resolved application settings."""

    data_dir: Path
    default_rest_seconds: int = DEFAULT_REST_SECONDS
    log_level: str = "WARNING"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML mapping; return {} (with a warning) on any error."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Ignoring config file %s: %s", path, e)
        return {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: top level is not a mapping", path)
        return {}
    return data


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _defaults(home: Path) -> dict[str, Any]:
    return {
        "data_dir": str(home),
        "default_rest_seconds": DEFAULT_REST_SECONDS,
        "log_level": "WARNING",
    }


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_home_dir() -> Path:
    """$FITTRACKER_HOME if set, else ~/.fittracker."""
    env = os.environ.get(DATA_DIR_ENV)
    if env:
        return Path(env).expanduser()
    return Path.home() / DEFAULT_DATA_DIRNAME


def get_config_path() -> Path:
    return get_home_dir() / CONFIG_FILENAME


def load_app_config(data_dir: str | Path | None = None) -> AppConfig:
    """
    Resolve settings from defaults, the config file and overrides.

    Data directory precedence (first wins):
    1. ``data_dir`` argument (the --data-dir CLI option)
    2. $FITTRACKER_HOME
    3. ``data_dir`` key in config.yaml
    4. ~/.fittracker

    Returns:
        AppConfig with validated values; bad values fall back to defaults
    """
    home = get_home_dir()
    config = _defaults(home)

    path = home / CONFIG_FILENAME
    if path.exists():
        config = _deep_merge(config, _load_yaml_file(path))

    if data_dir is not None:
        resolved_dir = Path(data_dir).expanduser()
    elif os.environ.get(DATA_DIR_ENV):
        resolved_dir = home
    else:
        resolved_dir = Path(str(config["data_dir"])).expanduser()

    rest = config.get("default_rest_seconds")
    if isinstance(rest, bool) or not isinstance(rest, int) or rest < 0:
        logger.warning("Invalid default_rest_seconds %r, using %d", rest, DEFAULT_REST_SECONDS)
        rest = DEFAULT_REST_SECONDS

    level = str(config.get("log_level", "WARNING")).upper()
    if level not in _LOG_LEVELS:
        logger.warning("Invalid log_level %r, using WARNING", config.get("log_level"))
        level = "WARNING"

    return AppConfig(data_dir=resolved_dir, default_rest_seconds=rest, log_level=level)
