import os
from pathlib import Path
from typing import Optional

import yaml

from ghtool_core.errors import ConfigError

DEFAULT_CONFIG: dict = {
    "test": None,  # {"job_pattern": ..., "tool": "jest"}
    "lint": None,  # {"job_pattern": ..., "tool": "eslint"}
    "build": None,  # {"job_pattern": ..., "tool": "tsc"}
    "poll_interval": 10,
    "wait_timeout": 1800,
    "max_concurrent_downloads": 4,
    "cache": "sqlite",  # sqlite | memory | none
    "cache_path": None,  # None = $XDG_CACHE_HOME/ghtool/logs.db
    "pull_request_states": ["open", "closed", "merged"],
}

_POSITIVE_NUMBERS = ("poll_interval", "wait_timeout", "max_concurrent_downloads")
_CACHE_BACKENDS = ("sqlite", "memory", "none")


def load_config(config_path: str = ".ghtool.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .ghtool.yml in the current directory
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG, "pull_request_states": list(DEFAULT_CONFIG["pull_request_states"])}

    path = Path(config_path)
    if path.exists():
        try:
            with open(path) as f:
                file_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse {config_path}: {e}") from e
        if not isinstance(file_config, dict):
            raise ConfigError(f"{config_path} must contain a mapping at the top level.")
        config.update(file_config)

    return apply_overrides(config, cli_overrides)


def apply_overrides(config: dict, cli_overrides: Optional[dict] = None) -> dict:
    """Return a validated copy of `config` with the non-None overrides applied."""
    config = dict(config)
    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    _validate(config)
    return config


def _validate(config: dict) -> None:
    for key in _POSITIVE_NUMBERS:
        value = config.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ConfigError(f"{key} must be a positive number, got {value!r}.")
    if config.get("cache") not in _CACHE_BACKENDS:
        raise ConfigError(f"cache must be one of {', '.join(_CACHE_BACKENDS)}, got {config.get('cache')!r}.")


def default_cache_path() -> Path:
    """Location of the persistent log cache when cache_path is not configured."""
    base = os.environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(base) / "ghtool" / "logs.db"
