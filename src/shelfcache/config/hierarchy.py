"""Configuration hierarchy — where cache settings come from.

Sources, lowest priority first:
  1. Package defaults
  2. User config     ~/.shelfcache/config.yaml
  3. Project config  shelfcache.yaml in the working directory or any parent
  4. SHELFCACHE_* environment variables
  5. Runtime arguments (CLI flags, library callers); ``None`` means unset

Every source is a flat mapping of config keys. Unknown keys pass through and
are dropped by ``CacheConfig``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import yaml

from shelfcache.config.defaults import get_defaults

logger = logging.getLogger(__name__)

_GLOBAL_CONFIG_PATH = Path.home() / ".shelfcache" / "config.yaml"
_PROJECT_CONFIG_NAME = "shelfcache.yaml"

_ENV_MAP: dict[str, str] = {
    "SHELFCACHE_CACHE_DIR": "cache_dir",
    "SHELFCACHE_CACHE_MAX_SIZE_GB": "cache_max_size_gb",
    "SHELFCACHE_LOG_LEVEL": "log_level",
}

# Env values are strings; these keys are converted before merging.
_ENV_CONVERTERS: dict[str, Callable[[str], Any]] = {
    "cache_max_size_gb": float,
    "log_level": str.upper,
}


def load_config_hierarchy(**runtime_overrides: Any) -> dict[str, Any]:
    """Merge every configuration source into one dict.

    Later sources win key by key. At DEBUG level the source of each final
    value is logged, which is what ``shelfcache -vv`` shows when a setting
    is not what the user expected.
    """
    config: dict[str, Any] = {}
    origin: dict[str, str] = {}

    for source, values in _iter_sources(runtime_overrides):
        for key, value in values.items():
            config[key] = value
            origin[key] = source

    for key in sorted(config):
        logger.debug("config %s=%r (from %s)", key, config[key], origin[key])
    return config


def _iter_sources(
    runtime_overrides: dict[str, Any],
) -> Iterator[tuple[str, dict[str, Any]]]:
    yield "defaults", get_defaults()

    user_cfg = _load_yaml_config(_GLOBAL_CONFIG_PATH)
    if user_cfg:
        yield str(_GLOBAL_CONFIG_PATH), user_cfg

    project_path = _find_project_config()
    if project_path is not None:
        project_cfg = _load_yaml_config(project_path)
        if project_cfg:
            yield str(project_path), project_cfg

    yield "environment", _load_env_vars()

    yield "arguments", {k: v for k, v in runtime_overrides.items() if v is not None}


def _load_yaml_config(path: Path) -> dict[str, Any] | None:
    """Read a YAML mapping. Missing, unreadable or non-mapping files yield None."""
    if not path.is_file():
        return None
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Ignoring config file %s: %s", path, e)
        return None
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: expected a mapping, got %s", path, type(data).__name__)
        return None
    return data


def _find_project_config(start: Path | None = None) -> Path | None:
    """Nearest shelfcache.yaml at or above ``start`` (default: cwd)."""
    here = (start or Path.cwd()).resolve()
    for directory in (here, *here.parents):
        candidate = directory / _PROJECT_CONFIG_NAME
        if candidate.is_file():
            return candidate
    return None


def _load_env_vars() -> dict[str, Any]:
    return {
        key: _coerce_env_value(key, os.environ[var])
        for var, key in _ENV_MAP.items()
        if var in os.environ
    }


def _coerce_env_value(key: str, value: str) -> Any:
    """Convert an env string for ``key``; unconvertible values stay strings."""
    convert = _ENV_CONVERTERS.get(key)
    if convert is None:
        return value
    try:
        return convert(value)
    except ValueError:
        logger.warning("Environment value for %s is not valid: %r", key, value)
        return value
