"""Package-level default configuration values."""

from __future__ import annotations

from pathlib import Path
from typing import Any

# Default cache settings
DEFAULT_CACHE_DIR = str(Path.home() / ".shelfcache" / "downloads")
DEFAULT_CACHE_MAX_SIZE_GB = 5.0

# Log level
DEFAULT_LOG_LEVEL = "WARNING"


def get_defaults() -> dict[str, Any]:
    """Return all defaults as a flat dictionary for merging."""
    return {
        "cache_dir": DEFAULT_CACHE_DIR,
        "cache_max_size_gb": DEFAULT_CACHE_MAX_SIZE_GB,
        "log_level": DEFAULT_LOG_LEVEL,
    }
