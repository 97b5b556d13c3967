"""Pydantic model validating the merged cache configuration."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shelfcache.config.defaults import (
    DEFAULT_CACHE_DIR,
    DEFAULT_CACHE_MAX_SIZE_GB,
    DEFAULT_LOG_LEVEL,
)

_BYTES_PER_GB = 1024 * 1024 * 1024


class CacheConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    cache_dir: Path = Path(DEFAULT_CACHE_DIR)
    cache_max_size_gb: float = Field(default=DEFAULT_CACHE_MAX_SIZE_GB, ge=0)
    log_level: str = DEFAULT_LOG_LEVEL

    @field_validator("cache_dir")
    @classmethod
    def _expand_home(cls, value: Path) -> Path:
        return value.expanduser()

    @property
    def max_size_bytes(self) -> int:
        return int(self.cache_max_size_gb * _BYTES_PER_GB)
