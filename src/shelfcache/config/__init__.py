"""Configuration — defaults, layered loading, validation."""

from shelfcache.config.defaults import get_defaults
from shelfcache.config.hierarchy import load_config_hierarchy
from shelfcache.config.schema import CacheConfig

__all__ = ["CacheConfig", "get_defaults", "load_config_hierarchy"]
