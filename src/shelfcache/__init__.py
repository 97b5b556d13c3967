"""shelfcache — download cache for a self-hosted digital library."""

from shelfcache.cache import CachedDownload, DownloadCache, DownloadFormat
from shelfcache.errors import (
    GenerationError,
    KepubNotSupportedError,
    ShelfCacheError,
    UnsupportedFormatError,
)
from shelfcache.generators import GeneratorRegistry, PluginGenerator, default_registry

__version__ = "0.1.0"

__all__ = [
    "DownloadCache",
    "CachedDownload",
    "DownloadFormat",
    "GeneratorRegistry",
    "PluginGenerator",
    "default_registry",
    "ShelfCacheError",
    "UnsupportedFormatError",
    "KepubNotSupportedError",
    "GenerationError",
]
