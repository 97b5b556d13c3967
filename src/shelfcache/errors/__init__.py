"""Error handling — the shelfcache exception hierarchy."""

from shelfcache.errors.exceptions import (
    CacheMetadataError,
    FingerprintError,
    GenerationError,
    KepubNotSupportedError,
    MetadataNotFoundError,
    ShelfCacheError,
    UnsupportedFormatError,
)

__all__ = [
    "ShelfCacheError",
    "UnsupportedFormatError",
    "KepubNotSupportedError",
    "GenerationError",
    "CacheMetadataError",
    "MetadataNotFoundError",
    "FingerprintError",
]
