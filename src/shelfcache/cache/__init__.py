"""Download cache — fingerprint-validated, format-aware, size-bounded."""

from shelfcache.cache.cleanup import CLEANUP_THRESHOLD, run_cleanup, sweep
from shelfcache.cache.fingerprint import Fingerprint, compute_fingerprint, fingerprints_equal
from shelfcache.cache.keys import DownloadFormat, FormatKind
from shelfcache.cache.manager import CachedDownload, DownloadCache
from shelfcache.cache.metadata import CacheMetadata, MetadataStore
from shelfcache.cache.stats import CacheStats, CleanupStats

__all__ = [
    "DownloadCache",
    "CachedDownload",
    "DownloadFormat",
    "FormatKind",
    "Fingerprint",
    "compute_fingerprint",
    "fingerprints_equal",
    "CacheMetadata",
    "MetadataStore",
    "CacheStats",
    "CleanupStats",
    "CLEANUP_THRESHOLD",
    "run_cleanup",
    "sweep",
]
