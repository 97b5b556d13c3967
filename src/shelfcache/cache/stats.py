"""Cache statistics models."""

from __future__ import annotations

from pydantic import BaseModel


class CleanupStats(BaseModel):
    """Outcome of one eviction sweep."""

    files_removed: int = 0
    bytes_removed: int = 0
    files_remained: int = 0
    bytes_remained: int = 0


class CacheStats(BaseModel):
    """Aggregate cache statistics.

    Entry count and size come from the sidecars on disk; hit, miss and
    generation counters cover the lifetime of one ``DownloadCache``.
    """

    entries: int = 0
    size_bytes: int = 0
    max_size_bytes: int = 0
    hits: int = 0
    misses: int = 0
    generations: int = 0

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0
