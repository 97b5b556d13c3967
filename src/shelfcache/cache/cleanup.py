"""Eviction — keep the download cache under its size limit.

Sweeps run lazily, after a generation or on request. Once over the limit, a
sweep deletes least-recently-accessed entries until the cache is back under
``CLEANUP_THRESHOLD`` of the limit, so the next few generations do not each
trigger another sweep.
"""

from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from shelfcache.cache.keys import LOCK_FILENAME
from shelfcache.cache.metadata import MetadataStore
from shelfcache.cache.stats import CleanupStats
from shelfcache.errors.exceptions import ShelfCacheError

logger = logging.getLogger(__name__)

CLEANUP_THRESHOLD = 0.8


class CleanupLock:
    """Non-blocking advisory lock: a ``.cleanup.lock`` file in the cache dir.

    The file is created with ``O_CREAT | O_EXCL``; its presence means a sweep
    is in progress. It serializes sweeps only, never reads or generations.
    """

    def __init__(self, cache_dir: Path | str) -> None:
        self._path = Path(cache_dir) / LOCK_FILENAME
        self._locked = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def locked(self) -> bool:
        return self._locked

    def acquire(self) -> bool:
        """Try to take the lock. Returns False if another sweep holds it."""
        if self._locked:
            return True
        try:
            fd = os.open(self._path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        except OSError as e:
            logger.warning("Cannot create cleanup lock %s: %s", self._path, e)
            return False
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(f"{os.getpid()}:{time.time():.6f}\n")
        self._locked = True
        return True

    def release(self) -> None:
        if not self._locked:
            return
        try:
            self._path.unlink()
        except FileNotFoundError:
            pass
        finally:
            self._locked = False


@contextmanager
def try_lock(cache_dir: Path | str) -> Iterator[bool]:
    """Yield whether the cleanup lock was acquired; release it on exit."""
    lock = CleanupLock(cache_dir)
    acquired = lock.acquire()
    try:
        yield acquired
    finally:
        if acquired:
            lock.release()


def run_cleanup(cache_dir: Path | str, max_size_bytes: int) -> CleanupStats:
    """Delete LRU entries until the cache fits ``CLEANUP_THRESHOLD`` of max.

    A cache already at or under ``max_size_bytes`` is left untouched. An
    entry that cannot be deleted is skipped and the next oldest tried.
    """
    store = MetadataStore(cache_dir)
    entries = store.list_entries()
    total = sum(e.size_bytes for e in entries)

    if total <= max_size_bytes:
        return CleanupStats(files_remained=len(entries), bytes_remained=total)

    target = int(max_size_bytes * CLEANUP_THRESHOLD)
    entries.sort(key=lambda e: (e.last_accessed_at, e.file_id, e.format))

    removed = 0
    removed_bytes = 0
    for entry in entries:
        if total <= target:
            break
        try:
            store.delete(entry.file_id, entry.download_format, entry.file_type)
        except (ShelfCacheError, ValueError) as e:
            logger.warning(
                "Could not evict %s of file %d: %s", entry.format, entry.file_id, e
            )
            continue
        total -= entry.size_bytes
        removed += 1
        removed_bytes += entry.size_bytes
        logger.debug("Evicted %s of file %d (%d bytes)", entry.format, entry.file_id, entry.size_bytes)

    if removed:
        logger.info(
            "Cache cleanup removed %d file(s), %d bytes; %d bytes remain",
            removed, removed_bytes, total,
        )

    return CleanupStats(
        files_removed=removed,
        bytes_removed=removed_bytes,
        files_remained=len(entries) - removed,
        bytes_remained=total,
    )


def sweep(cache_dir: Path | str, max_size_bytes: int) -> CleanupStats | None:
    """Run a cleanup under the advisory lock.

    Returns ``None`` without doing anything when another sweep holds the lock.
    """
    with try_lock(cache_dir) as acquired:
        if not acquired:
            logger.debug("Cache cleanup already in progress in %s", cache_dir)
            return None
        return run_cleanup(cache_dir, max_size_bytes)
