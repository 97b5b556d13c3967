"""Download cache manager — fingerprint, look up, generate, persist, evict."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import uuid
from collections.abc import AsyncIterator, Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, NamedTuple

from shelfcache.cache.cleanup import sweep
from shelfcache.cache.filename import (
    format_download_filename,
    format_kepub_download_filename,
    format_plugin_download_filename,
)
from shelfcache.cache.fingerprint import compute_fingerprint
from shelfcache.cache.keys import STAGING_PREFIX, DownloadFormat, FormatKind
from shelfcache.cache.metadata import CacheMetadata, MetadataStore, utcnow
from shelfcache.cache.stats import CacheStats, CleanupStats
from shelfcache.errors.exceptions import (
    CacheMetadataError,
    FingerprintError,
    GenerationError,
    KepubNotSupportedError,
    ShelfCacheError,
    UnsupportedFormatError,
)
from shelfcache.generators.base import Generator, PluginGenerator
from shelfcache.types import Book, File

if TYPE_CHECKING:
    from shelfcache.generators.registry import GeneratorRegistry

logger = logging.getLogger(__name__)


class CachedDownload(NamedTuple):
    path: Path
    download_filename: str


class _KeyLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class DownloadCache:
    """Serves ready-to-download files, generating them on a cache miss.

    Validity is decided purely by fingerprint: an entry is served when the
    hash of the current metadata matches the hash recorded at generation
    time and the artifact is still on disk. Anything else regenerates and
    overwrites the entry.

    Concurrent misses for the same (file, format) within one instance wait
    on a single generation instead of each running their own.
    """

    def __init__(
        self,
        cache_dir: Path | str,
        max_size_bytes: int,
        registry: GeneratorRegistry | None = None,
    ) -> None:
        if registry is None:
            from shelfcache.generators.registry import default_registry

            registry = default_registry()
        self._dir = Path(cache_dir)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._max_size = max_size_bytes
        self._registry = registry
        self._store = MetadataStore(self._dir)
        self._key_locks: dict[tuple[int, DownloadFormat], _KeyLock] = {}
        self._cleanup_tasks: set[asyncio.Task[CleanupStats | None]] = set()
        self._stats = CacheStats()

    @classmethod
    def from_config(
        cls, config: dict[str, Any], registry: GeneratorRegistry | None = None
    ) -> DownloadCache:
        """Build a cache from a ``load_config_hierarchy()`` dict."""
        from shelfcache.config.schema import CacheConfig

        cfg = CacheConfig.model_validate(config)
        return cls(cfg.cache_dir, cfg.max_size_bytes, registry=registry)

    @property
    def dir(self) -> Path:
        return self._dir

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def store(self) -> MetadataStore:
        return self._store

    @property
    def registry(self) -> GeneratorRegistry:
        return self._registry

    # ── Public download operations ──

    async def get_or_generate(self, book: Book, file: File) -> CachedDownload:
        """Return the cached original-format download, generating it if needed."""
        fmt = DownloadFormat.original()
        return await self._get_or_generate(
            book,
            file,
            fmt,
            resolve=lambda: self._registry.get(file.file_type, FormatKind.ORIGINAL),
            filename=format_download_filename(book, file),
        )

    async def get_or_generate_kepub(self, book: Book, file: File) -> CachedDownload:
        """Return the cached KePub conversion, generating it if needed.

        Raises ``KepubNotSupportedError`` when the file type has no KePub
        converter.
        """
        if not self._registry.supports_kepub(file.file_type):
            raise KepubNotSupportedError(file.file_type)
        fmt = DownloadFormat.kepub()
        return await self._get_or_generate(
            book,
            file,
            fmt,
            resolve=lambda: self._registry.get_kepub(file.file_type),
            filename=format_kepub_download_filename(book, file),
        )

    async def get_or_generate_plugin(
        self, book: Book, file: File, generator: PluginGenerator
    ) -> CachedDownload:
        """Return the cached output of a plugin generator.

        The plugin's own fingerprint is part of the cache key, so a plugin
        can invalidate its outputs without any metadata change.
        """
        format_id = generator.supported_type()
        try:
            fmt = DownloadFormat.plugin(format_id)
        except ValueError as e:
            raise UnsupportedFormatError(
                f"invalid plugin format ID {format_id!r}",
                file_type=file.file_type,
                download_format=f"plugin:{format_id}",
            ) from e
        try:
            plugin_fp = generator.fingerprint(book, file)
        except Exception as e:
            raise FingerprintError(f"failed to compute plugin fingerprint for {format_id}: {e}") from e
        return await self._get_or_generate(
            book,
            file,
            fmt,
            resolve=lambda: generator,
            filename=format_plugin_download_filename(book, file, format_id),
            plugin_fingerprint=plugin_fp,
        )

    def get_cached_path(self, book: Book, file: File) -> Path | None:
        """Path of a valid original-format entry, without generating."""
        fmt = DownloadFormat.original()
        current_hash = compute_fingerprint(book, file, fmt).hash()
        return self._lookup(file, fmt, current_hash)

    # ── Invalidation ──

    def invalidate(self, file_id: int, file_type: str) -> None:
        self._store.delete(file_id, DownloadFormat.original(), file_type)

    def invalidate_kepub(self, file_id: int) -> None:
        self._store.delete(file_id, DownloadFormat.kepub())

    def invalidate_plugin(self, file_id: int, format_id: str) -> None:
        self._store.delete(file_id, DownloadFormat.plugin(format_id))

    # ── Cleanup ──

    def trigger_cleanup(self) -> CleanupStats | None:
        """Run a sweep now. Never raises; returns None if one is already running."""
        try:
            return sweep(self._dir, self._max_size)
        except Exception as e:
            logger.warning("Cache cleanup failed in %s: %s", self._dir, e)
            return None

    def schedule_cleanup(self) -> asyncio.Task[CleanupStats | None]:
        """Start a sweep in the background without waiting for it."""
        task = asyncio.create_task(asyncio.to_thread(self.trigger_cleanup))
        self._cleanup_tasks.add(task)
        task.add_done_callback(self._cleanup_tasks.discard)
        return task

    async def wait_for_cleanup(self) -> None:
        """Wait for background sweeps started by this instance."""
        while self._cleanup_tasks:
            await asyncio.gather(*list(self._cleanup_tasks), return_exceptions=True)

    async def close(self) -> None:
        await self.wait_for_cleanup()

    def stats(self) -> CacheStats:
        entries = self._store.list_entries()
        return CacheStats(
            entries=len(entries),
            size_bytes=sum(e.size_bytes for e in entries),
            max_size_bytes=self._max_size,
            hits=self._stats.hits,
            misses=self._stats.misses,
            generations=self._stats.generations,
        )

    # ── Internals ──

    async def _get_or_generate(
        self,
        book: Book,
        file: File,
        fmt: DownloadFormat,
        resolve: Callable[[], Generator],
        filename: str,
        plugin_fingerprint: str | None = None,
    ) -> CachedDownload:
        current_hash = compute_fingerprint(book, file, fmt, plugin_fingerprint).hash()

        existing = await asyncio.to_thread(self._lookup, file, fmt, current_hash)
        if existing is not None:
            return await self._serve_hit(file, fmt, existing, filename)

        async with self._locked(file.id, fmt):
            # Another task may have generated this entry while we waited.
            existing = await asyncio.to_thread(self._lookup, file, fmt, current_hash)
            if existing is not None:
                return await self._serve_hit(file, fmt, existing, filename)

            self._stats.misses += 1
            generator = resolve()
            path = await self._generate(generator, book, file, fmt, current_hash)

        self.schedule_cleanup()
        return CachedDownload(path, filename)

    def _lookup(self, file: File, fmt: DownloadFormat, current_hash: str) -> Path | None:
        try:
            return self._store.cached_file_path(file.id, fmt, file.file_type, current_hash)
        except CacheMetadataError as e:
            logger.warning("Treating %s of file %d as a cache miss: %s", fmt, file.id, e.message)
            return None

    async def _serve_hit(
        self, file: File, fmt: DownloadFormat, path: Path, filename: str
    ) -> CachedDownload:
        self._stats.hits += 1
        try:
            await asyncio.to_thread(self._store.update_last_accessed, file.id, fmt)
        except CacheMetadataError as e:
            logger.warning("Could not update access time for %s of file %d: %s", fmt, file.id, e.message)
        logger.debug("Cache hit for %s of file %d", fmt, file.id)
        return CachedDownload(path, filename)

    async def _generate(
        self,
        generator: Generator,
        book: Book,
        file: File,
        fmt: DownloadFormat,
        current_hash: str,
    ) -> Path:
        dest_path = self._store.artifact_path(file.id, fmt, file.file_type)
        # Stage beside the destination so the final rename stays on one
        # filesystem; keep the extension for converters that sniff it.
        staging_path = dest_path.with_name(f"{STAGING_PREFIX}{uuid.uuid4().hex}-{dest_path.name}")

        logger.info("Generating %s of file %d", fmt, file.id)
        try:
            try:
                await generator.generate(Path(file.filepath), staging_path, book, file)
            except ShelfCacheError:
                raise
            except Exception as e:
                raise GenerationError(str(e), file_type=file.file_type, original=e) from e
            if not staging_path.is_file():
                raise GenerationError(
                    "generator produced no output", file_type=file.file_type
                )
            try:
                size = staging_path.stat().st_size
                os.replace(staging_path, dest_path)
            except OSError as e:
                raise GenerationError(
                    f"could not move generated file into the cache: {e}",
                    file_type=file.file_type,
                    original=e,
                ) from e
        finally:
            with contextlib.suppress(OSError):
                staging_path.unlink(missing_ok=True)

        now = utcnow()
        meta = CacheMetadata(
            file_id=file.id,
            format=str(fmt),
            file_type=file.file_type,
            fingerprint_hash=current_hash,
            generated_at=now,
            last_accessed_at=now,
            size_bytes=size,
        )
        try:
            await asyncio.to_thread(self._store.write, meta)
        except CacheMetadataError:
            # An artifact without a sidecar is invisible to lookups and sweeps.
            with contextlib.suppress(OSError):
                dest_path.unlink(missing_ok=True)
            raise

        self._stats.generations += 1
        return dest_path

    @contextlib.asynccontextmanager
    async def _locked(self, file_id: int, fmt: DownloadFormat) -> AsyncIterator[None]:
        key = (file_id, fmt)
        entry = self._key_locks.get(key)
        if entry is None:
            entry = self._key_locks[key] = _KeyLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._key_locks[key]
