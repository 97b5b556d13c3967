"""Metadata sidecars — one small JSON record beside every cached artifact."""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path

from pydantic import AwareDatetime, BaseModel, Field, ValidationError, field_validator

from shelfcache.cache.keys import (
    METADATA_SUFFIX,
    DownloadFormat,
    artifact_path,
    metadata_path,
)
from shelfcache.errors.exceptions import CacheMetadataError, MetadataNotFoundError
from shelfcache.types import FileType

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(UTC)


class CacheMetadata(BaseModel):
    """What the cache knows about one generated artifact."""

    file_id: int
    format: str = str(DownloadFormat.original())
    file_type: str | None = None  # source extension; names original artifacts
    fingerprint_hash: str
    # Naive timestamps cannot be ordered against the rest; reject them.
    generated_at: AwareDatetime = Field(default_factory=utcnow)
    last_accessed_at: AwareDatetime = Field(default_factory=utcnow)
    size_bytes: int = 0

    @field_validator("format")
    @classmethod
    def _check_format(cls, value: str) -> str:
        DownloadFormat.parse(value)
        return value

    @property
    def download_format(self) -> DownloadFormat:
        return DownloadFormat.parse(self.format)


class MetadataStore:
    """Reads and writes sidecars in one flat cache directory.

    Sidecars are replaced atomically, so a concurrent reader sees either the
    previous record or the new one, never a partial write. Sidecars are not
    locked: two writers for the same entry simply race and the last one wins.
    """

    def __init__(self, cache_dir: Path | str) -> None:
        self._dir = Path(cache_dir)

    @property
    def dir(self) -> Path:
        return self._dir

    def metadata_path(self, file_id: int, fmt: DownloadFormat) -> Path:
        return metadata_path(self._dir, file_id, fmt)

    def artifact_path(
        self, file_id: int, fmt: DownloadFormat, file_type: str | None = None
    ) -> Path:
        return artifact_path(self._dir, file_id, fmt, file_type)

    def read(self, file_id: int, fmt: DownloadFormat) -> CacheMetadata | None:
        """Return the sidecar for an entry, or ``None`` if there is none."""
        return self._read_path(self.metadata_path(file_id, fmt))

    def write(self, meta: CacheMetadata) -> None:
        path = self.metadata_path(meta.file_id, meta.download_format)
        data = meta.model_dump_json(indent=2)
        tmp_path: str | None = None
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w",
                dir=self._dir,
                prefix=".meta-",
                suffix=".tmp",
                encoding="utf-8",
                delete=False,
            ) as f:
                tmp_path = f.name
                f.write(data)
            os.replace(tmp_path, path)
        except OSError as e:
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_path)
            raise CacheMetadataError(f"failed to write cache metadata: {e}", path=path) from e

    def update_last_accessed(self, file_id: int, fmt: DownloadFormat) -> CacheMetadata:
        """Touch an entry's access time. Touching a missing entry is an error."""
        meta = self.read(file_id, fmt)
        if meta is None:
            raise MetadataNotFoundError(
                f"cache metadata not found for {fmt} of file {file_id}",
                path=self.metadata_path(file_id, fmt),
            )
        meta.last_accessed_at = utcnow()
        self.write(meta)
        return meta

    def delete(
        self, file_id: int, fmt: DownloadFormat, file_type: str | None = None
    ) -> None:
        """Remove an entry's artifact and sidecar. Missing files are fine."""
        for path in self._artifact_candidates(file_id, fmt, file_type):
            _remove(path, "cached file")
        _remove(self.metadata_path(file_id, fmt), "cache metadata")

    def cached_file_path(
        self,
        file_id: int,
        fmt: DownloadFormat,
        file_type: str | None,
        current_hash: str,
    ) -> Path | None:
        """Path of a valid artifact: hash must match and the file must exist."""
        meta = self.read(file_id, fmt)
        if meta is None or meta.fingerprint_hash != current_hash:
            return None
        path = self.artifact_path(file_id, fmt, file_type)
        if not path.is_file():
            return None
        return path

    def list_entries(self) -> list[CacheMetadata]:
        """All parseable sidecars in the directory. Corrupt ones are skipped."""
        if not self._dir.is_dir():
            return []
        entries: list[CacheMetadata] = []
        for path in sorted(self._dir.glob(f"*{METADATA_SUFFIX}")):
            try:
                meta = self._read_path(path)
            except CacheMetadataError as e:
                logger.warning("Skipping unreadable cache metadata %s: %s", path.name, e.message)
                continue
            if meta is not None:
                entries.append(meta)
        return entries

    def total_size(self) -> int:
        return sum(e.size_bytes for e in self.list_entries())

    def _read_path(self, path: Path) -> CacheMetadata | None:
        try:
            data = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheMetadataError(f"failed to read cache metadata: {e}", path=path) from e
        try:
            return CacheMetadata.model_validate_json(data)
        except ValidationError as e:
            raise CacheMetadataError(
                f"failed to parse cache metadata: {e.error_count()} error(s)", path=path
            ) from e

    def _artifact_candidates(
        self, file_id: int, fmt: DownloadFormat, file_type: str | None
    ) -> list[Path]:
        if file_type or fmt != DownloadFormat.original():
            return [self.artifact_path(file_id, fmt, file_type)]
        # Original artifacts are named by source type; probe the known ones.
        return [self.artifact_path(file_id, fmt, ft.value) for ft in FileType]


def _remove(path: Path, what: str) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        return
    except OSError as e:
        raise CacheMetadataError(f"failed to delete {what}: {e}", path=path) from e
