"""Custom exception hierarchy for shelfcache."""

from __future__ import annotations

from pathlib import Path
from typing import Any


class ShelfCacheError(Exception):
    """Base exception for all shelfcache errors."""

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message


class UnsupportedFormatError(ShelfCacheError):
    """No generator can produce the requested format from this source type.

    This is a caller error: an HTTP layer should answer it with a 4xx.
    """

    def __init__(
        self,
        message: str = "",
        file_type: str = "",
        download_format: str = "",
    ) -> None:
        if not message:
            message = f"cannot generate {download_format or 'download'} from {file_type or 'unknown'} file"
        super().__init__(message)
        self.file_type = file_type
        self.download_format = download_format


class KepubNotSupportedError(UnsupportedFormatError):
    """KePub conversion is not available for this file type."""

    def __init__(self, file_type: str = "") -> None:
        super().__init__(
            f"KePub conversion not supported for {file_type or 'this'} file type",
            file_type=file_type,
            download_format="kepub",
        )


class GenerationError(ShelfCacheError):
    """A generator failed to produce its artifact."""

    def __init__(
        self,
        message: str = "",
        file_type: str = "",
        original: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.file_type = file_type
        self.original = original

    def __str__(self) -> str:
        return f"failed to generate {self.file_type} file: {self.message}"


class CacheMetadataError(ShelfCacheError):
    """A metadata sidecar could not be read, parsed, or written."""

    def __init__(self, message: str = "", path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class MetadataNotFoundError(CacheMetadataError):
    """No sidecar exists for the entry being updated."""


class FingerprintError(ShelfCacheError):
    """A fingerprint could not be computed or serialized."""
