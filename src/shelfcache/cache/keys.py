"""Cache keys — format discriminator, on-disk naming, canonical hashing."""

from __future__ import annotations

import hashlib
import json
import re
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

METADATA_SUFFIX = ".meta.json"
LOCK_FILENAME = ".cleanup.lock"
STAGING_PREFIX = ".staging-"

_PLUGIN_PREFIX = "plugin:"
# Becomes part of a file name in a flat directory: no separators, no dot-only
# or empty segments.
_PLUGIN_ID_RE = re.compile(r"[A-Za-z0-9_\-]+(?:\.[A-Za-z0-9_\-]+)*")


class FormatKind(StrEnum):
    ORIGINAL = "original"
    KEPUB = "kepub"
    PLUGIN = "plugin"


class DownloadFormat(BaseModel):
    """Which variant of a file a cache entry holds.

    ``original`` is the source file with current metadata written back,
    ``kepub`` the Kobo-optimized conversion, and ``plugin:<id>`` the output
    of a plugin-provided generator. The variant decides the fingerprint's
    format field, the artifact and sidecar names, and the filename rule.
    """

    model_config = ConfigDict(frozen=True)

    kind: FormatKind
    plugin_id: str | None = None

    @model_validator(mode="after")
    def _check_plugin_id(self) -> DownloadFormat:
        if self.kind == FormatKind.PLUGIN and not self.plugin_id:
            raise ValueError("plugin formats need a plugin_id")
        if self.plugin_id is not None and not _PLUGIN_ID_RE.fullmatch(self.plugin_id):
            raise ValueError(f"plugin_id must be a single file-name segment: {self.plugin_id!r}")
        if self.kind != FormatKind.PLUGIN and self.plugin_id is not None:
            raise ValueError(f"{self.kind} format does not take a plugin_id")
        return self

    @classmethod
    def original(cls) -> DownloadFormat:
        return cls(kind=FormatKind.ORIGINAL)

    @classmethod
    def kepub(cls) -> DownloadFormat:
        return cls(kind=FormatKind.KEPUB)

    @classmethod
    def plugin(cls, format_id: str) -> DownloadFormat:
        return cls(kind=FormatKind.PLUGIN, plugin_id=format_id)

    @classmethod
    def parse(cls, value: str) -> DownloadFormat:
        """Inverse of ``str()``: ``original``, ``kepub`` or ``plugin:<id>``."""
        if value.startswith(_PLUGIN_PREFIX):
            return cls.plugin(value[len(_PLUGIN_PREFIX):])
        try:
            kind = FormatKind(value)
        except ValueError:
            raise ValueError(f"Unknown download format: {value!r}") from None
        if kind == FormatKind.PLUGIN:
            raise ValueError("plugin formats are written as 'plugin:<id>'")
        return cls(kind=kind)

    def __str__(self) -> str:
        if self.kind == FormatKind.PLUGIN:
            return f"{_PLUGIN_PREFIX}{self.plugin_id}"
        return self.kind.value

    def artifact_name(self, file_id: int, file_type: str | None = None) -> str:
        if self.kind == FormatKind.KEPUB:
            return f"{file_id}.kepub.epub"
        if self.kind == FormatKind.PLUGIN:
            return f"{file_id}.plugin.{self.plugin_id}"
        if not file_type:
            raise ValueError("original artifacts are named by their file type")
        return f"{file_id}.{file_type}"

    def metadata_name(self, file_id: int) -> str:
        if self.kind == FormatKind.KEPUB:
            return f"{file_id}.kepub{METADATA_SUFFIX}"
        if self.kind == FormatKind.PLUGIN:
            return f"{file_id}.plugin.{self.plugin_id}{METADATA_SUFFIX}"
        return f"{file_id}{METADATA_SUFFIX}"


def artifact_path(
    cache_dir: Path, file_id: int, fmt: DownloadFormat, file_type: str | None = None
) -> Path:
    """Return the artifact path for an entry."""
    return Path(cache_dir) / fmt.artifact_name(file_id, file_type)


def metadata_path(cache_dir: Path, file_id: int, fmt: DownloadFormat) -> Path:
    """Return the sidecar path for an entry."""
    return Path(cache_dir) / fmt.metadata_name(file_id)


def canonical_json(data: dict[str, Any]) -> str:
    """Serialize a dict deterministically: sorted keys, no whitespace."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def hash_canonical(data: dict[str, Any]) -> str:
    """SHA256 hex digest of the canonical JSON form of ``data``."""
    return hashlib.sha256(canonical_json(data).encode("utf-8")).hexdigest()
