"""Generator protocols — what the cache needs from a format converter."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from shelfcache.types import Book, File


@runtime_checkable
class Generator(Protocol):
    """Materializes a download at ``dest_path`` from the source file."""

    async def generate(
        self, src_path: Path, dest_path: Path, book: Book, file: File
    ) -> None: ...

    def supported_type(self) -> str: ...


@runtime_checkable
class PluginGenerator(Generator, Protocol):
    """A plugin-provided generator.

    ``supported_type()`` returns the plugin's format ID (e.g. ``"mobi"``).
    ``fingerprint()`` returns an opaque string folded into the cache
    fingerprint, so a plugin can force regeneration when its own output
    changes (a new converter version, different settings).
    """

    def fingerprint(self, book: Book, file: File) -> str: ...
