"""Byte-for-byte copy of the source file."""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

from shelfcache.types import Book, File


class PassthroughGenerator:
    """Serves the source file unchanged.

    Used for original downloads when no metadata-embedding converter is
    registered for a file type.
    """

    def __init__(self, file_type: str) -> None:
        self._file_type = file_type

    async def generate(
        self, src_path: Path, dest_path: Path, book: Book, file: File
    ) -> None:
        await asyncio.to_thread(shutil.copyfile, src_path, dest_path)

    def supported_type(self) -> str:
        return self._file_type
