import asyncio
from pathlib import Path

import pytest

from shelfcache.cache.keys import FormatKind
from shelfcache.generators.registry import GeneratorRegistry
from shelfcache.types import Author, Book, BookSeries, File, Person, Series


class RecordingGenerator:
    """Writes a payload derived from the book title and counts its calls."""

    def __init__(self, file_type: str = "epub", delay: float = 0.0) -> None:
        self.file_type = file_type
        self.delay = delay
        self.calls = 0

    async def generate(self, src_path, dest_path, book, file):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        Path(dest_path).write_bytes(f"{book.title}|{file.id}".encode())

    def supported_type(self):
        return self.file_type


class FailingGenerator:
    def __init__(self, exc: Exception | None = None) -> None:
        self.exc = exc or RuntimeError("converter crashed")

    async def generate(self, src_path, dest_path, book, file):
        Path(dest_path).write_bytes(b"partial")
        raise self.exc

    def supported_type(self):
        return "epub"


class FakePluginGenerator(RecordingGenerator):
    def __init__(self, format_id: str = "mobi", plugin_fp: str = "v1") -> None:
        super().__init__(file_type=format_id)
        self.plugin_fp = plugin_fp

    def fingerprint(self, book, file):
        return self.plugin_fp


@pytest.fixture
def cache_dir(tmp_path):
    d = tmp_path / "cache"
    d.mkdir()
    return d


@pytest.fixture
def sample_book():
    return Book(
        id=7,
        title="Test Book",
        authors=[Author(sort_order=0, person=Person(name="Test Author"))],
    )


@pytest.fixture
def sample_file(tmp_path):
    src = tmp_path / "source.epub"
    src.write_bytes(b"source bytes")
    return File(id=1, file_type="epub", filepath=str(src))


@pytest.fixture
def series_book():
    return Book(
        title="The Way of Kings",
        authors=[Author(sort_order=0, person=Person(name="Brandon Sanderson"))],
        book_series=[
            BookSeries(sort_order=0, series_number=1, series=Series(name="The Stormlight Archive"))
        ],
    )


@pytest.fixture
def recording_generator():
    return RecordingGenerator()


@pytest.fixture
def registry(recording_generator):
    reg = GeneratorRegistry()
    reg.register("epub", FormatKind.ORIGINAL, recording_generator)
    return reg
