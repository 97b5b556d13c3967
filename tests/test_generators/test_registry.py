"""Tests for the generator registry and built-in generators."""

import pytest

from conftest import FakePluginGenerator, RecordingGenerator
from shelfcache.cache.keys import FormatKind
from shelfcache.errors.exceptions import KepubNotSupportedError, UnsupportedFormatError
from shelfcache.generators import (
    Generator,
    GeneratorRegistry,
    PassthroughGenerator,
    PluginGenerator,
    default_registry,
)
from shelfcache.types import Book, File


class TestGeneratorRegistry:
    def test_register_and_get(self):
        reg = GeneratorRegistry()
        gen = RecordingGenerator()
        reg.register("epub", FormatKind.ORIGINAL, gen)
        assert reg.get("epub", FormatKind.ORIGINAL) is gen
        assert reg.supports("epub", FormatKind.ORIGINAL)

    def test_missing_original(self):
        with pytest.raises(UnsupportedFormatError) as exc_info:
            GeneratorRegistry().get("pdf", FormatKind.ORIGINAL)
        assert exc_info.value.file_type == "pdf"
        assert not isinstance(exc_info.value, KepubNotSupportedError)

    def test_missing_kepub(self):
        reg = GeneratorRegistry()
        assert not reg.supports_kepub("cbz")
        with pytest.raises(KepubNotSupportedError):
            reg.get_kepub("cbz")

    def test_kepub(self):
        reg = GeneratorRegistry()
        gen = RecordingGenerator()
        reg.register("cbz", FormatKind.KEPUB, gen)
        assert reg.supports_kepub("cbz")
        assert reg.get_kepub("cbz") is gen

    def test_plugins_not_registered(self):
        with pytest.raises(ValueError):
            GeneratorRegistry().register("epub", FormatKind.PLUGIN, RecordingGenerator())

    def test_replace(self):
        reg = GeneratorRegistry()
        first, second = RecordingGenerator(), RecordingGenerator()
        reg.register("epub", FormatKind.ORIGINAL, first)
        reg.register("epub", FormatKind.ORIGINAL, second)
        assert reg.get("epub", FormatKind.ORIGINAL) is second

    def test_list_generators(self):
        reg = GeneratorRegistry()
        reg.register("epub", FormatKind.KEPUB, RecordingGenerator())
        reg.register("cbz", FormatKind.ORIGINAL, RecordingGenerator())
        infos = reg.list_generators()
        assert [(i.file_type, i.kind) for i in infos] == [
            ("cbz", FormatKind.ORIGINAL),
            ("epub", FormatKind.KEPUB),
        ]
        assert infos[0].generator == "RecordingGenerator"


class TestDefaultRegistry:
    @pytest.mark.parametrize("file_type", ["epub", "cbz", "m4b", "pdf"])
    def test_originals_registered(self, file_type):
        gen = default_registry().get(file_type, FormatKind.ORIGINAL)
        assert isinstance(gen, PassthroughGenerator)
        assert gen.supported_type() == file_type

    def test_no_kepub_by_default(self):
        assert not default_registry().supports_kepub("epub")


class TestProtocols:
    def test_generator_protocol(self):
        assert isinstance(RecordingGenerator(), Generator)
        assert isinstance(PassthroughGenerator("epub"), Generator)

    def test_plugin_protocol(self):
        assert isinstance(FakePluginGenerator(), PluginGenerator)
        assert not isinstance(PassthroughGenerator("epub"), PluginGenerator)


class TestPassthroughGenerator:
    async def test_copies_bytes(self, tmp_path):
        src = tmp_path / "in.cbz"
        src.write_bytes(b"PK\x03\x04comic")
        dest = tmp_path / "out.cbz"
        await PassthroughGenerator("cbz").generate(
            src, dest, Book(title="x"), File(file_type="cbz", filepath=str(src))
        )
        assert dest.read_bytes() == b"PK\x03\x04comic"

    async def test_missing_source_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            await PassthroughGenerator("epub").generate(
                tmp_path / "missing.epub", tmp_path / "out.epub", Book(title="x"), File(file_type="epub")
            )
