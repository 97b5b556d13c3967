"""Tests for the exception hierarchy."""

from pathlib import Path

from shelfcache.errors.exceptions import (
    CacheMetadataError,
    FingerprintError,
    GenerationError,
    KepubNotSupportedError,
    MetadataNotFoundError,
    ShelfCacheError,
    UnsupportedFormatError,
)


class TestExceptionHierarchy:
    def test_all_inherit_from_base(self):
        for exc_class in (
            UnsupportedFormatError,
            KepubNotSupportedError,
            GenerationError,
            CacheMetadataError,
            MetadataNotFoundError,
            FingerprintError,
        ):
            assert issubclass(exc_class, ShelfCacheError)

    def test_kepub_is_unsupported_format(self):
        assert issubclass(KepubNotSupportedError, UnsupportedFormatError)

    def test_not_found_is_metadata_error(self):
        assert issubclass(MetadataNotFoundError, CacheMetadataError)


class TestUnsupportedFormatError:
    def test_default_message(self):
        err = UnsupportedFormatError(file_type="m4b", download_format="original")
        assert err.message == "cannot generate original from m4b file"
        assert err.file_type == "m4b"

    def test_explicit_message(self):
        assert str(UnsupportedFormatError("nope")) == "nope"

    def test_kepub(self):
        err = KepubNotSupportedError("m4b")
        assert err.download_format == "kepub"
        assert err.file_type == "m4b"
        assert "m4b" in str(err)


class TestGenerationError:
    def test_str_wraps_message(self):
        cause = RuntimeError("zip broken")
        err = GenerationError("zip broken", file_type="cbz", original=cause)
        assert str(err) == "failed to generate cbz file: zip broken"
        assert err.original is cause


class TestCacheMetadataError:
    def test_path(self):
        err = CacheMetadataError("bad", path="/cache/1.meta.json")
        assert err.path == Path("/cache/1.meta.json")
        assert err.message == "bad"

    def test_no_path(self):
        assert CacheMetadataError("bad").path is None
