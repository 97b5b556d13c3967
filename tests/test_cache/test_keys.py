"""Tests for format discriminators, on-disk naming and canonical hashing."""

from pathlib import Path

import pytest

from shelfcache.cache.keys import (
    DownloadFormat,
    FormatKind,
    artifact_path,
    canonical_json,
    hash_canonical,
    metadata_path,
)


class TestDownloadFormat:
    def test_str(self):
        assert str(DownloadFormat.original()) == "original"
        assert str(DownloadFormat.kepub()) == "kepub"
        assert str(DownloadFormat.plugin("mobi")) == "plugin:mobi"

    def test_parse(self):
        assert DownloadFormat.parse("original") == DownloadFormat.original()
        assert DownloadFormat.parse("kepub").kind == FormatKind.KEPUB
        fmt = DownloadFormat.parse("plugin:pdf")
        assert fmt.kind == FormatKind.PLUGIN
        assert fmt.plugin_id == "pdf"

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            DownloadFormat.parse("mobi")

    def test_bare_plugin_rejected(self):
        with pytest.raises(ValueError):
            DownloadFormat.parse("plugin")
        with pytest.raises(ValueError):
            DownloadFormat.plugin("")

    @pytest.mark.parametrize("plugin_id", ["x/../../escaped", "..", ".", "a\\b", "a..b", ".hidden", "mobi."])
    def test_plugin_id_must_be_one_segment(self, plugin_id):
        with pytest.raises(ValueError):
            DownloadFormat.plugin(plugin_id)
        with pytest.raises(ValueError):
            DownloadFormat.parse(f"plugin:{plugin_id}")

    @pytest.mark.parametrize("plugin_id", ["mobi", "azw3", "my-plugin_2", "fb2.zip"])
    def test_plugin_id_accepted(self, plugin_id):
        assert DownloadFormat.plugin(plugin_id).plugin_id == plugin_id

    def test_hashable(self):
        keys = {DownloadFormat.original(), DownloadFormat.original(), DownloadFormat.kepub()}
        assert len(keys) == 2


class TestNaming:
    def test_original(self):
        fmt = DownloadFormat.original()
        assert artifact_path(Path("/cache"), 42, fmt, "epub") == Path("/cache/42.epub")
        assert metadata_path(Path("/cache"), 42, fmt) == Path("/cache/42.meta.json")

    def test_original_needs_file_type(self):
        with pytest.raises(ValueError):
            DownloadFormat.original().artifact_name(42)

    def test_kepub(self):
        fmt = DownloadFormat.kepub()
        assert artifact_path(Path("/cache"), 42, fmt) == Path("/cache/42.kepub.epub")
        assert metadata_path(Path("/cache"), 42, fmt) == Path("/cache/42.kepub.meta.json")

    def test_plugin(self):
        fmt = DownloadFormat.plugin("mobi")
        assert artifact_path(Path("/cache"), 42, fmt) == Path("/cache/42.plugin.mobi")
        assert metadata_path(Path("/cache"), 42, fmt) == Path("/cache/42.plugin.mobi.meta.json")


class TestCanonicalHash:
    def test_key_order_independent(self):
        assert hash_canonical({"a": 1, "b": [1, 2]}) == hash_canonical({"b": [1, 2], "a": 1})

    def test_compact(self):
        assert canonical_json({"b": 1, "a": "x"}) == '{"a":"x","b":1}'

    def test_returns_hex_string(self):
        h = hash_canonical({"x": 1})
        assert len(h) == 64
        assert all(c in "0123456789abcdef" for c in h)
