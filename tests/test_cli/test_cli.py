"""Tests for CLI commands."""

import pytest
from click.testing import CliRunner

from shelfcache.cache.keys import DownloadFormat
from shelfcache.cache.metadata import CacheMetadata, MetadataStore
from shelfcache.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def populated(cache_dir):
    store = MetadataStore(cache_dir)
    for file_id, fmt, size in [
        (1, DownloadFormat.original(), 600),
        (2, DownloadFormat.kepub(), 600),
    ]:
        store.artifact_path(file_id, fmt, "epub").write_bytes(b"\0" * size)
        store.write(
            CacheMetadata(
                file_id=file_id,
                format=str(fmt),
                file_type="epub",
                fingerprint_hash="f" * 64,
                size_bytes=size,
            )
        )
    return cache_dir


class TestCLIGroup:
    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "shelfcache" in result.output
        for command in ("stats", "list", "cleanup", "invalidate"):
            assert command in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0


class TestStatsCommand:
    def test_shows_table(self, runner, populated):
        result = runner.invoke(cli, ["stats", "--cache-dir", str(populated)])
        assert result.exit_code == 0
        assert "Cache Statistics" in result.output
        assert "Entries" in result.output

    def test_empty_cache(self, runner, tmp_path):
        result = runner.invoke(cli, ["stats", "--cache-dir", str(tmp_path / "new")])
        assert result.exit_code == 0
        assert (tmp_path / "new").is_dir()


class TestListCommand:
    def test_lists_entries(self, runner, populated):
        result = runner.invoke(cli, ["list", "--cache-dir", str(populated)])
        assert result.exit_code == 0
        assert "Cache Entries" in result.output
        assert "kepub" in result.output
        assert "original" in result.output


class TestCleanupCommand:
    def test_evicts_over_limit(self, runner, populated):
        # 1200 bytes cached against a ~1073 byte limit
        result = runner.invoke(
            cli, ["cleanup", "--cache-dir", str(populated), "--max-size-gb", "0.000001"]
        )
        assert result.exit_code == 0
        assert "Removed 1 file(s)" in result.output
        assert len(MetadataStore(populated).list_entries()) == 1

    def test_under_limit(self, runner, populated):
        result = runner.invoke(cli, ["cleanup", "--cache-dir", str(populated)])
        assert result.exit_code == 0
        assert "Removed 0 file(s)" in result.output

    def test_locked(self, runner, populated):
        (populated / ".cleanup.lock").write_text("123:0\n")
        result = runner.invoke(cli, ["cleanup", "--cache-dir", str(populated)])
        assert result.exit_code == 0
        assert len(MetadataStore(populated).list_entries()) == 2


class TestInvalidateCommand:
    def test_invalidate_kepub(self, runner, populated):
        result = runner.invoke(
            cli, ["invalidate", "2", "--format", "kepub", "--cache-dir", str(populated)]
        )
        assert result.exit_code == 0
        assert "Invalidated kepub of file 2" in result.output
        assert not (populated / "2.kepub.epub").exists()
        assert not (populated / "2.kepub.meta.json").exists()

    def test_invalidate_original_without_file_type(self, runner, populated):
        result = runner.invoke(cli, ["invalidate", "1", "--cache-dir", str(populated)])
        assert result.exit_code == 0
        assert not (populated / "1.epub").exists()

    def test_bad_format(self, runner, populated):
        result = runner.invoke(
            cli, ["invalidate", "1", "--format", "mobi", "--cache-dir", str(populated)]
        )
        assert result.exit_code == 2
        assert (populated / "1.epub").exists()
