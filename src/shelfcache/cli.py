"""Click CLI for shelfcache — inspect and maintain a download cache."""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from shelfcache.config.hierarchy import load_config_hierarchy
from shelfcache.config.schema import CacheConfig

console = Console()
error_console = Console(stderr=True)


def _setup_logging(verbosity: int, default_level: str = "WARNING") -> None:
    """Configure logging based on verbosity level."""
    level = logging.getLevelName(default_level.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_time=False, show_path=False)],
        force=True,
    )


def _cache_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Shared --cache-dir / --max-size-gb / -v options."""
    fn = click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug).")(fn)
    fn = click.option("--max-size-gb", type=float, default=None, help="Maximum cache size in GB.")(fn)
    fn = click.option(
        "--cache-dir", type=click.Path(file_okay=False), default=None, help="Cache directory."
    )(fn)
    return fn


def _load_config(cache_dir: str | None, max_size_gb: float | None, verbose: int) -> CacheConfig:
    raw = load_config_hierarchy(cache_dir=cache_dir, cache_max_size_gb=max_size_gb)
    try:
        cfg = CacheConfig.model_validate(raw)
    except ValueError as e:
        error_console.print(f"[red]Invalid configuration:[/red] {e}")
        sys.exit(1)
    _setup_logging(verbose, cfg.log_level)
    return cfg


def _open_cache(cfg: CacheConfig):
    from shelfcache.cache.manager import DownloadCache

    return DownloadCache(cfg.cache_dir, cfg.max_size_bytes)


@click.group()
@click.version_option(package_name="shelfcache")
def cli() -> None:
    """shelfcache — download cache maintenance for a digital library."""


@cli.command("stats")
@_cache_options
def cache_stats(cache_dir: str | None, max_size_gb: float | None, verbose: int) -> None:
    """Show cache statistics."""
    cfg = _load_config(cache_dir, max_size_gb, verbose)
    stats = _open_cache(cfg).stats()

    table = Table(title="Cache Statistics", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")

    table.add_row("Directory", str(cfg.cache_dir))
    table.add_row("Entries", str(stats.entries))
    table.add_row("Size (MB)", f"{stats.size_mb:.1f}")
    table.add_row("Limit (MB)", f"{stats.max_size_bytes / (1024 * 1024):.1f}")
    if stats.max_size_bytes:
        table.add_row("Used", f"{stats.size_bytes / stats.max_size_bytes:.1%}")

    console.print(table)


@cli.command("list")
@_cache_options
def list_entries(cache_dir: str | None, max_size_gb: float | None, verbose: int) -> None:
    """List cache entries, least recently accessed first."""
    cfg = _load_config(cache_dir, max_size_gb, verbose)
    entries = _open_cache(cfg).store.list_entries()
    entries.sort(key=lambda e: e.last_accessed_at)

    table = Table(title="Cache Entries", show_header=True)
    table.add_column("File", style="cyan")
    table.add_column("Format")
    table.add_column("Size (KB)", justify="right")
    table.add_column("Last accessed")
    table.add_column("Fingerprint")

    for e in entries:
        table.add_row(
            str(e.file_id),
            e.format,
            f"{e.size_bytes / 1024:.1f}",
            e.last_accessed_at.isoformat(timespec="seconds"),
            e.fingerprint_hash[:12],
        )

    console.print(table)


@cli.command("cleanup")
@_cache_options
def cleanup(cache_dir: str | None, max_size_gb: float | None, verbose: int) -> None:
    """Evict least recently used entries if the cache is over its limit."""
    cfg = _load_config(cache_dir, max_size_gb, verbose)
    stats = _open_cache(cfg).trigger_cleanup()
    if stats is None:
        error_console.print("[yellow]Cleanup already in progress (or failed); nothing done.[/yellow]")
        return
    console.print(
        f"[green]Removed {stats.files_removed} file(s), {stats.bytes_removed:,} bytes.[/green] "
        f"{stats.files_remained} file(s), {stats.bytes_remained:,} bytes remain."
    )


@cli.command("invalidate")
@click.argument("file_id", type=int)
@click.option(
    "--format", "format_", default="original", show_default=True,
    help="original, kepub, or plugin:<id>.",
)
@click.option("--file-type", default=None, help="Source file type (original format only).")
@_cache_options
def invalidate(
    file_id: int,
    format_: str,
    file_type: str | None,
    cache_dir: str | None,
    max_size_gb: float | None,
    verbose: int,
) -> None:
    """Remove one cache entry."""
    from shelfcache.cache.keys import DownloadFormat
    from shelfcache.errors.exceptions import ShelfCacheError

    cfg = _load_config(cache_dir, max_size_gb, verbose)
    try:
        fmt = DownloadFormat.parse(format_)
    except ValueError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(2)

    try:
        _open_cache(cfg).store.delete(file_id, fmt, file_type)
    except ShelfCacheError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    console.print(f"[green]Invalidated {fmt} of file {file_id}.[/green]")


def main() -> None:
    """Entry point for the CLI."""
    cli()
