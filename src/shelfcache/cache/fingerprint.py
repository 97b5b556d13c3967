"""Fingerprints — canonical snapshots of the metadata a download depends on.

A fingerprint captures every field that ends up inside a generated file.
The cache never receives invalidation events: an entry is valid exactly when
the hash of the fingerprint computed from current metadata equals the hash
stored beside the artifact. Every list is therefore sorted by an explicit,
total key so that equal metadata always serializes to identical JSON, no
matter what order the relations were loaded in.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime

from pydantic import BaseModel, Field

from shelfcache.cache.keys import DownloadFormat, canonical_json, hash_canonical
from shelfcache.errors.exceptions import FingerprintError
from shelfcache.types import Book, Chapter, File

logger = logging.getLogger(__name__)


class FingerprintAuthor(BaseModel):
    name: str
    role: str | None = None
    sort_order: int


class FingerprintNarrator(BaseModel):
    name: str
    sort_order: int


class FingerprintSeries(BaseModel):
    name: str
    number: float | None = None
    sort_order: int


class FingerprintIdentifier(BaseModel):
    type: str
    value: str


class FingerprintCover(BaseModel):
    path: str
    mime_type: str = ""
    mod_time_ns: int = 0  # 0 when the cover file cannot be stat'ed


class FingerprintChapter(BaseModel):
    title: str
    sort_order: int
    start_page: int | None = None
    start_timestamp_ms: int | None = None
    href: str | None = None
    children: list[FingerprintChapter] = Field(default_factory=list)


class Fingerprint(BaseModel):
    """Metadata that affects file generation.

    A change to any field here must invalidate the cached artifact.
    """

    title: str
    subtitle: str | None = None
    description: str | None = None
    authors: list[FingerprintAuthor] = Field(default_factory=list)
    narrators: list[FingerprintNarrator] = Field(default_factory=list)
    series: list[FingerprintSeries] = Field(default_factory=list)
    genres: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    identifiers: list[FingerprintIdentifier] = Field(default_factory=list)
    url: str | None = None
    publisher: str | None = None
    imprint: str | None = None
    release_date: datetime | None = None
    cover: FingerprintCover | None = None
    cover_page: int | None = None
    chapters: list[FingerprintChapter] = Field(default_factory=list)
    format: str = str(DownloadFormat.original())
    name: str | None = None
    plugin_fingerprint: str | None = None

    def canonical_json(self) -> str:
        return canonical_json(self._payload())

    def hash(self) -> str:
        """SHA256 hex digest of the canonical serialization."""
        return hash_canonical(self._payload())

    def equals(self, other: Fingerprint | None) -> bool:
        return fingerprints_equal(self, other)

    def _payload(self) -> dict:
        try:
            return self.model_dump(mode="json", exclude_none=True)
        except Exception as e:
            raise FingerprintError(f"failed to serialize fingerprint: {e}") from e


def fingerprints_equal(a: Fingerprint | None, b: Fingerprint | None) -> bool:
    """Two missing fingerprints are equal; otherwise compare hashes."""
    if a is None and b is None:
        return True
    if a is None or b is None:
        return False
    try:
        return a.hash() == b.hash()
    except FingerprintError:
        return False


def compute_fingerprint(
    book: Book,
    file: File,
    fmt: DownloadFormat | None = None,
    plugin_fingerprint: str | None = None,
) -> Fingerprint:
    """Snapshot ``book`` and ``file`` for the requested download format.

    Missing relations (an author link without a person, no cover) produce
    empty lists or ``None`` rather than errors.
    """
    fmt = fmt or DownloadFormat.original()

    authors = [
        FingerprintAuthor(name=a.person.name, role=a.role, sort_order=a.sort_order)
        for a in book.authors
        if a.person is not None
    ]
    authors.sort(key=lambda a: (a.sort_order, a.name, a.role or ""))

    narrators = [
        FingerprintNarrator(name=n.person.name, sort_order=n.sort_order)
        for n in file.narrators
        if n.person is not None
    ]
    narrators.sort(key=lambda n: (n.sort_order, n.name))

    series = [
        FingerprintSeries(name=bs.series.name, number=bs.series_number, sort_order=bs.sort_order)
        for bs in book.book_series
        if bs.series is not None
    ]
    series.sort(key=_series_key)

    identifiers = sorted(
        (FingerprintIdentifier(type=i.type, value=i.value) for i in file.identifiers),
        key=lambda i: (i.type, i.value),
    )

    return Fingerprint(
        title=book.title,
        subtitle=book.subtitle,
        description=book.description,
        authors=authors,
        narrators=narrators,
        series=series,
        genres=sorted(g.name for g in book.genres),
        tags=sorted(t.name for t in book.tags),
        identifiers=identifiers,
        url=file.url,
        publisher=file.publisher.name if file.publisher else None,
        imprint=file.imprint.name if file.imprint else None,
        release_date=file.release_date,
        cover=_cover_fingerprint(file),
        cover_page=file.cover_page,
        chapters=_chapters_fingerprint(file.chapters),
        format=str(fmt),
        name=file.name,
        plugin_fingerprint=plugin_fingerprint or None,
    )


def _series_key(s: FingerprintSeries) -> tuple:
    # None sorts before any number
    number = (0, 0.0) if s.number is None else (1, s.number)
    return (s.sort_order, s.name, number)


def _cover_fingerprint(file: File) -> FingerprintCover | None:
    if not file.cover_image_filename:
        return None
    path = file.cover_image_filename
    try:
        mod_time_ns = os.stat(path).st_mtime_ns
    except OSError:
        logger.debug("Cover %s not readable, fingerprinting without mtime", path)
        mod_time_ns = 0
    return FingerprintCover(
        path=path,
        mime_type=file.cover_mime_type or "",
        mod_time_ns=mod_time_ns,
    )


def _chapters_fingerprint(chapters: list[Chapter]) -> list[FingerprintChapter]:
    ordered = sorted(chapters, key=_chapter_key)
    return [
        FingerprintChapter(
            title=ch.title,
            sort_order=ch.sort_order,
            start_page=ch.start_page,
            start_timestamp_ms=ch.start_timestamp_ms,
            href=ch.href,
            children=_chapters_fingerprint(ch.children),
        )
        for ch in ordered
    ]


def _chapter_key(ch: Chapter) -> tuple:
    return (
        ch.sort_order,
        ch.start_page if ch.start_page is not None else -1,
        ch.start_timestamp_ms if ch.start_timestamp_ms is not None else -1,
        ch.href or "",
        ch.title,
    )
