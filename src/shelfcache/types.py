"""Shared Pydantic models for shelfcache.

These mirror the records the library's entity services load for a book and
one of its files. Relations are kept in their joined shape (an ``Author``
links a ``Person`` with a per-book sort position) because the link carries
attributes of its own.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

# ── Enums ──


class FileType(StrEnum):
    EPUB = "epub"
    CBZ = "cbz"
    M4B = "m4b"
    PDF = "pdf"


# ── People and collections ──


class Person(BaseModel):
    name: str


class Author(BaseModel):
    sort_order: int = 0
    role: str | None = None  # comic credits: writer, penciller, ...
    person: Person | None = None


class Narrator(BaseModel):
    sort_order: int = 0
    person: Person | None = None


class Series(BaseModel):
    name: str


class BookSeries(BaseModel):
    sort_order: int = 0
    series_number: float | None = None
    series: Series | None = None


class Genre(BaseModel):
    name: str


class Tag(BaseModel):
    name: str


class Publisher(BaseModel):
    name: str


class Imprint(BaseModel):
    name: str


class FileIdentifier(BaseModel):
    type: str
    value: str


class Chapter(BaseModel):
    """A table-of-contents node.

    Exactly one position marker is normally set, depending on the source:
    a page index for page-image files, a millisecond offset for audiobooks,
    or a document href for reflowable books.
    """

    title: str
    sort_order: int = 0
    start_page: int | None = None
    start_timestamp_ms: int | None = None
    href: str | None = None
    children: list[Chapter] = Field(default_factory=list)


# ── Book and file ──


class Book(BaseModel):
    id: int = 0
    title: str
    subtitle: str | None = None
    description: str | None = None
    authors: list[Author] = Field(default_factory=list)
    book_series: list[BookSeries] = Field(default_factory=list)
    genres: list[Genre] = Field(default_factory=list)
    tags: list[Tag] = Field(default_factory=list)


class File(BaseModel):
    id: int = 0
    file_type: str
    filepath: str = ""
    name: str | None = None  # edition name, overrides the book title
    url: str | None = None
    release_date: datetime | None = None
    publisher: Publisher | None = None
    imprint: Imprint | None = None
    narrators: list[Narrator] = Field(default_factory=list)
    identifiers: list[FileIdentifier] = Field(default_factory=list)
    chapters: list[Chapter] = Field(default_factory=list)
    cover_image_filename: str | None = None
    cover_mime_type: str | None = None
    cover_page: int | None = None  # 0-indexed, page-image sources only
