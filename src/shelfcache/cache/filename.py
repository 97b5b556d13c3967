"""Download filenames derived from current book and file metadata.

Generic form: ``[Author] Series #Number - Title {Narrator}.ext``. Segments
whose data is missing are dropped. Titles that already carry a volume marker
(``v1``, ``Vol. 2``) skip the series segment, and the volume number is
zero-padded so volumes sort lexicographically.
"""

from __future__ import annotations

import math
import re

from shelfcache.types import Book, File

_VOLUME_RE = re.compile(r"\bv(?:ol\.?)?\s*(\d+)", re.IGNORECASE)

# Reserved on at least one of Windows, macOS, Linux.
_INVALID_FILENAME_CHARS = ("/", "\\", ":", "*", "?", '"', "<", ">", "|")

# Kobo firmware only reliably handles plain alphanumerics in filenames, and
# colons hide kepub files from the library entirely.
_KOBO_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9\s\-_.,()']")

_MULTISPACE_RE = re.compile(r" {2,}")


def pad_volume_number(title: str) -> str:
    """Pad volume numbers in a title to at least 3 digits.

    ``"Manga v1"`` becomes ``"Manga v001"``, ``"Manga vol. 10"`` becomes
    ``"Manga vol. 010"``.
    """

    def _pad(match: re.Match[str]) -> str:
        text = match.group(0)
        digits = match.group(1)
        return text[: len(text) - len(digits)] + digits.zfill(3)

    return _VOLUME_RE.sub(_pad, title)


def has_volume_marker(title: str) -> bool:
    return _VOLUME_RE.search(title) is not None


def format_series_number(number: float) -> str:
    """Whole numbers print without a decimal, others in shortest form."""
    if math.isfinite(number) and number == math.floor(number):
        return str(int(number))
    return repr(number)


def sanitize_filename(value: str) -> str:
    """Strip OS-reserved characters and collapse whitespace."""
    for char in _INVALID_FILENAME_CHARS:
        value = value.replace(char, "")
    return _collapse_spaces(value)


def sanitize_kobo_filename(value: str) -> str:
    """Keep only characters Kobo e-readers handle reliably."""
    return _collapse_spaces(_KOBO_UNSAFE_RE.sub("", value))


def format_download_filename(book: Book, file: File) -> str:
    return _format_generic(book, file, file.file_type)


def format_plugin_download_filename(book: Book, file: File, format_id: str) -> str:
    """Generic form with the plugin's format ID as the extension."""
    return _format_generic(book, file, format_id)


def format_kepub_download_filename(book: Book, file: File) -> str:
    """Kobo-safe form: ``Author - Series Number - Title.kepub.epub``.

    No brackets, no ``#`` and no narrator, since Kobo firmware cannot parse
    them reliably.
    """
    title_source = _title_source(book, file)
    title = sanitize_kobo_filename(pad_volume_number(title_source))
    author = sanitize_kobo_filename(first_author_name(book))
    series, number = first_series(book)

    parts: list[str] = []
    if author:
        parts += [author, "-"]

    if series and not has_volume_marker(title_source):
        series_part = sanitize_kobo_filename(series)
        if number is not None:
            series_part += " " + format_series_number(number)
        parts += [series_part, "-"]

    parts.append(title)
    return " ".join(parts) + ".kepub.epub"


def first_author_name(book: Book) -> str:
    """Name of the author with the lowest sort order, or ``""``."""
    if not book.authors:
        return ""
    first = min(book.authors, key=lambda a: a.sort_order)
    return first.person.name if first.person else ""


def first_narrator_name(file: File) -> str:
    if not file.narrators:
        return ""
    first = min(file.narrators, key=lambda n: n.sort_order)
    return first.person.name if first.person else ""


def first_series(book: Book) -> tuple[str, float | None]:
    if not book.book_series:
        return "", None
    first = min(book.book_series, key=lambda s: s.sort_order)
    if first.series is None:
        return "", None
    return first.series.name, first.series_number


def _format_generic(book: Book, file: File, ext: str) -> str:
    title_source = _title_source(book, file)
    title = sanitize_filename(pad_volume_number(title_source))
    author = first_author_name(book)
    series, number = first_series(book)
    narrator = first_narrator_name(file)

    parts: list[str] = []
    if author:
        parts.append(f"[{sanitize_filename(author)}]")

    if series and not has_volume_marker(title_source):
        series_part = sanitize_filename(series)
        if number is not None:
            series_part += " #" + format_series_number(number)
        parts += [series_part, "-"]

    parts.append(title)

    if narrator:
        parts.append(f"{{{sanitize_filename(narrator)}}}")

    return " ".join(parts) + "." + ext


def _title_source(book: Book, file: File) -> str:
    return file.name if file.name else book.title


def _collapse_spaces(value: str) -> str:
    return _MULTISPACE_RE.sub(" ", value.strip())
