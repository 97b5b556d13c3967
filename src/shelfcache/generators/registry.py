"""Generator registry — look up a converter by source type and format."""

from __future__ import annotations

import logging
from typing import NamedTuple

from shelfcache.cache.keys import FormatKind
from shelfcache.errors.exceptions import KepubNotSupportedError, UnsupportedFormatError
from shelfcache.generators.base import Generator
from shelfcache.generators.passthrough import PassthroughGenerator
from shelfcache.types import FileType

logger = logging.getLogger(__name__)


class GeneratorInfo(NamedTuple):
    file_type: str
    kind: FormatKind
    generator: str


class GeneratorRegistry:
    """Maps (source file type, format kind) to a generator.

    Plugin generators are not registered here: the caller resolves the plugin
    and hands it to the cache directly.
    """

    def __init__(self) -> None:
        self._generators: dict[tuple[str, FormatKind], Generator] = {}

    def register(
        self, file_type: str, kind: FormatKind, generator: Generator
    ) -> None:
        if kind == FormatKind.PLUGIN:
            raise ValueError("plugin generators are passed per request, not registered")
        key = (str(file_type), kind)
        if key in self._generators:
            logger.debug("Replacing %s generator for %s files", kind, file_type)
        self._generators[key] = generator

    def get(self, file_type: str, kind: FormatKind) -> Generator:
        generator = self._generators.get((str(file_type), kind))
        if generator is None:
            if kind == FormatKind.KEPUB:
                raise KepubNotSupportedError(file_type)
            raise UnsupportedFormatError(file_type=file_type, download_format=kind.value)
        return generator

    def supports(self, file_type: str, kind: FormatKind) -> bool:
        return (str(file_type), kind) in self._generators

    def get_kepub(self, file_type: str) -> Generator:
        return self.get(file_type, FormatKind.KEPUB)

    def supports_kepub(self, file_type: str) -> bool:
        return self.supports(file_type, FormatKind.KEPUB)

    def list_generators(self) -> list[GeneratorInfo]:
        return [
            GeneratorInfo(file_type=ft, kind=kind, generator=type(gen).__name__)
            for (ft, kind), gen in sorted(self._generators.items(), key=lambda kv: kv[0])
        ]


def default_registry() -> GeneratorRegistry:
    """A registry serving every known file type as an original download.

    KePub converters are application-specific and must be registered by the
    host.
    """
    registry = GeneratorRegistry()
    for file_type in FileType:
        registry.register(file_type.value, FormatKind.ORIGINAL, PassthroughGenerator(file_type.value))
    return registry
