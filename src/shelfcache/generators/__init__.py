"""Generators — format converters the download cache drives."""

from shelfcache.generators.base import Generator, PluginGenerator
from shelfcache.generators.passthrough import PassthroughGenerator
from shelfcache.generators.registry import GeneratorInfo, GeneratorRegistry, default_registry

__all__ = [
    "Generator",
    "PluginGenerator",
    "PassthroughGenerator",
    "GeneratorInfo",
    "GeneratorRegistry",
    "default_registry",
]
