"""Sources — one implementation per package manager.

Public re-exports for convenient access.
"""

from devdeck.sources.base import CapabilityError, PackageSource, VersionedSource
from devdeck.sources.cargo import CargoSource
from devdeck.sources.go import GoSource
from devdeck.sources.npm import NpmSource
from devdeck.sources.pip import PipSource
from devdeck.sources.registry import DEFAULT_SOURCES, SourceRegistry

__all__ = [
    "CapabilityError",
    "CargoSource",
    "DEFAULT_SOURCES",
    "GoSource",
    "NpmSource",
    "PackageSource",
    "PipSource",
    "SourceRegistry",
    "VersionedSource",
]
