"""
Source registry — lookup and capability checks for package sources.

The registry is the single point of source management. Callers never
branch on source strings; they ask the registry for the source
object and, for version operations, for its versioned interface.
"""

from __future__ import annotations

import logging
from typing import Iterable

from devdeck.core.models.tool import SourceKind
from devdeck.gateway.base import OperationGateway
from devdeck.sources.base import CapabilityError, PackageSource, VersionedSource
from devdeck.sources.cargo import CargoSource
from devdeck.sources.go import GoSource
from devdeck.sources.npm import NpmSource
from devdeck.sources.pip import PipSource

logger = logging.getLogger(__name__)

_BUILTIN_SOURCES: dict[SourceKind, type[PackageSource]] = {
    SourceKind.NPM: NpmSource,
    SourceKind.CARGO: CargoSource,
    SourceKind.PIP: PipSource,
    SourceKind.GO: GoSource,
}

DEFAULT_SOURCES = (SourceKind.NPM, SourceKind.CARGO, SourceKind.PIP)


class SourceRegistry:
    """Registry of package sources, kept in declaration order."""

    def __init__(self) -> None:
        self._sources: dict[SourceKind, PackageSource] = {}

    def register(self, source: PackageSource) -> None:
        kind = source.kind
        if kind in self._sources:
            logger.warning("Overwriting existing source: %s", kind.value)
        self._sources[kind] = source
        logger.debug("Registered source: %s", kind.value)

    def unregister(self, kind: SourceKind) -> None:
        self._sources.pop(kind, None)

    def get(self, kind: SourceKind | str) -> PackageSource | None:
        """Look up a source by kind or by its string value."""
        try:
            kind = SourceKind(kind)
        except ValueError:
            return None
        return self._sources.get(kind)

    def sources(self) -> list[PackageSource]:
        """All registered sources, in declaration order."""
        return list(self._sources.values())

    def kinds(self) -> list[SourceKind]:
        return list(self._sources.keys())

    def require(self, kind: SourceKind | str) -> PackageSource:
        """Return a registered source.

        Raises:
            CapabilityError: If the source is unknown or not registered.
        """
        source = self.get(kind)
        if source is None:
            label = kind.value if isinstance(kind, SourceKind) else str(kind)
            raise CapabilityError(f"Unsupported tool source: {label}")
        return source

    def versioned(self, kind: SourceKind | str) -> VersionedSource:
        """Return the versioned interface of a source.

        Raises:
            CapabilityError: If the source is unknown or cannot
                enumerate versions.
        """
        source = self.require(kind)
        if not isinstance(source, VersionedSource):
            raise CapabilityError(
                f"Version switching is not supported for {source.label} tools"
            )
        return source

    def supports_versions(self, kind: SourceKind | str) -> bool:
        return isinstance(self.get(kind), VersionedSource)

    @classmethod
    def with_defaults(
        cls,
        gateway: OperationGateway,
        kinds: Iterable[SourceKind] = DEFAULT_SOURCES,
    ) -> SourceRegistry:
        """Build a registry with the built-in sources for ``kinds``."""
        registry = cls()
        for kind in kinds:
            source_cls = _BUILTIN_SOURCES.get(SourceKind(kind))
            if source_cls is None:
                logger.warning("No built-in source for %s — skipped", SourceKind(kind).value)
                continue
            registry.register(source_cls(gateway))
        return registry
