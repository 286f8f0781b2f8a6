"""
Source base — the per-package-manager contract.

Each package manager the control panel tracks is one PackageSource.
Sources translate tool-level requests into gateway operations and
gateway replies into ToolRecords. Version enumeration is a separate
capability: only sources implementing VersionedSource offer it, and
asking any other source is a CapabilityError raised before any
gateway call. Registry search follows the same rule for sources that
set ``searchable = False``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from devdeck.core.models.tool import PackageSearchResult, SourceKind, ToolRecord
from devdeck.gateway.base import (
    INSTALL_PACKAGE,
    INSTALL_VERSION,
    LIST_VERSIONS,
    SCAN,
    SEARCH_PACKAGES,
    UNINSTALL_TOOL,
    UPDATE_TOOL,
    GatewayError,
    OperationGateway,
)

logger = logging.getLogger(__name__)

# Registry searches return at most this many packages
SEARCH_LIMIT = 20


class CapabilityError(Exception):
    """Raised when an operation is not supported for a tool's source."""


class PackageSource(ABC):
    """Abstract base class for package sources.

    To create a new source:
        1. Subclass PackageSource (or VersionedSource)
        2. Set ``kind`` and, optionally, ``config_dirs``
        3. Register it in the SourceRegistry
    """

    #: Source-specific configuration directories, relative to home.
    config_dirs: tuple[str, ...] = ()

    #: Whether the backend can search this source's package registry.
    searchable: bool = True

    def __init__(self, gateway: OperationGateway):
        self._gateway = gateway

    @property
    @abstractmethod
    def kind(self) -> SourceKind:
        """The source identifier (e.g. ``SourceKind.NPM``)."""

    @property
    def label(self) -> str:
        return self.kind.value

    async def scan(self) -> list[ToolRecord]:
        """List the tools installed through this source.

        Raises:
            GatewayError: If the backend call fails or replies with
                something other than a list of tool records.
        """
        raw = await self._gateway.invoke(SCAN, {"source": self.kind.value})
        if not isinstance(raw, list):
            raise GatewayError(f"Scan of {self.label} returned {type(raw).__name__}, not a list", SCAN)
        return [self._to_record(item) for item in raw]

    async def update(self, full_name: str) -> str:
        """Update one tool. Returns the backend's confirmation message."""
        return await self._act(UPDATE_TOOL, full_name)

    async def uninstall(self, full_name: str) -> str:
        """Uninstall one tool. Returns the backend's confirmation message."""
        return await self._act(UNINSTALL_TOOL, full_name)

    async def search(self, query: str) -> list[PackageSearchResult]:
        """Search the package registry behind this source.

        Results keep the backend's order and are capped at
        ``SEARCH_LIMIT``. No match is an empty list.

        Raises:
            CapabilityError: The source cannot be searched.
            ValueError: ``query`` is blank.
            GatewayError: The backend call fails or replies with
                something other than a list of packages.
        """
        if not self.searchable:
            raise CapabilityError(f"Package search is not supported for {self.label}")
        query = query.strip()
        if not query:
            raise ValueError("Search query is empty")

        raw = await self._gateway.invoke(SEARCH_PACKAGES, {"source": self.kind.value, "query": query})
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise GatewayError(
                f"Search of {self.label} returned {type(raw).__name__}, not a list", SEARCH_PACKAGES,
            )
        return [self._to_search_result(item) for item in raw[:SEARCH_LIMIT]]

    async def install(self, full_name: str) -> str:
        """Install one package. Returns the backend's confirmation message."""
        return await self._act(INSTALL_PACKAGE, full_name)

    async def _act(self, operation: str, full_name: str) -> str:
        result = await self._gateway.invoke(
            operation, {"source": self.kind.value, "full_name": full_name},
        )
        return "" if result is None else str(result)

    def _to_record(self, item: Any) -> ToolRecord:
        if isinstance(item, ToolRecord):
            return item
        if not isinstance(item, dict):
            raise GatewayError(f"Malformed {self.label} scan entry: {item!r}", SCAN)
        data = {"source": self.kind.value, **item}
        data.setdefault("full_name", data.get("name", ""))
        try:
            return ToolRecord.model_validate(data)
        except ValueError as e:
            raise GatewayError(f"Malformed {self.label} scan entry: {e}", SCAN) from e

    def _to_search_result(self, item: Any) -> PackageSearchResult:
        if not isinstance(item, dict):
            raise GatewayError(f"Malformed {self.label} search entry: {item!r}", SEARCH_PACKAGES)
        try:
            return PackageSearchResult.model_validate({**item, "source": self.kind.value})
        except ValueError as e:
            raise GatewayError(f"Malformed {self.label} search entry: {e}", SEARCH_PACKAGES) from e

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} kind={self.kind.value!r}>"


class VersionedSource(PackageSource):
    """A source that can enumerate and activate specific versions."""

    async def list_versions(self, full_name: str) -> list[str]:
        """Available versions of one tool, in the backend's order."""
        raw = await self._gateway.invoke(LIST_VERSIONS, {"full_name": full_name})
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise GatewayError(
                f"Version listing for {full_name} returned {type(raw).__name__}",
                LIST_VERSIONS,
            )
        return [str(v) for v in raw]

    async def install_version(self, full_name: str, version: str) -> str:
        """Make ``version`` the installed (active) version of a tool."""
        result = await self._gateway.invoke(
            INSTALL_VERSION, {"full_name": full_name, "version": version},
        )
        return "" if result is None else str(result)
