"""
Tests for package sources and the source registry.
"""

import asyncio

import pytest

from devdeck.core.models import SourceKind
from devdeck.gateway.base import (
    INSTALL_PACKAGE,
    INSTALL_VERSION,
    LIST_VERSIONS,
    SCAN,
    SEARCH_PACKAGES,
    UNINSTALL_TOOL,
    GatewayError,
)
from devdeck.sources import (
    CapabilityError,
    CargoSource,
    GoSource,
    NpmSource,
    PipSource,
    SourceRegistry,
    VersionedSource,
)
from devdeck.sources.base import SEARCH_LIMIT


class TestPackageSource:
    def test_scan_builds_records(self, gateway):
        gateway.set_response(SCAN, [{"name": "ripgrep", "version": "14.1.0", "install_path": "/c/bin/rg"}])
        (tool,) = asyncio.run(CargoSource(gateway).scan())
        assert tool.source is SourceKind.CARGO
        assert tool.full_name == "ripgrep"
        assert gateway.calls(SCAN) == [{"source": "cargo"}]

    def test_scan_rejects_non_list(self, gateway):
        gateway.set_response(SCAN, {"tools": []})
        with pytest.raises(GatewayError, match="not a list"):
            asyncio.run(CargoSource(gateway).scan())

    def test_scan_rejects_malformed_entry(self, gateway):
        gateway.set_response(SCAN, [{"name": "x", "size_bytes": -5}])
        with pytest.raises(GatewayError, match="Malformed cargo scan entry"):
            asyncio.run(CargoSource(gateway).scan())

    def test_uninstall_passes_source_and_name(self, gateway):
        gateway.set_response(UNINSTALL_TOOL, "removed")
        assert asyncio.run(GoSource(gateway).uninstall("golang.org/x/tools/gopls")) == "removed"
        assert gateway.calls(UNINSTALL_TOOL) == [{"source": "go", "full_name": "golang.org/x/tools/gopls"}]

    def test_npm_is_versioned(self, gateway):
        assert isinstance(NpmSource(gateway), VersionedSource)
        assert not isinstance(CargoSource(gateway), VersionedSource)

    def test_list_versions(self, gateway):
        gateway.set_response(LIST_VERSIONS, ["2.0.0", "1.0.0"])
        assert asyncio.run(NpmSource(gateway).list_versions("x")) == ["2.0.0", "1.0.0"]

    def test_list_versions_none_is_empty(self, gateway):
        gateway.set_response(LIST_VERSIONS, None)
        assert asyncio.run(NpmSource(gateway).list_versions("x")) == []

    def test_install_version(self, gateway):
        asyncio.run(NpmSource(gateway).install_version("typescript", "5.0.0"))
        assert gateway.calls(INSTALL_VERSION) == [{"full_name": "typescript", "version": "5.0.0"}]


class TestPackageSearch:
    def test_search_builds_results(self, gateway):
        gateway.set_response(SEARCH_PACKAGES, [
            {"name": "ripgrep", "version": "14.1.0", "description": "Fast grep"},
            {"name": "ripgrep_all", "version": "0.10.6"},
        ])
        results = asyncio.run(CargoSource(gateway).search("  ripgrep "))
        assert [r.name for r in results] == ["ripgrep", "ripgrep_all"]
        assert results[0].description == "Fast grep"
        assert results[1].description is None
        assert all(r.source is SourceKind.CARGO for r in results)
        assert gateway.calls(SEARCH_PACKAGES) == [{"source": "cargo", "query": "ripgrep"}]

    def test_results_take_the_searched_source(self, gateway):
        gateway.set_response(SEARCH_PACKAGES, [{"name": "black", "version": "24.4.2", "source": "npm"}])
        (result,) = asyncio.run(PipSource(gateway).search("black"))
        assert result.source is SourceKind.PIP
        assert str(result.key) == "pip:black"

    def test_results_are_capped(self, gateway):
        gateway.set_response(SEARCH_PACKAGES, [{"name": f"pkg{i}"} for i in range(SEARCH_LIMIT + 5)])
        assert len(asyncio.run(NpmSource(gateway).search("pkg"))) == SEARCH_LIMIT

    def test_no_match_is_empty(self, gateway):
        assert asyncio.run(PipSource(gateway).search("no-such-package")) == []
        gateway.set_response(SEARCH_PACKAGES, None)
        assert asyncio.run(PipSource(gateway).search("no-such-package")) == []

    def test_blank_query_makes_no_call(self, gateway):
        with pytest.raises(ValueError, match="empty"):
            asyncio.run(NpmSource(gateway).search("   "))
        assert gateway.calls(SEARCH_PACKAGES) == []

    def test_unsearchable_source_makes_no_call(self, gateway):
        with pytest.raises(CapabilityError, match="not supported for go"):
            asyncio.run(GoSource(gateway).search("gopls"))
        assert gateway.calls(SEARCH_PACKAGES) == []

    def test_malformed_reply(self, gateway):
        gateway.set_response(SEARCH_PACKAGES, {"results": []})
        with pytest.raises(GatewayError, match="not a list"):
            asyncio.run(NpmSource(gateway).search("x"))
        gateway.set_response(SEARCH_PACKAGES, ["typescript"])
        with pytest.raises(GatewayError, match="Malformed npm search entry"):
            asyncio.run(NpmSource(gateway).search("x"))

    def test_search_failure_propagates(self, gateway):
        gateway.set_failure(SEARCH_PACKAGES, "registry unreachable")
        with pytest.raises(GatewayError, match="unreachable"):
            asyncio.run(NpmSource(gateway).search("x"))

    def test_install_passes_source_and_name(self, gateway):
        gateway.set_response(INSTALL_PACKAGE, "Installed ripgrep")
        assert asyncio.run(CargoSource(gateway).install("ripgrep")) == "Installed ripgrep"
        assert gateway.calls(INSTALL_PACKAGE) == [{"source": "cargo", "full_name": "ripgrep"}]


class TestSourceRegistry:
    def test_defaults(self, registry):
        assert registry.kinds() == [SourceKind.NPM, SourceKind.CARGO, SourceKind.PIP]

    def test_get_by_string(self, registry):
        assert registry.get("npm").kind is SourceKind.NPM
        assert registry.get("brew") is None
        assert registry.get(SourceKind.GO) is None

    def test_versioned(self, registry):
        assert registry.versioned("npm").kind is SourceKind.NPM
        assert registry.supports_versions(SourceKind.NPM)
        assert not registry.supports_versions(SourceKind.PIP)

    def test_versioned_unsupported(self, registry):
        with pytest.raises(CapabilityError, match="Version switching is not supported for pip tools"):
            registry.versioned(SourceKind.PIP)

    def test_versioned_unknown(self, registry):
        with pytest.raises(CapabilityError, match="Unsupported tool source: brew"):
            registry.versioned("brew")

    def test_require(self, registry):
        assert registry.require("pip").kind is SourceKind.PIP
        with pytest.raises(CapabilityError, match="Unsupported tool source: go"):
            registry.require(SourceKind.GO)

    def test_register_and_unregister(self, gateway):
        registry = SourceRegistry()
        registry.register(GoSource(gateway))
        assert registry.kinds() == [SourceKind.GO]
        registry.unregister(SourceKind.GO)
        assert registry.sources() == []

    def test_with_defaults_skips_kinds_without_builtin(self, gateway):
        registry = SourceRegistry.with_defaults(gateway, [SourceKind.GO, SourceKind.SCRIPT])
        assert registry.kinds() == [SourceKind.GO]
