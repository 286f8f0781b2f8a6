"""
Control panel — the application state object.

Constructed once at startup by whichever entry point launches the
app and passed by reference to everything that needs shared state:

    - CLI:          main.py   → ControlPanel.from_settings(settings)
    - Web API:      server.py → app.extensions["devdeck"]
    - Tests:        conftest  → ControlPanel(MockGateway(), ...)

It owns the entity cache store (the only shared mutable state), the
source registry and the gateway, and wires the services together:
batches invalidate and refresh the tools kind, version switches and
package installs re-scan on success.
"""

from __future__ import annotations

import logging
from pathlib import Path

from devdeck.core.config.loader import Settings
from devdeck.core.models.batch import BatchItem, BatchKind, BatchReport, BatchResult
from devdeck.core.models.entities import EnvVariable
from devdeck.core.models.tool import PackageSearchResult, SourceKind, ToolKey, ToolRecord
from devdeck.core.persistence.cache_file import default_cache_path, load_snapshot, save_snapshot
from devdeck.core.services.batch_dispatcher import ActionTracker, dispatch, run_tool_action
from devdeck.core.services.config_editor import ConfigEditorSession
from devdeck.core.services import environment
from devdeck.core.services.entity_cache import EntityCacheStore, EntityKind
from devdeck.core.services.scan_coordinator import RefreshResult, refresh_entities, refresh_tools
from devdeck.core.services.version_switch import VersionSwitchWorkflow
from devdeck.gateway import build_gateway
from devdeck.gateway.base import CLEAR_CACHE, GatewayError, OperationGateway
from devdeck.sources.registry import SourceRegistry

logger = logging.getLogger(__name__)


class ControlPanel:
    """Application-wide state and service wiring."""

    def __init__(
        self,
        gateway: OperationGateway,
        registry: SourceRegistry | None = None,
        store: EntityCacheStore | None = None,
        settings: Settings | None = None,
        cache_path: Path | None = None,
    ):
        self.settings = settings or Settings()
        self.gateway = gateway
        self.registry = registry or SourceRegistry.with_defaults(gateway, self.settings.sources)
        self.store = store or EntityCacheStore()
        self.actions = ActionTracker()
        self.cache_path = cache_path

    @classmethod
    def from_settings(cls, settings: Settings, *, mock: bool = False) -> ControlPanel:
        gateway = build_gateway(settings, mock=mock)
        cache_path = None if mock else (settings.cache_file or default_cache_path())
        return cls(gateway, settings=settings, cache_path=cache_path)

    # ── Snapshot ────────────────────────────────────────────────

    def load_snapshot(self) -> None:
        """Restore cached collections persisted by a previous run."""
        if self.cache_path is not None:
            self.store.restore(load_snapshot(self.cache_path))

    def save_snapshot(self) -> None:
        """Persist cached collections; failures are logged, not raised."""
        if self.cache_path is None:
            return
        try:
            save_snapshot(self.store.snapshot(), self.cache_path)
        except OSError as e:
            logger.warning("Cannot save cache snapshot to %s: %s", self.cache_path, e)

    # ── Entities ────────────────────────────────────────────────

    async def refresh_tools(self, *, force: bool = False) -> RefreshResult:
        return await refresh_tools(self.store, self.registry.sources(), force=force)

    async def refresh(self, kind: EntityKind, *, force: bool = False) -> RefreshResult:
        """Refresh any entity kind, honoring the freshness window."""
        if EntityKind(kind) is EntityKind.TOOLS:
            return await self.refresh_tools(force=force)
        return await refresh_entities(self.store, self.gateway, kind, force=force)

    async def tools_by_key(self) -> dict[ToolKey, ToolRecord]:
        result = await self.refresh_tools()
        return {tool.key: tool for tool in result.items}

    async def find_tool(self, key: ToolKey) -> ToolRecord | None:
        return (await self.tools_by_key()).get(key)

    # ── Actions ─────────────────────────────────────────────────

    async def run_batch(self, keys: list[ToolKey], kind: BatchKind) -> BatchReport:
        """Dispatch a batch, then re-scan tools regardless of failures."""
        kind = BatchKind(kind)
        items = [BatchItem.from_key(key) for key in keys]
        if not items:
            return BatchReport(kind=kind)

        results = await dispatch(items, kind, self.registry, self.gateway)
        self.store.invalidate(EntityKind.TOOLS)
        await self.refresh_tools(force=True)
        return BatchReport(kind=kind, results=results)

    async def run_action(self, key: ToolKey, kind: BatchKind) -> BatchResult:
        """Update or uninstall one tool, then re-scan on success."""
        if not self.actions.start(key):
            return BatchResult.failure(
                BatchItem.from_key(key), f"An action is already running for {key}",
            )
        try:
            result = await run_tool_action(self.registry, key, kind)
        finally:
            self.actions.finish(key)
        if result.success:
            await self.refresh_tools(force=True)
        return result

    async def clear_cache(self, name: str) -> str:
        """Clear one package-manager cache, then re-scan the caches kind.

        Raises:
            GatewayError: If the backend cannot clear the cache.
        """
        known = {c.name for c in self.store.get(EntityKind.CACHES).items}
        if known and name not in known:
            raise GatewayError(f"Unknown cache: {name}", CLEAR_CACHE)
        result = await self.gateway.invoke(CLEAR_CACHE, {"name": name})
        await self.refresh(EntityKind.CACHES, force=True)
        return "" if result is None else str(result)

    # ── Package store ───────────────────────────────────────────

    async def search_packages(self, source: SourceKind | str, query: str) -> list[PackageSearchResult]:
        """Search one source's registry.

        Raises:
            CapabilityError: Unknown or unsearchable source.
            ValueError: Blank query.
            GatewayError: The backend search failed.
        """
        return await self.registry.require(source).search(query)

    async def install_package(self, key: ToolKey) -> BatchResult:
        """Install one package, then re-scan tools on success."""
        item = BatchItem.from_key(key)
        source = self.registry.get(key.source)
        if source is None:
            return BatchResult.failure(item, f"Unsupported tool source: {item.source}")
        if not self.actions.start(key):
            return BatchResult.failure(item, f"An action is already running for {key}")
        try:
            result = BatchResult.ok(item, await source.install(key.full_name))
        except GatewayError as e:
            logger.info("install of %s failed: %s", key, e)
            result = BatchResult.failure(item, str(e) or e.__class__.__name__)
        finally:
            self.actions.finish(key)
        if result.success:
            await self.refresh_tools(force=True)
        return result

    # ── Environment ─────────────────────────────────────────────

    async def env_variables(self) -> list[EnvVariable]:
        return await environment.env_variables(self.gateway)

    async def path_entries(self) -> list[str]:
        return await environment.path_entries(self.gateway)

    # ── Per-view workflows ──────────────────────────────────────

    def version_workflow(self) -> VersionSwitchWorkflow:
        async def _rescan() -> None:
            await self.refresh_tools(force=True)

        return VersionSwitchWorkflow(self.registry, on_switched=_rescan)

    def config_session(self) -> ConfigEditorSession:
        return ConfigEditorSession(self.gateway, self.registry, self.settings.config_dirs)
