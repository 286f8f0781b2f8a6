"""
Scan coordinator — fan-out/fan-in over package sources.

Every source is scanned concurrently. A failing source contributes an
empty list instead of aborting the others, so one broken package
manager never hides the rest. There are no retries; a failed source
is re-attempted only by the next scan.

Also refreshes the non-tool entity kinds (ports, processes, caches)
through the gateway, honoring the cache store's freshness window.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from devdeck.core.models.tool import ToolKey, ToolRecord
from devdeck.core.services.entity_cache import ENTITY_MODELS, EntityCacheStore, EntityKind
from devdeck.gateway.base import SCAN_CACHES, SCAN_PORTS, SCAN_PROCESSES, GatewayError, OperationGateway
from devdeck.sources.base import PackageSource

logger = logging.getLogger(__name__)

_ENTITY_OPERATIONS: dict[EntityKind, str] = {
    EntityKind.PORTS: SCAN_PORTS,
    EntityKind.PROCESSES: SCAN_PROCESSES,
    EntityKind.CACHES: SCAN_CACHES,
}


@dataclass
class RefreshResult:
    """Outcome of a refresh request for one entity kind."""

    kind: EntityKind
    items: list[Any] = field(default_factory=list)
    refreshed: bool = False      # False = served from a fresh cache (or failed)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def _scan_one(source: PackageSource) -> list[ToolRecord]:
    try:
        return await source.scan()
    except Exception as e:
        logger.warning("Scan of %s failed: %s", source.label, e)
        logger.debug("Scan failure detail for %s", source.label, exc_info=True)
        return []


async def scan_all(sources: Iterable[PackageSource]) -> list[ToolRecord]:
    """Scan every source and merge the results.

    Order: source-declaration order, then each source's own order.
    Duplicate identities ``(source, full_name)`` keep their first record.
    Never raises.
    """
    sources = list(sources)
    per_source = await asyncio.gather(*(_scan_one(s) for s in sources))

    merged: list[ToolRecord] = []
    seen: set[ToolKey] = set()
    for source, records in zip(sources, per_source):
        for record in records:
            if record.key in seen:
                logger.debug("Dropping duplicate %s from %s scan", record.key, source.label)
                continue
            seen.add(record.key)
            merged.append(record)

    logger.info("Scanned %d source(s): %d tool(s)", len(sources), len(merged))
    return merged


async def refresh_tools(
    store: EntityCacheStore,
    sources: Iterable[PackageSource],
    *,
    force: bool = False,
) -> RefreshResult:
    """Populate the tools slot unless it is still fresh."""
    kind = EntityKind.TOOLS
    if not force and store.is_fresh(kind):
        return RefreshResult(kind=kind, items=list(store.get(kind).items))

    store.set_loading(kind, True)
    try:
        tools = await scan_all(sources)
    finally:
        store.set_loading(kind, False)
    store.set(kind, tools)
    return RefreshResult(kind=kind, items=tools, refreshed=True)


async def refresh_entities(
    store: EntityCacheStore,
    gateway: OperationGateway,
    kind: EntityKind,
    *,
    force: bool = False,
) -> RefreshResult:
    """Populate a ports/processes/caches slot unless it is still fresh.

    On failure the loading flag is cleared, cached items stay as they
    were and the slot is not stamped; the error is returned.
    """
    kind = EntityKind(kind)
    operation = _ENTITY_OPERATIONS.get(kind)
    if operation is None:
        raise ValueError(f"{kind.value} is refreshed through the sources, not the gateway")

    if not force and store.is_fresh(kind):
        return RefreshResult(kind=kind, items=list(store.get(kind).items))

    store.set_loading(kind, True)
    try:
        raw = await gateway.invoke(operation)
        if not isinstance(raw, list):
            raise GatewayError(f"{operation} returned {type(raw).__name__}, not a list", operation)
        model = ENTITY_MODELS[kind]
        items = [model.model_validate(item) for item in raw]
    except (GatewayError, ValueError) as e:
        store.set_loading(kind, False)
        logger.warning("Refresh of %s failed: %s", kind.value, e)
        return RefreshResult(kind=kind, items=list(store.get(kind).items), error=str(e))

    store.set(kind, items)
    return RefreshResult(kind=kind, items=items, refreshed=True)
