"""
Batch dispatcher — bulk update/uninstall with per-item outcomes.

Given a set of ``(source, name)`` targets, issues either one batched
gateway call (when the backend supports it) or one call per item,
and resolves every requested item to exactly one BatchResult.

Guarantees:
    - Output length == input length; every item appears exactly once.
    - Output order is unspecified (groups and items run concurrently).
    - Nothing raises: unknown sources, backend failures and missing
      backend results all become failed BatchResults.
    - The cache is not touched; refreshing is the caller's job.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Iterable

from devdeck.core.models.batch import BatchItem, BatchKind, BatchResult
from devdeck.core.models.tool import ToolKey
from devdeck.gateway.base import BATCH_UNINSTALL, BATCH_UPDATE, OperationGateway
from devdeck.sources.base import PackageSource
from devdeck.sources.registry import SourceRegistry

logger = logging.getLogger(__name__)

_BATCH_OPERATIONS: dict[BatchKind, str] = {
    BatchKind.UPDATE: BATCH_UPDATE,
    BatchKind.UNINSTALL: BATCH_UNINSTALL,
}


# ═══════════════════════════════════════════════════════════════════
#  Single item
# ═══════════════════════════════════════════════════════════════════


async def _run_item(source: PackageSource, item: BatchItem, kind: BatchKind) -> BatchResult:
    try:
        if kind is BatchKind.UPDATE:
            message = await source.update(item.name)
        else:
            message = await source.uninstall(item.name)
    except Exception as e:
        logger.info("%s of %s/%s failed: %s", kind.value, item.source, item.name, e)
        return BatchResult.failure(item, str(e) or e.__class__.__name__)
    return BatchResult.ok(item, message)


async def run_tool_action(
    registry: SourceRegistry,
    key: ToolKey,
    kind: BatchKind,
) -> BatchResult:
    """Update or uninstall one tool (the per-row action)."""
    item = BatchItem.from_key(key)
    source = registry.get(key.source)
    if source is None:
        return BatchResult.failure(item, f"Unsupported tool source: {item.source}")
    return await _run_item(source, item, BatchKind(kind))


# ═══════════════════════════════════════════════════════════════════
#  Batch
# ═══════════════════════════════════════════════════════════════════


def _reconcile(items: list[BatchItem], raw: Any) -> list[BatchResult]:
    """Match backend results to requested items, one result per item."""
    if not isinstance(raw, list):
        message = f"Backend returned {type(raw).__name__} instead of a result list"
        return [BatchResult.failure(item, message) for item in items]

    # Results naming their source match only that source's item;
    # source-less results match by name alone.
    by_key: dict[tuple[str, str], list[BatchResult]] = defaultdict(list)
    by_name: dict[str, list[BatchResult]] = defaultdict(list)
    for entry in raw:
        try:
            result = BatchResult.model_validate(entry)
        except ValueError:
            logger.debug("Ignoring malformed batch result: %r", entry)
            continue
        if result.source:
            by_key[(result.source, result.name)].append(result)
        else:
            by_name[result.name].append(result)

    results: list[BatchResult] = []
    for item in items:
        matches = by_key.get((item.source, item.name)) or by_name.get(item.name)
        if matches:
            result = matches.pop(0)
            results.append(result.model_copy(update={"source": item.source}))
        else:
            results.append(BatchResult.failure(item, "No result reported by the backend"))
    return results


async def _run_batched(
    gateway: OperationGateway,
    operation: str,
    items: list[BatchItem],
) -> list[BatchResult]:
    try:
        raw = await gateway.invoke(
            operation, {"items": [item.model_dump() for item in items]},
        )
    except Exception as e:
        logger.warning("%s failed for %d item(s): %s", operation, len(items), e)
        return [BatchResult.failure(item, str(e) or e.__class__.__name__) for item in items]
    return _reconcile(items, raw)


async def dispatch(
    items: Iterable[BatchItem],
    kind: BatchKind,
    registry: SourceRegistry,
    gateway: OperationGateway,
) -> list[BatchResult]:
    """Run ``kind`` against every item and report each outcome."""
    items = list(items)
    if not items:
        return []
    kind = BatchKind(kind)

    results: list[BatchResult] = []
    routed: list[tuple[PackageSource, BatchItem]] = []
    for item in items:
        source = registry.get(item.source)
        if source is None:
            results.append(BatchResult.failure(item, f"Unsupported tool source: {item.source}"))
        else:
            routed.append((source, item))

    operation = _BATCH_OPERATIONS[kind]
    if routed and gateway.supports(operation):
        logger.debug("Dispatching %d item(s) via %s", len(routed), operation)
        results.extend(await _run_batched(gateway, operation, [item for _, item in routed]))
    elif routed:
        logger.debug("Dispatching %d item(s) one by one", len(routed))
        results.extend(await asyncio.gather(
            *(_run_item(source, item, kind) for source, item in routed)
        ))

    logger.info(
        "Batch %s: %d item(s), %d failed",
        kind.value, len(results), sum(1 for r in results if not r.success),
    )
    return results


# ═══════════════════════════════════════════════════════════════════
#  In-flight tracking
# ═══════════════════════════════════════════════════════════════════


class ActionTracker:
    """Set of tools with an action in flight (drives per-row busy state)."""

    def __init__(self) -> None:
        self._busy: set[ToolKey] = set()

    def start(self, key: ToolKey) -> bool:
        """Mark ``key`` busy. Returns False if it already was."""
        if key in self._busy:
            return False
        self._busy.add(key)
        return True

    def finish(self, key: ToolKey) -> None:
        self._busy.discard(key)

    def is_busy(self, key: ToolKey) -> bool:
        return key in self._busy

    @property
    def busy(self) -> frozenset[ToolKey]:
        return frozenset(self._busy)
