"""
Entity cache store — last-fetched collections shared across views.

Holds one slot per entity kind (tools, ports, processes, caches):
the items, a loading flag and the timestamp of the last successful
population. Views consult ``is_fresh`` before fetching so navigating
between them does not repeat backend calls inside the TTL window.

Rules:
    - ``set`` is the only way ``last_fetch_at`` advances, and it
      always does, even for an empty collection (empty is a valid
      answer, distinct from "never fetched").
    - A failed fetch never stamps the slot; stale items stay visible.
    - Writes replace a kind's whole collection (last writer wins).
    - The store never raises and never retries.

The store is constructed once at application start and passed to
its consumers; there is no module-level instance.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

from pydantic import BaseModel

from devdeck.core.models.entities import CacheRecord, PortRecord, ProcessRecord
from devdeck.core.models.tool import ToolRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

CACHE_TTL_S = 5 * 60
"""Freshness window in seconds. Fixed; not user-configurable."""


class EntityKind(str, Enum):
    """Entity collections tracked by the store."""

    TOOLS = "tools"
    PORTS = "ports"
    PROCESSES = "processes"
    CACHES = "caches"


# Record type per kind, used to restore persisted snapshots
ENTITY_MODELS: dict[EntityKind, type[BaseModel]] = {
    EntityKind.TOOLS: ToolRecord,
    EntityKind.PORTS: PortRecord,
    EntityKind.PROCESSES: ProcessRecord,
    EntityKind.CACHES: CacheRecord,
}


@dataclass
class CacheEntry(Generic[T]):
    """Cache slot for one entity kind."""

    items: list[T] = field(default_factory=list)
    loading: bool = False
    last_fetch_at: float | None = None


class EntityCacheStore:
    """Per-kind result cache with time-based invalidation.

    Args:
        ttl_s: Freshness window. Defaults to ``CACHE_TTL_S``.
        clock: Returns the current time in seconds (``time.time``).
    """

    def __init__(
        self,
        ttl_s: float = CACHE_TTL_S,
        clock: Callable[[], float] = time.time,
    ):
        self._ttl_s = ttl_s
        self._clock = clock
        self._entries: dict[EntityKind, CacheEntry[Any]] = {
            kind: CacheEntry() for kind in EntityKind
        }

    @property
    def ttl_s(self) -> float:
        return self._ttl_s

    def get(self, kind: EntityKind) -> CacheEntry[Any]:
        """Return the slot for ``kind``."""
        return self._entries[EntityKind(kind)]

    def set(self, kind: EntityKind, items: list[Any]) -> None:
        """Replace the collection for ``kind`` and mark it fresh."""
        entry = self._entries[EntityKind(kind)]
        entry.items = list(items)
        entry.last_fetch_at = self._clock()
        entry.loading = False
        logger.debug("Cache %s populated (%d items)", EntityKind(kind).value, len(entry.items))

    def set_loading(self, kind: EntityKind, loading: bool) -> None:
        self._entries[EntityKind(kind)].loading = loading

    def invalidate(self, kind: EntityKind) -> None:
        """Forget the freshness stamp of ``kind``; items stay visible."""
        self._entries[EntityKind(kind)].last_fetch_at = None

    def is_valid(self, last_fetch_at: float | None) -> bool:
        """True iff ``last_fetch_at`` is set and younger than the TTL.

        The boundary is exclusive: exactly TTL seconds old is stale.
        """
        if last_fetch_at is None:
            return False
        return self._clock() - last_fetch_at < self._ttl_s

    def is_fresh(self, kind: EntityKind) -> bool:
        return self.is_valid(self.get(kind).last_fetch_at)

    # ── Snapshot (persistence support) ──────────────────────────

    def snapshot(self) -> dict[str, Any]:
        """JSON-serializable view of every populated slot."""
        data: dict[str, Any] = {}
        for kind, entry in self._entries.items():
            if entry.last_fetch_at is None and not entry.items:
                continue
            data[kind.value] = {
                "last_fetch_at": entry.last_fetch_at,
                "items": [
                    item.model_dump(mode="json") if isinstance(item, BaseModel) else item
                    for item in entry.items
                ],
            }
        return data

    def restore(self, data: dict[str, Any]) -> None:
        """Load slots from a ``snapshot()`` dict.

        Unknown kinds and malformed slots are skipped; loading flags
        are never restored.
        """
        for name, slot in data.items():
            try:
                kind = EntityKind(name)
            except ValueError:
                logger.debug("Ignoring unknown cache kind in snapshot: %s", name)
                continue
            model = ENTITY_MODELS[kind]
            try:
                items = [model.model_validate(item) for item in slot.get("items", [])]
                stamp = slot.get("last_fetch_at")
                stamp = float(stamp) if stamp is not None else None
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning("Discarding cached %s from snapshot: %s", kind.value, e)
                continue
            entry = self._entries[kind]
            entry.items = items
            entry.last_fetch_at = stamp
            entry.loading = False
