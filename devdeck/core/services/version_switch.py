"""
Version switch workflow — list a tool's versions and activate one.

States::

    IDLE ──open──▶ LISTING_VERSIONS ──loaded──▶ VERSIONS_READY
      ▲                 │                          │    ▲
      │               fails                     select  │ switch fails
      │                 ▼                          ▼    │ (list kept)
      └──acknowledge── ERROR              SWITCHING ────┘
      └────────────────── switch succeeds ─────┘

Opening a tool whose source cannot enumerate versions raises
CapabilityError before any gateway call and leaves the state alone.

The active marker is derived from the tool's version captured when
the list was requested. It is not re-derived after a switch; the
next scan brings the new version.

A workflow belongs to one view. Once ``dispose`` is called, replies
still in flight are dropped instead of being applied.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Awaitable, Callable

from devdeck.core.models.tool import ToolRecord
from devdeck.core.models.version import VersionCandidate
from devdeck.sources.base import CapabilityError, VersionedSource
from devdeck.sources.registry import SourceRegistry

logger = logging.getLogger(__name__)


class SwitchState(str, Enum):
    IDLE = "idle"
    LISTING_VERSIONS = "listing_versions"
    VERSIONS_READY = "versions_ready"
    SWITCHING = "switching"
    ERROR = "error"


class WorkflowStateError(Exception):
    """Raised when a transition is not allowed from the current state."""


class VersionSwitchWorkflow:
    """Short-lived state machine for one version switch.

    Args:
        registry: Source registry used to resolve the versioned source.
        on_switched: Awaited after a successful switch (typically a
            forced re-scan of the tools kind).
    """

    def __init__(
        self,
        registry: SourceRegistry,
        on_switched: Callable[[], Awaitable[object]] | None = None,
    ):
        self._registry = registry
        self._on_switched = on_switched
        self._reset()
        self._disposed = False

    def _reset(self) -> None:
        self.state = SwitchState.IDLE
        self.tool: ToolRecord | None = None
        self.versions: list[str] = []
        self.error: str | None = None
        self.message: str | None = None
        self._active_version: str | None = None
        self._source: VersionedSource | None = None

    # ── Queries ─────────────────────────────────────────────────

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def candidates(self) -> list[VersionCandidate]:
        """Listed versions; at most one is marked active."""
        marked = False
        out: list[VersionCandidate] = []
        for version in self.versions:
            active = not marked and self._active_version is not None and version == self._active_version
            marked = marked or active
            out.append(VersionCandidate(version=version, active=active))
        return out

    def is_active(self, version: str) -> bool:
        return self._active_version is not None and version == self._active_version

    # ── Transitions ─────────────────────────────────────────────

    def _require(self, *allowed: SwitchState) -> None:
        if self._disposed:
            raise WorkflowStateError("Workflow has been disposed")
        if self.state not in allowed:
            names = ", ".join(s.value for s in allowed)
            raise WorkflowStateError(f"Cannot do this in state {self.state.value} (needs {names})")

    async def open(self, tool: ToolRecord) -> list[VersionCandidate]:
        """IDLE → LISTING_VERSIONS → VERSIONS_READY (or ERROR).

        Raises:
            CapabilityError: The tool's source cannot list versions.
        """
        self._require(SwitchState.IDLE)
        try:
            source = self._registry.versioned(tool.source)
        except CapabilityError as e:
            logger.warning("%s", e)
            raise

        self.tool = tool
        self._source = source
        self._active_version = tool.version
        self.state = SwitchState.LISTING_VERSIONS
        logger.debug("Listing versions of %s", tool.key)

        try:
            versions = await source.list_versions(tool.full_name)
        except Exception as e:
            if self._disposed:
                return []
            self.error = str(e) or e.__class__.__name__
            self.state = SwitchState.ERROR
            logger.warning("Listing versions of %s failed: %s", tool.key, self.error)
            return []

        if self._disposed:
            return []
        self.versions = versions
        self.state = SwitchState.VERSIONS_READY
        return self.candidates

    async def select(self, version: str) -> bool:
        """VERSIONS_READY → SWITCHING → IDLE on success.

        On failure the error is recorded and the workflow returns to
        VERSIONS_READY with the listed versions preserved.

        Returns:
            True if the switch succeeded.
        """
        self._require(SwitchState.VERSIONS_READY)
        assert self.tool is not None and self._source is not None
        tool, source = self.tool, self._source

        self.state = SwitchState.SWITCHING
        self.error = None
        logger.info("Switching %s to %s", tool.key, version)

        try:
            message = await source.install_version(tool.full_name, version)
        except Exception as e:
            if self._disposed:
                return False
            self.error = str(e) or e.__class__.__name__
            self.state = SwitchState.VERSIONS_READY
            logger.warning("Switching %s to %s failed: %s", tool.key, version, self.error)
            return False

        if self._disposed:
            return True
        self._reset()
        self.message = message or f"Installed {tool.full_name}@{version}"
        if self._on_switched is not None:
            await self._on_switched()
        return True

    def acknowledge(self) -> None:
        """ERROR → IDLE."""
        self._require(SwitchState.ERROR)
        self._reset()

    def close(self) -> None:
        """Abandon the current listing (any state except SWITCHING) → IDLE."""
        if self.state is SwitchState.SWITCHING:
            raise WorkflowStateError("Cannot close while a switch is in flight")
        self._reset()

    def dispose(self) -> None:
        """Detach from the owning view; late replies are dropped."""
        self._disposed = True
