"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

import logging
from typing import Any

import pytest

from devdeck.core.panel import ControlPanel
from devdeck.core.services.entity_cache import EntityCacheStore
from devdeck.gateway.base import SCAN
from devdeck.gateway.mock import MockGateway, per_key_response
from devdeck.sources.registry import SourceRegistry


class FakeClock:
    """Manually advanced clock for freshness tests."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


NPM_TOOLS: list[dict[str, Any]] = [
    {"name": "typescript", "full_name": "typescript", "version": "5.4.5", "size_bytes": 22_000_000},
    {"name": "claude-code", "scope": "@anthropic-ai", "full_name": "@anthropic-ai/claude-code", "version": "1.0.3"},
]
CARGO_TOOLS: list[dict[str, Any]] = [
    {"name": "ripgrep", "full_name": "ripgrep", "version": "14.1.0"},
]
PIP_TOOLS: list[dict[str, Any]] = [
    {"name": "black", "full_name": "black", "version": "24.4.2"},
]


def scan_table(gateway: MockGateway, table: dict[str, Any]) -> None:
    """Answer ``scan`` per source; missing sources scan empty."""
    gateway.set_response(SCAN, per_key_response("source", table, default=[]))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> EntityCacheStore:
    return EntityCacheStore(clock=clock)


@pytest.fixture
def gateway() -> MockGateway:
    return MockGateway()


@pytest.fixture
def registry(gateway: MockGateway) -> SourceRegistry:
    return SourceRegistry.with_defaults(gateway)


@pytest.fixture
def scanned_gateway(gateway: MockGateway) -> MockGateway:
    """Mock gateway with a populated npm/cargo/pip scan."""
    scan_table(gateway, {"npm": NPM_TOOLS, "cargo": CARGO_TOOLS, "pip": PIP_TOOLS})
    return gateway


@pytest.fixture
def panel(scanned_gateway: MockGateway, store: EntityCacheStore) -> ControlPanel:
    return ControlPanel(scanned_gateway, store=store)


@pytest.fixture(autouse=True)
def _isolate_root_logger():
    """Undo ``setup_logging`` calls made by a test (directly or via the CLI)."""
    root = logging.getLogger()
    before, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in before and type(handler) in (logging.StreamHandler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
