"""Gateway — the operation boundary to the privileged backend.

Public re-exports for convenient access.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from devdeck.gateway.base import GatewayError, OperationGateway, PathNotFoundError
from devdeck.gateway.local import LocalGateway
from devdeck.gateway.mock import MockGateway

if TYPE_CHECKING:
    from devdeck.core.config.loader import Settings


def build_gateway(settings: Settings, mock: bool = False) -> OperationGateway:
    """Create the gateway described by ``settings``."""
    if mock:
        return MockGateway()
    return LocalGateway(
        backend_command=settings.backend.command,
        timeout_s=settings.backend.timeout_s,
        batch=settings.backend.batch,
    )


__all__ = [
    "GatewayError",
    "LocalGateway",
    "MockGateway",
    "OperationGateway",
    "PathNotFoundError",
    "build_gateway",
]
