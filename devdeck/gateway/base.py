"""
Gateway base — the single operation-invocation boundary.

Everything above this layer reaches the privileged backend through
``OperationGateway.invoke``. The gateway owns no domain state; it
returns the backend's result or raises ``GatewayError`` with a
human-readable message.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

# ── Operation names ─────────────────────────────────────────────

SCAN = "scan"
UPDATE_TOOL = "update_tool"
UNINSTALL_TOOL = "uninstall_tool"
BATCH_UPDATE = "batch_update"
BATCH_UNINSTALL = "batch_uninstall"
LIST_VERSIONS = "list_versions"
INSTALL_VERSION = "install_version"
LIST_FILES_RECURSIVE = "list_files_recursive"
READ_FILE = "read_file"
WRITE_FILE = "write_file"
GET_HOME_PATH = "get_home_path"
SCAN_PORTS = "scan_ports"
SCAN_PROCESSES = "scan_processes"
SCAN_CACHES = "scan_caches"
CLEAR_CACHE = "clear_cache"
GET_ENV_VARIABLES = "get_env_variables"
GET_PATH_ENTRIES = "get_path_entries"
SEARCH_PACKAGES = "search_packages"
INSTALL_PACKAGE = "install_package"

OPERATIONS = frozenset({
    SCAN, UPDATE_TOOL, UNINSTALL_TOOL, BATCH_UPDATE, BATCH_UNINSTALL,
    LIST_VERSIONS, INSTALL_VERSION, LIST_FILES_RECURSIVE, READ_FILE,
    WRITE_FILE, GET_HOME_PATH, SCAN_PORTS, SCAN_PROCESSES, SCAN_CACHES,
    CLEAR_CACHE, GET_ENV_VARIABLES, GET_PATH_ENTRIES, SEARCH_PACKAGES,
    INSTALL_PACKAGE,
})


class GatewayError(Exception):
    """Raised when a gateway call fails (transport or backend error)."""

    def __init__(self, message: str, operation: str = ""):
        super().__init__(message)
        self.operation = operation


class PathNotFoundError(GatewayError):
    """Raised when a path-based operation targets a path that does not exist."""


class OperationGateway(ABC):
    """Abstract base class for all gateways.

    To create a new gateway:
        1. Subclass OperationGateway
        2. Implement invoke (and supports, if capabilities vary)
    """

    @abstractmethod
    async def invoke(self, operation: str, args: dict[str, Any] | None = None) -> Any:
        """Invoke one named operation and return its result.

        Raises:
            GatewayError: If the operation fails for any reason.
        """

    def supports(self, operation: str) -> bool:
        """Whether the backend behind this gateway implements ``operation``."""
        return operation in OPERATIONS

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
