"""
Mock gateway — universal test double for the operation boundary.

Used in mock mode and in tests to simulate backend behavior without
touching the machine. Configurable per operation with a fixed value,
a callable computing the result from the call arguments, or an
exception to raise.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable

from devdeck.gateway.base import (
    BATCH_UNINSTALL,
    BATCH_UPDATE,
    GET_ENV_VARIABLES,
    GET_HOME_PATH,
    GET_PATH_ENTRIES,
    LIST_FILES_RECURSIVE,
    LIST_VERSIONS,
    OPERATIONS,
    SCAN,
    SCAN_CACHES,
    SCAN_PORTS,
    SCAN_PROCESSES,
    SEARCH_PACKAGES,
    GatewayError,
    OperationGateway,
)

# Operations whose natural empty answer is a list
_LIST_OPERATIONS = frozenset({
    SCAN, LIST_VERSIONS, LIST_FILES_RECURSIVE,
    SCAN_PORTS, SCAN_PROCESSES, SCAN_CACHES,
    GET_ENV_VARIABLES, GET_PATH_ENTRIES, SEARCH_PACKAGES,
})


class MockGateway(OperationGateway):
    """Universal mock gateway.

    By default every operation succeeds: list operations return ``[]``,
    everything else returns ``"[mock] <operation> executed"``.
    Batch operations are unsupported unless listed in ``capabilities``.
    """

    def __init__(
        self,
        capabilities: set[str] | None = None,
        home: str = "/home/mock",
        delay: float = 0.0,
    ):
        self._responses: dict[str, Any] = {}
        self._call_log: list[tuple[str, dict[str, Any]]] = []
        self._capabilities = (
            set(capabilities) if capabilities is not None
            else set(OPERATIONS - {BATCH_UPDATE, BATCH_UNINSTALL})
        )
        self._home = home
        self._delay = delay

    @property
    def call_log(self) -> list[tuple[str, dict[str, Any]]]:
        """All ``(operation, args)`` pairs this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def calls(self, operation: str) -> list[dict[str, Any]]:
        """Arguments of every call made to ``operation``."""
        return [args for op, args in self._call_log if op == operation]

    def supports(self, operation: str) -> bool:
        return operation in self._capabilities

    def set_response(self, operation: str, response: Any) -> None:
        """Set the response for an operation.

        ``response`` may be a value, a callable ``(args) -> value``
        (sync or async), or an exception instance to raise.
        """
        self._responses[operation] = response

    def set_failure(self, operation: str, error: str = "Mock failure") -> None:
        """Configure an operation to fail."""
        self._responses[operation] = GatewayError(error, operation)

    async def invoke(self, operation: str, args: dict[str, Any] | None = None) -> Any:
        args = dict(args or {})
        self._call_log.append((operation, args))
        if self._delay:
            await asyncio.sleep(self._delay)

        if operation in self._responses:
            response = self._responses[operation]
            if isinstance(response, BaseException):
                raise response
            if callable(response):
                result = response(args)
                if inspect.isawaitable(result):
                    result = await result
                return result
            return response

        if operation == GET_HOME_PATH:
            return self._home
        if operation in _LIST_OPERATIONS:
            return []
        return f"[mock] {operation} executed"

    def reset(self) -> None:
        """Clear call log and custom responses."""
        self._call_log.clear()
        self._responses.clear()


def per_key_response(
    key: str,
    table: dict[str, Any],
    default: Any = None,
) -> Callable[[dict[str, Any]], Any]:
    """Build a response callable that answers by one argument's value.

    Table values that are exceptions are raised, others returned.
    Missing keys fall back to ``default`` (raised if it is an exception).
    """

    def _respond(args: dict[str, Any]) -> Any:
        value = table.get(args.get(key), default)
        if isinstance(value, BaseException):
            raise value
        return value

    return _respond
