"""
Local gateway — in-process file operations plus a privileged backend.

File-level operations (home lookup, recursive config-file listing,
read, write) and environment lookups (variables, PATH entries) run
in-process. Every other operation is forwarded to an
external backend command as one JSON request on stdin:

    {"operation": "scan", "args": {"source": "npm"}}

and answered with one JSON document on stdout:

    {"ok": true, "result": [...]}    or    {"error": "..."}

The timeout policy for forwarded operations lives here, not in the
layers above.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping

from devdeck.gateway.base import (
    BATCH_UNINSTALL,
    BATCH_UPDATE,
    GET_ENV_VARIABLES,
    GET_HOME_PATH,
    GET_PATH_ENTRIES,
    LIST_FILES_RECURSIVE,
    OPERATIONS,
    READ_FILE,
    WRITE_FILE,
    GatewayError,
    OperationGateway,
    PathNotFoundError,
)

logger = logging.getLogger(__name__)

_CONFIG_EXTENSIONS = frozenset({".json", ".toml", ".yaml", ".yml"})

# Directories never descended into while listing config files
_SKIP_DIRS = frozenset({
    "node_modules", "cache", "_cacache", ".git", ".svn",
    ".hg", "target", "dist", "build", "__pycache__",
})

_LOCAL_OPERATIONS = frozenset({
    GET_HOME_PATH, LIST_FILES_RECURSIVE, READ_FILE, WRITE_FILE,
    GET_ENV_VARIABLES, GET_PATH_ENTRIES,
})

# Variables whose values are shown as filesystem paths
_PATH_MARKERS = ("PATH",)
_PATH_SUFFIXES = ("HOME", "DIR")


def _require(args: dict[str, Any], name: str, operation: str) -> Any:
    if name not in args:
        raise GatewayError(f"Missing argument '{name}' for {operation}", operation)
    return args[name]


# ═══════════════════════════════════════════════════════════════════
#  File operations (blocking; run in a worker thread)
# ═══════════════════════════════════════════════════════════════════


def list_config_files(dir_path: Path) -> list[dict[str, str]]:
    """Recursively list configuration files under ``dir_path``.

    Returns ``[]`` when the directory does not exist. Unreadable
    sub-directories are skipped.
    """
    if not dir_path.is_dir():
        return []

    files: list[dict[str, str]] = []
    _collect(dir_path, dir_path, files)
    files.sort(key=lambda f: (f["dir"], f["name"]))
    return files


def _collect(base: Path, current: Path, files: list[dict[str, str]]) -> None:
    try:
        entries = list(current.iterdir())
    except OSError:
        logger.debug("Cannot list %s", current, exc_info=True)
        return

    for entry in entries:
        if entry.is_file():
            if entry.suffix.lower() not in _CONFIG_EXTENSIONS:
                continue
            rel = current.relative_to(base).as_posix()
            files.append({
                "path": str(entry),
                "name": entry.name,
                "dir": "." if rel in ("", ".") else rel,
            })
        elif entry.is_dir() and entry.name not in _SKIP_DIRS:
            _collect(base, entry, files)


def _read_text(path: Path) -> str:
    if not path.is_file():
        raise PathNotFoundError(f"File not found: {path}", READ_FILE)
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise GatewayError(f"Cannot read {path}: {e}", READ_FILE) from e


def _write_text(path: Path, content: str) -> str:
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise GatewayError(f"Cannot write {path}: {e}", WRITE_FILE) from e
    return "Saved"


# ═══════════════════════════════════════════════════════════════════
#  Environment
# ═══════════════════════════════════════════════════════════════════


def is_path_variable(name: str) -> bool:
    """Whether a variable conventionally holds a path (PATH, *_HOME, *_DIR)."""
    upper = name.upper()
    return any(m in upper for m in _PATH_MARKERS) or upper.endswith(_PATH_SUFFIXES)


def env_variables(environ: Mapping[str, str]) -> list[dict[str, Any]]:
    """All variables of ``environ``, sorted case-insensitively by name."""
    variables = [
        {"name": name, "value": value, "is_path": is_path_variable(name)}
        for name, value in environ.items()
    ]
    variables.sort(key=lambda v: v["name"].lower())
    return variables


def path_entries(environ: Mapping[str, str]) -> list[str]:
    """Non-empty entries of PATH, in search order."""
    return [entry for entry in environ.get("PATH", "").split(os.pathsep) if entry]


# ═══════════════════════════════════════════════════════════════════
#  Gateway
# ═══════════════════════════════════════════════════════════════════


class LocalGateway(OperationGateway):
    """Gateway for a local workstation.

    Args:
        backend_command: argv of the privileged backend. Empty means
            only the in-process operations are available.
        timeout_s: Per-call timeout for forwarded operations.
        batch: Whether the backend implements the batch operations.
        home: Home directory override (defaults to ``Path.home()``).
        environ: Environment override (defaults to ``os.environ``).
    """

    def __init__(
        self,
        backend_command: list[str] | None = None,
        timeout_s: float = 120.0,
        batch: bool = True,
        home: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        self._backend_command = list(backend_command or [])
        self._timeout_s = timeout_s
        self._batch = batch
        self._home = home
        self._environ = environ

    @property
    def has_backend(self) -> bool:
        return bool(self._backend_command)

    def supports(self, operation: str) -> bool:
        if operation in _LOCAL_OPERATIONS:
            return True
        if not self.has_backend or operation not in OPERATIONS:
            return False
        if operation in (BATCH_UPDATE, BATCH_UNINSTALL):
            return self._batch
        return True

    async def invoke(self, operation: str, args: dict[str, Any] | None = None) -> Any:
        args = args or {}

        if operation == GET_HOME_PATH:
            return str(self._home or Path.home())
        if operation == GET_ENV_VARIABLES:
            return env_variables(os.environ if self._environ is None else self._environ)
        if operation == GET_PATH_ENTRIES:
            return path_entries(os.environ if self._environ is None else self._environ)
        if operation == LIST_FILES_RECURSIVE:
            path = Path(_require(args, "dir_path", operation)).expanduser()
            return await asyncio.to_thread(list_config_files, path)
        if operation == READ_FILE:
            path = Path(_require(args, "path", operation)).expanduser()
            return await asyncio.to_thread(_read_text, path)
        if operation == WRITE_FILE:
            path = Path(_require(args, "path", operation)).expanduser()
            content = _require(args, "content", operation)
            return await asyncio.to_thread(_write_text, path, content)

        return await self._forward(operation, args)

    async def _forward(self, operation: str, args: dict[str, Any]) -> Any:
        """Send one request to the backend command and decode the reply."""
        if operation not in OPERATIONS:
            raise GatewayError(f"Unknown operation: {operation}", operation)
        if not self.has_backend:
            raise GatewayError(
                f"No backend configured for '{operation}' "
                "(set backend.command in the settings file)",
                operation,
            )

        request = json.dumps({"operation": operation, "args": args}).encode("utf-8")
        logger.debug("→ backend %s %s", operation, args)

        try:
            proc = await asyncio.create_subprocess_exec(
                *self._backend_command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise GatewayError(f"Cannot start backend: {e}", operation) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(request), timeout=self._timeout_s,
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise GatewayError(
                f"Backend timed out after {self._timeout_s:.0f}s on '{operation}'",
                operation,
            ) from None

        return _decode_reply(operation, proc.returncode, stdout, stderr)


def _decode_reply(operation: str, returncode: int | None, stdout: bytes, stderr: bytes) -> Any:
    text = stdout.decode("utf-8", errors="replace").strip()
    if not text:
        detail = stderr.decode("utf-8", errors="replace").strip()
        raise GatewayError(
            detail or f"Backend returned no output for '{operation}' (exit {returncode})",
            operation,
        )

    try:
        reply = json.loads(text)
    except json.JSONDecodeError as e:
        raise GatewayError(f"Invalid backend reply for '{operation}': {e}", operation) from e

    if not isinstance(reply, dict):
        raise GatewayError(f"Invalid backend reply for '{operation}': expected an object", operation)
    if "error" in reply:
        raise GatewayError(str(reply["error"]), operation)
    if not reply.get("ok"):
        raise GatewayError(f"Backend reported failure for '{operation}'", operation)

    return reply.get("result")
