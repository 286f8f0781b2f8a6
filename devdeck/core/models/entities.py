"""
Display records produced by the backend: ports, processes, caches
(the non-tool cache kinds) and environment variables.

The control panel only caches and shows them; environment variables
are read live and never cached.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class PortRecord(BaseModel):
    """A listening port and the process holding it."""

    port: int
    pid: int
    process_name: str = ""
    protocol: str = "tcp"


class ProcessRecord(BaseModel):
    """A running developer process."""

    pid: int
    name: str
    cpu_usage: float = 0.0
    memory_mb: float = 0.0
    status: str = ""


class CacheRecord(BaseModel):
    """A package-manager cache directory."""

    name: str
    path: str
    size_bytes: int = Field(default=0, ge=0)
    exists: bool = True


class EnvVariable(BaseModel):
    """One environment variable of the backend's process."""

    name: str
    value: str = ""
    is_path: bool = False
