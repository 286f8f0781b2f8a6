"""
Tool models — installed packages and their composite identity.

A ToolRecord is produced by a source scan and replaced wholesale on
the next scan. It is never patched field by field: actions trigger a
full re-scan instead.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SourceKind(str, Enum):
    """Package manager or tool ecosystem a tool was installed through."""

    NPM = "npm"
    CARGO = "cargo"
    PIP = "pip"
    GO = "go"
    SCRIPT = "script"    # installer scripts (rustup, fnm, scoop, ...)
    MANUAL = "manual"
    UNKNOWN = "unknown"


class ToolKey(BaseModel):
    """Composite identity of a tool: ``(source, full_name)``.

    Rendered as ``"<source>:<full_name>"``. Source values never contain
    ``:``, so parsing splits on the first one and the name may hold any
    character, including ``-``, ``@``, ``/`` and ``:``.
    """

    model_config = ConfigDict(frozen=True)

    source: SourceKind
    full_name: str = Field(min_length=1)

    def __str__(self) -> str:
        return f"{self.source.value}:{self.full_name}"

    @classmethod
    def parse(cls, text: str) -> ToolKey:
        """Parse ``"<source>:<full_name>"``.

        Raises:
            ValueError: If the separator is missing or the source is unknown.
        """
        source, sep, full_name = text.partition(":")
        if not sep or not full_name:
            raise ValueError(f"Invalid tool key {text!r} (expected '<source>:<name>')")
        try:
            kind = SourceKind(source.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown tool source {source!r} in key {text!r}") from None
        return cls(source=kind, full_name=full_name)


class ToolRecord(BaseModel):
    """One installed package or tool, as reported by a source scan."""

    model_config = ConfigDict(frozen=True)

    name: str                              # package name, e.g. "claude-code"
    scope: str | None = None               # namespace prefix, e.g. "@anthropic-ai"
    full_name: str                         # identifier passed back to the backend
    version: str | None = None             # None = unknown
    source: SourceKind = SourceKind.UNKNOWN
    install_path: str = ""
    size_bytes: int = Field(default=0, ge=0)
    description: str | None = None

    @property
    def key(self) -> ToolKey:
        """Stable identity used for selection, action tracking and batches."""
        return ToolKey(source=self.source, full_name=self.full_name)


class PackageSearchResult(BaseModel):
    """A registry package offered for installation through a source."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str = ""
    description: str | None = None
    source: SourceKind = SourceKind.UNKNOWN

    @property
    def key(self) -> ToolKey:
        """Key the package will have once installed."""
        return ToolKey(source=self.source, full_name=self.name)
