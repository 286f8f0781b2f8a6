"""
Batch models — requested targets and their per-item outcomes.

A batch never fails as a whole: every requested item resolves to
exactly one BatchResult, success or failure.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from devdeck.core.models.tool import ToolKey


class BatchKind(str, Enum):
    """Bulk operation applied to every item of a batch."""

    UPDATE = "update"
    UNINSTALL = "uninstall"


class BatchItem(BaseModel):
    """One requested target: the source it belongs to and its full name."""

    source: str
    name: str

    @classmethod
    def from_key(cls, key: ToolKey) -> BatchItem:
        return cls(source=key.source.value, name=key.full_name)


class BatchResult(BaseModel):
    """Outcome of one batch item."""

    name: str
    success: bool
    message: str = ""
    source: str = ""

    @classmethod
    def ok(cls, item: BatchItem, message: str = "") -> BatchResult:
        return cls(name=item.name, success=True, message=message, source=item.source)

    @classmethod
    def failure(cls, item: BatchItem, message: str) -> BatchResult:
        return cls(name=item.name, success=False, message=message, source=item.source)


class BatchReport(BaseModel):
    """Aggregate view over a completed batch."""

    kind: BatchKind
    results: list[BatchResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def summary(self) -> str:
        """One-line summary, e.g. ``"Update finished: 2 succeeded, 1 failed"``."""
        return (
            f"{self.kind.value.capitalize()} finished: "
            f"{self.succeeded} succeeded, {self.failed} failed"
        )
