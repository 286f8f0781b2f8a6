"""
Configuration file models — discovered candidates and per-directory outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel

ROOT_BUCKET = "."


class ConfigFileRef(BaseModel):
    """A discovered candidate configuration file.

    ``dir`` is relative to the directory it was discovered under and
    groups files for tree display; ``"."`` is the root bucket.
    """

    path: str
    name: str
    dir: str = ROOT_BUCKET

    @property
    def bucket(self) -> str:
        return self.dir or ROOT_BUCKET


@dataclass(frozen=True)
class Found:
    """Candidate directory exists and holds configuration files."""

    path: str
    files: list[ConfigFileRef] = field(default_factory=list)


@dataclass(frozen=True)
class NotPresent:
    """Candidate directory does not exist (or holds nothing)."""

    path: str


@dataclass(frozen=True)
class Failed:
    """Listing the candidate directory failed."""

    path: str
    error: str


DiscoveryOutcome = Found | NotPresent | Failed
