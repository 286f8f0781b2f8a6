"""Version listing model."""

from __future__ import annotations

from pydantic import BaseModel


class VersionCandidate(BaseModel):
    """A selectable version of a tool and whether it is the active one."""

    version: str
    active: bool = False
