"""npm global packages — the only source with version switching."""

from __future__ import annotations

from devdeck.core.models.tool import SourceKind
from devdeck.sources.base import VersionedSource


class NpmSource(VersionedSource):
    """Globally installed npm packages (``npm list -g`` on the backend)."""

    config_dirs = (".npm",)

    @property
    def kind(self) -> SourceKind:
        return SourceKind.NPM
