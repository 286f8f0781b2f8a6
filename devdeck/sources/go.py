"""Go binaries installed with ``go install``."""

from __future__ import annotations

from devdeck.core.models.tool import SourceKind
from devdeck.sources.base import PackageSource


class GoSource(PackageSource):
    config_dirs = (".config/go",)
    searchable = False

    @property
    def kind(self) -> SourceKind:
        return SourceKind.GO
