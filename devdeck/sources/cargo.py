"""cargo-installed binaries."""

from __future__ import annotations

from devdeck.core.models.tool import SourceKind
from devdeck.sources.base import PackageSource


class CargoSource(PackageSource):
    config_dirs = (".cargo",)

    @property
    def kind(self) -> SourceKind:
        return SourceKind.CARGO
