"""pip-installed packages."""

from __future__ import annotations

from devdeck.core.models.tool import SourceKind
from devdeck.sources.base import PackageSource


class PipSource(PackageSource):
    """User/global pip packages.

    pip keeps its configuration in ``~/.pip`` (legacy) or
    ``~/.config/pip``; both are searched.
    """

    config_dirs = (".pip", ".config/pip")

    @property
    def kind(self) -> SourceKind:
        return SourceKind.PIP
