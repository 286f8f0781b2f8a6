"""
Domain models — Pydantic types for the control panel.

All models are re-exported here for convenient access:

    from devdeck.core.models import ToolRecord, ToolKey, BatchItem, BatchResult
"""

from devdeck.core.models.batch import BatchItem, BatchKind, BatchReport, BatchResult
from devdeck.core.models.config_file import (
    ROOT_BUCKET,
    ConfigFileRef,
    DiscoveryOutcome,
    Failed,
    Found,
    NotPresent,
)
from devdeck.core.models.entities import CacheRecord, EnvVariable, PortRecord, ProcessRecord
from devdeck.core.models.tool import PackageSearchResult, SourceKind, ToolKey, ToolRecord
from devdeck.core.models.version import VersionCandidate

__all__ = [
    # batch.py
    "BatchItem",
    "BatchKind",
    "BatchReport",
    "BatchResult",
    # config_file.py
    "ConfigFileRef",
    "DiscoveryOutcome",
    "Failed",
    "Found",
    "NotPresent",
    "ROOT_BUCKET",
    # entities.py
    "CacheRecord",
    "EnvVariable",
    "PortRecord",
    "ProcessRecord",
    # tool.py
    "PackageSearchResult",
    "SourceKind",
    "ToolKey",
    "ToolRecord",
    # version.py
    "VersionCandidate",
]
