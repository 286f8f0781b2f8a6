"""
Cache file persistence — atomic read/write of entity cache snapshots.

The snapshot lets the freshness window survive between CLI runs.
Writes are atomic (write to temp file, then rename) to prevent
corruption if the process crashes mid-write.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = ".cache/devdeck"
DEFAULT_CACHE_FILE = "entities.json"
_SCHEMA_VERSION = 1


def default_cache_path(home: Path | None = None) -> Path:
    """Get the default snapshot path under the user's home."""
    return (home or Path.home()) / DEFAULT_CACHE_DIR / DEFAULT_CACHE_FILE


def load_snapshot(path: Path) -> dict[str, Any]:
    """Load a cache snapshot.

    Returns:
        The ``entities`` mapping. Missing, corrupt or foreign files
        yield ``{}`` (start fresh).
    """
    if not path.is_file():
        logger.info("No cache snapshot at %s — starting fresh", path)
        return {}

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        logger.warning("Corrupt cache snapshot %s: %s — starting fresh", path, e)
        return {}
    except OSError as e:
        logger.warning("Cannot load cache snapshot from %s: %s — starting fresh", path, e)
        return {}

    if not isinstance(data, dict) or data.get("schema_version") != _SCHEMA_VERSION:
        logger.warning("Unrecognized cache snapshot format in %s — starting fresh", path)
        return {}

    entities = data.get("entities", {})
    return entities if isinstance(entities, dict) else {}


def save_snapshot(entities: dict[str, Any], path: Path) -> None:
    """Save a cache snapshot (atomic write).

    Raises:
        OSError: If the directory cannot be created or the file written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    content = json.dumps(
        {"schema_version": _SCHEMA_VERSION, "entities": entities},
        indent=2,
        ensure_ascii=False,
    ) + "\n"

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".entities_", suffix=".tmp")
    os.close(fd)
    tmp = Path(tmp_path)
    try:
        tmp.write_text(content, encoding="utf-8")
        tmp.replace(path)
        logger.debug("Cache snapshot saved to %s", path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise
