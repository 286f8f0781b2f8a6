"""
Config editor — discover, load and save a tool's configuration files.

Discovery builds a set of candidate directories for a tool from:

    1. a lookup table of known tools and their conventional dirs
       (plus user additions from the settings file),
    2. generic guesses from the tool's name (``~/.{name}``,
       ``~/.config/{name}``),
    3. the defaults of the tool's package source.

Candidates are de-duplicated and each is listed recursively through
the gateway. Most candidates do not exist on a given machine; a
missing or unreadable directory contributes nothing and never
aborts discovery. Each candidate's outcome stays inspectable.

Loading classifies the file (structured JSON object vs opaque text),
saving writes the rebuilt object or the raw text back. Gateway
failures propagate to the caller and nothing is committed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Any, Iterable, Mapping

from devdeck.core.models.config_file import (
    ROOT_BUCKET,
    ConfigFileRef,
    DiscoveryOutcome,
    Failed,
    Found,
    NotPresent,
)
from devdeck.core.models.tool import ToolRecord
from devdeck.core.services.config_document import ConfigDocument, classify
from devdeck.gateway.base import (
    GET_HOME_PATH,
    LIST_FILES_RECURSIVE,
    READ_FILE,
    WRITE_FILE,
    OperationGateway,
    PathNotFoundError,
)
from devdeck.sources.registry import SourceRegistry

logger = logging.getLogger(__name__)


# ── Known configuration directories ─────────────────────────────
# Keyed by lower-cased tool name with hyphens removed.
# Values are relative to the user's home.

KNOWN_CONFIG_DIRS: dict[str, tuple[str, ...]] = {
    "claudecode": (".claude",),
    "claude": (".claude",),
    "eslint": (".eslintrc", ".config/eslint"),
    "prettier": (".prettierrc", ".config/prettier"),
    "typescript": (".config/typescript",),
    "npm": (".npm", ".npmrc"),
    "pnpm": (".pnpm", ".config/pnpm"),
    "yarn": (".yarn", ".yarnrc"),
}


def lookup_key(tool_name: str) -> str:
    """Normalize a tool name for the known-dirs table."""
    return tool_name.lower().replace("-", "")


def candidate_dirs(
    tool: ToolRecord,
    home: str,
    registry: SourceRegistry | None = None,
    extra_dirs: Mapping[str, Iterable[str]] | None = None,
) -> list[str]:
    """Candidate configuration directories for ``tool``, de-duplicated.

    Order: known dirs, user additions, name-based guesses, source
    defaults. The order only affects which duplicate is kept.
    """
    base = PurePath(home)
    key = lookup_key(tool.name)
    name = tool.name.lower()

    relative: list[str] = list(KNOWN_CONFIG_DIRS.get(key, ()))
    if extra_dirs:
        relative.extend(extra_dirs.get(key, ()))
    relative.extend([f".{name}", f".config/{name}"])

    source = registry.get(tool.source) if registry is not None else None
    if source is not None:
        relative.extend(source.config_dirs)

    paths = [str(base / rel) for rel in relative]
    return list(dict.fromkeys(paths))


# ═══════════════════════════════════════════════════════════════════
#  Discovery
# ═══════════════════════════════════════════════════════════════════


@dataclass
class DiscoveryReport:
    """Per-candidate outcomes of one discovery run."""

    outcomes: list[DiscoveryOutcome] = field(default_factory=list)

    @property
    def files(self) -> list[ConfigFileRef]:
        """All discovered files, de-duplicated by path."""
        seen: dict[str, ConfigFileRef] = {}
        for outcome in self.outcomes:
            if isinstance(outcome, Found):
                for ref in outcome.files:
                    seen.setdefault(ref.path, ref)
        return list(seen.values())

    @property
    def failures(self) -> list[Failed]:
        return [o for o in self.outcomes if isinstance(o, Failed)]

    @property
    def searched(self) -> list[str]:
        return [o.path for o in self.outcomes]

    def grouped(self) -> dict[str, list[ConfigFileRef]]:
        """Files grouped by directory bucket, buckets sorted by name."""
        groups: dict[str, list[ConfigFileRef]] = {}
        for ref in self.files:
            groups.setdefault(ref.bucket, []).append(ref)
        return {
            bucket: sorted(groups[bucket], key=lambda r: r.name)
            for bucket in sorted(groups, key=lambda b: (b != ROOT_BUCKET, b))
        }


async def _list_candidate(gateway: OperationGateway, path: str) -> DiscoveryOutcome:
    try:
        raw = await gateway.invoke(LIST_FILES_RECURSIVE, {"dir_path": path})
    except PathNotFoundError:
        return NotPresent(path)
    except Exception as e:
        logger.debug("Listing %s failed: %s", path, e)
        return Failed(path, str(e) or e.__class__.__name__)

    if not raw:
        return NotPresent(path)
    try:
        files = [ConfigFileRef.model_validate(item) for item in raw]
    except (ValueError, TypeError) as e:
        logger.debug("Malformed listing for %s: %s", path, e)
        return Failed(path, f"Malformed listing: {e}")
    return Found(path, files)


async def discover(
    gateway: OperationGateway,
    tool: ToolRecord,
    registry: SourceRegistry | None = None,
    extra_dirs: Mapping[str, Iterable[str]] | None = None,
) -> DiscoveryReport:
    """Find candidate configuration files for ``tool``.

    Raises:
        GatewayError: Only if the home directory cannot be resolved.
    """
    home = str(await gateway.invoke(GET_HOME_PATH))
    paths = candidate_dirs(tool, home, registry, extra_dirs)
    outcomes = await asyncio.gather(*(_list_candidate(gateway, p) for p in paths))
    report = DiscoveryReport(outcomes=list(outcomes))
    logger.info(
        "Config discovery for %s: %d file(s) in %d candidate dir(s)",
        tool.key, len(report.files), len(paths),
    )
    return report


# ═══════════════════════════════════════════════════════════════════
#  Load / save
# ═══════════════════════════════════════════════════════════════════


async def within_home(gateway: OperationGateway, path: str) -> bool:
    """True if ``path`` is absolute and resolves inside the user's home.

    ``~`` and ``..`` segments are resolved first, so neither can be
    used to step outside; relative paths are refused.
    """
    target = Path(path).expanduser()
    if not target.is_absolute():
        return False
    home = Path(str(await gateway.invoke(GET_HOME_PATH))).expanduser().resolve()
    try:
        target.resolve().relative_to(home)
    except ValueError:
        return False
    return True


async def load(gateway: OperationGateway, path: str) -> ConfigDocument:
    """Read and classify one configuration file."""
    raw = await gateway.invoke(READ_FILE, {"path": path})
    return classify(path, "" if raw is None else str(raw))


async def save(
    gateway: OperationGateway,
    document: ConfigDocument,
    *,
    fields: dict[str, Any] | None = None,
    raw: str | None = None,
) -> str:
    """Write edits back to ``document.path``.

    Structured documents take ``fields``; opaque documents take
    ``raw``. The content is fully rendered before the write is
    issued, so a rebuild error leaves the file untouched.

    Raises:
        ConfigDocumentError: The field list cannot be rebuilt.
        GatewayError: The write failed.
    """
    content = document.render(fields=fields, raw=raw)
    result = await gateway.invoke(WRITE_FILE, {"path": document.path, "content": content})
    logger.info("Saved %s (%s)", document.path, document.mode)
    return "" if result is None else str(result)


# ═══════════════════════════════════════════════════════════════════
#  Session
# ═══════════════════════════════════════════════════════════════════


class ConfigEditorSession:
    """Per-view editing state: the tool, its files, the open document.

    After ``dispose`` the session no longer applies replies that were
    still in flight.
    """

    def __init__(
        self,
        gateway: OperationGateway,
        registry: SourceRegistry | None = None,
        extra_dirs: Mapping[str, Iterable[str]] | None = None,
    ):
        self._gateway = gateway
        self._registry = registry
        self._extra_dirs = extra_dirs
        self._disposed = False
        self.tool: ToolRecord | None = None
        self.report = DiscoveryReport()
        self.document: ConfigDocument | None = None

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def files(self) -> list[ConfigFileRef]:
        return self.report.files

    async def open(self, tool: ToolRecord) -> DiscoveryReport:
        """Select a tool and discover its configuration files."""
        self.tool = tool
        self.document = None
        self.report = DiscoveryReport()
        report = await discover(self._gateway, tool, self._registry, self._extra_dirs)
        if not self._disposed:
            self.report = report
        return report

    async def select(self, path: str) -> ConfigDocument:
        """Load one file; the open document changes only on success."""
        document = await load(self._gateway, path)
        if not self._disposed:
            self.document = document
        return document

    async def save(
        self,
        *,
        fields: dict[str, Any] | None = None,
        raw: str | None = None,
    ) -> str:
        if self.document is None:
            raise ValueError("No configuration file is open")
        document = self.document
        message = await save(self._gateway, document, fields=fields, raw=raw)
        if not self._disposed and self.document is document:
            self.document = classify(document.path, document.render(fields=fields, raw=raw))
        return message

    def dispose(self) -> None:
        self._disposed = True
