"""
Config document — classification and the flatten/unflatten transform.

A configuration file that parses as a JSON object is *structured*
and edited as a flat field list keyed by dotted paths::

    {"a": 1, "b": {"c": true}}   ⇄   {"a": 1, "b.c": true}

Anything else is *opaque* and edited as raw text.

Round-trip law: ``unflatten(flatten(doc)) == doc`` for every JSON
object whose keys contain no literal ``.``. Arrays are leaves (never
recursed into), and so are empty objects, which would otherwise
vanish from the flat form.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

SEPARATOR = "."


class ConfigDocumentError(Exception):
    """Raised when a flat field list cannot be rebuilt into an object."""


# ── Transform ───────────────────────────────────────────────────


def flatten(obj: dict[str, Any], prefix: str | None = None) -> dict[str, Any]:
    """Depth-first flatten of a JSON object into ``path -> leaf``.

    ``prefix`` is the path of ``obj`` itself; ``None`` means the root,
    so an empty-string key still contributes its own segment.
    """
    result: dict[str, Any] = {}
    for key, value in obj.items():
        path = key if prefix is None else f"{prefix}{SEPARATOR}{key}"
        if isinstance(value, dict) and value:
            result.update(flatten(value, path))
        else:
            result[path] = value
    return result


def unflatten(fields: dict[str, Any]) -> dict[str, Any]:
    """Rebuild a nested object by replaying every ``path -> value`` pair.

    Raises:
        ConfigDocumentError: If two paths disagree about whether a
            segment is a branch or a leaf (``"a": 1`` with ``"a.b": 2``).
    """
    result: dict[str, Any] = {}
    for path, value in fields.items():
        *parents, leaf = path.split(SEPARATOR)
        node = result
        for i, segment in enumerate(parents):
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                where = SEPARATOR.join(parents[: i + 1])
                raise ConfigDocumentError(f"'{path}' needs '{where}' to be an object, but it is a value")
            node = child
        existing = node.get(leaf)
        if isinstance(existing, dict) and existing:
            raise ConfigDocumentError(f"'{path}' would overwrite the object at that path")
        # Leaves are copied; the result never shares objects with the input
        node[leaf] = copy.deepcopy(value)
    return result


def has_dotted_keys(obj: Any) -> bool:
    """True if any key at any object depth contains the path separator."""
    if isinstance(obj, dict):
        return any(SEPARATOR in k or has_dotted_keys(v) for k, v in obj.items())
    if isinstance(obj, list):
        return any(has_dotted_keys(v) for v in obj)
    return False


def coerce_field_value(text: str) -> Any:
    """Interpret form/CLI text as a leaf value.

    JSON literals (numbers, ``true``/``false``, ``null``, arrays,
    quoted strings) are parsed; anything else is kept as a string.
    """
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return text


# ── Document ────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConfigDocument:
    """One loaded configuration file.

    ``data`` is the parsed object in structured mode and ``None`` in
    opaque mode.
    """

    path: str
    raw: str
    data: dict[str, Any] | None = None

    @property
    def structured(self) -> bool:
        return self.data is not None

    @property
    def mode(self) -> str:
        return "structured" if self.structured else "opaque"

    def fields(self) -> dict[str, Any]:
        """Flat editable field list (empty in opaque mode)."""
        return copy.deepcopy(flatten(self.data)) if self.data is not None else {}

    def render(self, fields: dict[str, Any] | None = None, raw: str | None = None) -> str:
        """Serialize edits for saving.

        Structured: the rebuilt object with 2-space indentation
        (``fields`` defaults to the unedited field list).
        Opaque: ``raw`` verbatim (defaults to the loaded text).
        """
        if self.data is None:
            return self.raw if raw is None else raw
        rebuilt = unflatten(self.fields() if fields is None else fields)
        return json.dumps(rebuilt, indent=2, ensure_ascii=False)


def classify(path: str, raw: str) -> ConfigDocument:
    """Build a document, structured if ``raw`` is a JSON object."""
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, ValueError):
        return ConfigDocument(path=path, raw=raw)

    if not isinstance(parsed, dict):
        return ConfigDocument(path=path, raw=raw)
    if has_dotted_keys(parsed):
        logger.warning("%s has keys containing '.'; editing it as text", path)
        return ConfigDocument(path=path, raw=raw)
    return ConfigDocument(path=path, raw=raw, data=parsed)
