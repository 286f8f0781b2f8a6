"""
Config file routes — load and save one configuration file.

Blueprint: config_bp
Prefix: /api

Endpoints:
    GET /config/file?path=…   — load (structured fields or raw text)
    PUT /config/file          — save; body ``{"path", "fields"}`` or ``{"path", "raw"}``

Both endpoints serve absolute paths inside the user's home directory
only; anything else is refused with 403 before the gateway is asked
to read or write it.
"""

from __future__ import annotations

import asyncio

from flask import Blueprint, jsonify, request

from devdeck.core.services.config_document import ConfigDocument, ConfigDocumentError
from devdeck.core.services.config_editor import within_home
from devdeck.gateway.base import GatewayError, PathNotFoundError
from devdeck.ui.web.server import get_panel

config_bp = Blueprint("config", __name__)


def _document_json(document: ConfigDocument) -> dict:
    return {
        "path": document.path,
        "mode": document.mode,
        "fields": document.fields(),
        "raw": document.raw,
    }


@config_bp.route("/config/file")
def config_file_get():  # type: ignore[no-untyped-def]
    """Load a configuration file."""
    path = request.args.get("path", "").strip()
    if not path:
        return jsonify({"error": "Missing 'path' parameter"}), 400

    panel = get_panel()

    async def _load() -> ConfigDocument | None:
        if not await within_home(panel.gateway, path):
            return None
        return await panel.config_session().select(path)

    try:
        document = asyncio.run(_load())
    except PathNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except GatewayError as e:
        return jsonify({"error": str(e)}), 502
    if document is None:
        return jsonify({"error": f"Path is outside the home directory: {path}"}), 403
    return jsonify(_document_json(document))


@config_bp.route("/config/file", methods=["PUT"])
def config_file_put():  # type: ignore[no-untyped-def]
    """Save a configuration file.

    The file is re-read first to decide its mode: structured files
    accept ``fields`` (a flat ``dotted.path -> value`` object), opaque
    files accept ``raw`` text.
    """
    data = request.get_json(silent=True) or {}
    path = str(data.get("path", "")).strip()
    if not path:
        return jsonify({"error": "Missing 'path' field"}), 400

    fields = data.get("fields")
    raw = data.get("raw")
    if fields is not None and not isinstance(fields, dict):
        return jsonify({"error": "'fields' must be an object"}), 400
    if raw is not None and not isinstance(raw, str):
        return jsonify({"error": "'raw' must be a string"}), 400

    panel = get_panel()
    session = panel.config_session()

    async def _save() -> tuple[dict, int]:
        if not await within_home(panel.gateway, path):
            return {"error": f"Path is outside the home directory: {path}"}, 403
        document = await session.select(path)
        if document.structured and fields is None:
            return {"error": f"{path} is structured; send 'fields'"}, 400
        if not document.structured and raw is None:
            return {"error": f"{path} is not a JSON object; send 'raw'"}, 400
        message = await session.save(fields=fields, raw=raw)
        return {"ok": True, "message": message, "document": _document_json(session.document)}, 200

    try:
        body, status = asyncio.run(_save())
    except ConfigDocumentError as e:
        return jsonify({"error": str(e)}), 400
    except PathNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except GatewayError as e:
        return jsonify({"error": str(e)}), 502
    return jsonify(body), status
