"""
System routes — cached entity collections, cache clearing and the
environment.

Blueprint: system_bp
Prefix: /api

Endpoints:
    GET  /entities/<kind>   — tools | ports | processes | caches (?refresh=1)
    POST /caches/clear      — clear one package-manager cache
    GET  /env               — environment variables (?filter=…, ?paths=1)
    GET  /env/path          — PATH entries in search order
"""

from __future__ import annotations

import asyncio

from flask import Blueprint, jsonify, request

from devdeck.core.services.entity_cache import EntityKind
from devdeck.core.services.environment import filter_variables
from devdeck.gateway.base import GatewayError
from devdeck.ui.web.server import get_panel

system_bp = Blueprint("system", __name__)


@system_bp.route("/entities/<kind>")
def entities(kind: str):  # type: ignore[no-untyped-def]
    """One entity collection, served from cache while fresh."""
    try:
        entity_kind = EntityKind(kind)
    except ValueError:
        return jsonify({"error": f"Unknown entity kind: {kind}"}), 404

    panel = get_panel()
    force = request.args.get("refresh", "") == "1"
    result = asyncio.run(panel.refresh(entity_kind, force=force))
    entry = panel.store.get(entity_kind)

    body = {
        "kind": entity_kind.value,
        "items": [item.model_dump(mode="json") for item in result.items],
        "refreshed": result.refreshed,
        "last_fetch_at": entry.last_fetch_at,
        "fresh": panel.store.is_fresh(entity_kind),
    }
    if result.error:
        body["error"] = result.error
    return jsonify(body)


@system_bp.route("/caches/clear", methods=["POST"])
def caches_clear():  # type: ignore[no-untyped-def]
    """Clear one cache. Body: ``{"name": "npm"}``."""
    data = request.get_json(silent=True) or {}
    name = str(data.get("name", "")).strip()
    if not name:
        return jsonify({"error": "Missing 'name' field"}), 400

    panel = get_panel()
    try:
        message = asyncio.run(panel.clear_cache(name))
    except GatewayError as e:
        return jsonify({"error": str(e)}), 502
    return jsonify({
        "ok": True,
        "message": message,
        "caches": [c.model_dump(mode="json") for c in panel.store.get(EntityKind.CACHES).items],
    })


# ── Environment ─────────────────────────────────────────────────────


@system_bp.route("/env")
def env_list():  # type: ignore[no-untyped-def]
    """Environment variables, read live."""
    try:
        variables = asyncio.run(get_panel().env_variables())
    except GatewayError as e:
        return jsonify({"error": str(e)}), 502

    variables = filter_variables(variables, request.args.get("filter", ""))
    if request.args.get("paths", "") == "1":
        variables = [v for v in variables if v.is_path]
    return jsonify({"variables": [v.model_dump(mode="json") for v in variables]})


@system_bp.route("/env/path")
def env_path():  # type: ignore[no-untyped-def]
    """PATH entries, read live."""
    try:
        entries = asyncio.run(get_panel().path_entries())
    except GatewayError as e:
        return jsonify({"error": str(e)}), 502
    return jsonify({"entries": entries})
