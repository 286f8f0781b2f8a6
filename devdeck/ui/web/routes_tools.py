"""
Tool routes — listing, actions, batches, version switching and the
package store.

Blueprint: tools_bp
Prefix: /api

Thin HTTP wrappers over ``devdeck.core.panel.ControlPanel``. Tool
keys in URLs are ``<source>:<full_name>``; scoped npm names keep
their slash (``/api/tools/npm:@scope/pkg/versions``).

Endpoints:
    GET  /tools                            — installed tools (cached ≤ 5 min)
    POST /tools/batch                      — bulk update / uninstall
    POST /tools/<key>/update               — update one tool
    POST /tools/<key>/uninstall            — uninstall one tool
    GET  /tools/<key>/versions             — available versions
    POST /tools/<key>/versions/switch      — install a specific version
    GET  /tools/<key>/config-files         — discovered configuration files
    GET  /packages/search?source=…&q=…     — search one source's registry
    POST /packages/install                 — install one package; body ``{"key"}``
"""

from __future__ import annotations

import asyncio

from flask import Blueprint, jsonify, request

from devdeck.core.models.batch import BatchKind
from devdeck.core.models.tool import ToolKey, ToolRecord
from devdeck.core.services.version_switch import SwitchState
from devdeck.gateway.base import GatewayError
from devdeck.sources.base import CapabilityError
from devdeck.ui.web.server import get_panel

tools_bp = Blueprint("tools", __name__)


def _force() -> bool:
    return request.args.get("refresh", "") == "1"


def _lookup(key_text: str) -> tuple[ToolRecord | None, tuple | None]:
    """Resolve a URL key to a tool, or to an error response."""
    try:
        key = ToolKey.parse(key_text)
    except ValueError as e:
        return None, (jsonify({"error": str(e)}), 400)
    tool = asyncio.run(get_panel().find_tool(key))
    if tool is None:
        return None, (jsonify({"error": f"Tool not found: {key}"}), 404)
    return tool, None


# ── Observe ─────────────────────────────────────────────────────────


@tools_bp.route("/tools")
def tools_list():  # type: ignore[no-untyped-def]
    """Installed tools across all sources."""
    panel = get_panel()
    result = asyncio.run(panel.refresh_tools(force=_force()))
    source = request.args.get("source")
    items = [t for t in result.items if not source or t.source.value == source]
    return jsonify({
        "tools": [{**t.model_dump(mode="json"), "key": str(t.key)} for t in items],
        "refreshed": result.refreshed,
        "busy": sorted(str(k) for k in panel.actions.busy),
    })


# ── Act ─────────────────────────────────────────────────────────────


@tools_bp.route("/tools/batch", methods=["POST"])
def tools_batch():  # type: ignore[no-untyped-def]
    """Bulk update or uninstall. Body: ``{"kind": "update", "keys": [...]}``."""
    data = request.get_json(silent=True) or {}
    try:
        kind = BatchKind(data.get("kind", ""))
    except ValueError:
        return jsonify({"error": "kind must be 'update' or 'uninstall'"}), 400

    keys_raw = data.get("keys")
    if not isinstance(keys_raw, list) or not keys_raw:
        return jsonify({"error": "keys must be a non-empty list"}), 400
    try:
        keys = [ToolKey.parse(str(k)) for k in keys_raw]
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    report = asyncio.run(get_panel().run_batch(keys, kind))
    return jsonify({
        **report.model_dump(mode="json"),
        "succeeded": report.succeeded,
        "failed": report.failed,
        "summary": report.summary(),
    })


@tools_bp.route("/tools/<path:key>/update", methods=["POST"])
def tool_update(key: str):  # type: ignore[no-untyped-def]
    """Update a single tool."""
    return _run_action(key, BatchKind.UPDATE)


@tools_bp.route("/tools/<path:key>/uninstall", methods=["POST"])
def tool_uninstall(key: str):  # type: ignore[no-untyped-def]
    """Uninstall a single tool."""
    return _run_action(key, BatchKind.UNINSTALL)


def _run_action(key: str, kind: BatchKind):  # type: ignore[no-untyped-def]
    try:
        tool_key = ToolKey.parse(key)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    result = asyncio.run(get_panel().run_action(tool_key, kind))
    if not result.success:
        return jsonify({"error": result.message, **result.model_dump()}), 502
    return jsonify({"ok": True, **result.model_dump()})


# ── Versions ────────────────────────────────────────────────────────


@tools_bp.route("/tools/<path:key>/versions")
def tool_versions(key: str):  # type: ignore[no-untyped-def]
    """Versions available for a tool, newest first."""
    tool, error = _lookup(key)
    if error:
        return error
    assert tool is not None

    workflow = get_panel().version_workflow()
    try:
        asyncio.run(workflow.open(tool))
    except CapabilityError as e:
        return jsonify({"error": str(e)}), 400
    if workflow.state is SwitchState.ERROR:
        return jsonify({"error": workflow.error}), 502

    return jsonify({
        "tool": str(tool.key),
        "versions": [c.model_dump() for c in workflow.candidates],
    })


@tools_bp.route("/tools/<path:key>/versions/switch", methods=["POST"])
def tool_version_switch(key: str):  # type: ignore[no-untyped-def]
    """Install a specific version. Body: ``{"version": "5.4.5"}``."""
    data = request.get_json(silent=True) or {}
    version = str(data.get("version", "")).strip()
    if not version:
        return jsonify({"error": "Missing 'version' field"}), 400

    tool, error = _lookup(key)
    if error:
        return error
    assert tool is not None

    workflow = get_panel().version_workflow()

    async def _switch() -> tuple[dict, int]:
        await workflow.open(tool)
        if workflow.state is SwitchState.ERROR:
            return {"error": workflow.error}, 502
        if version not in workflow.versions:
            return {"error": f"Version {version} is not available for {tool.key}"}, 400
        if not await workflow.select(version):
            return {"error": workflow.error}, 502
        return {"ok": True, "message": workflow.message}, 200

    try:
        body, status = asyncio.run(_switch())
    except CapabilityError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(body), status


# ── Config discovery ────────────────────────────────────────────────


@tools_bp.route("/tools/<path:key>/config-files")
def tool_config_files(key: str):  # type: ignore[no-untyped-def]
    """Candidate configuration files, grouped by directory."""
    tool, error = _lookup(key)
    if error:
        return error
    assert tool is not None

    try:
        report = asyncio.run(get_panel().config_session().open(tool))
    except GatewayError as e:
        return jsonify({"error": str(e)}), 502

    return jsonify({
        "tool": str(tool.key),
        "files": [f.model_dump() for f in report.files],
        "groups": {
            bucket: [f.model_dump() for f in refs]
            for bucket, refs in report.grouped().items()
        },
        "searched": report.searched,
        "failures": [{"path": f.path, "error": f.error} for f in report.failures],
    })


# ── Package store ───────────────────────────────────────────────────


@tools_bp.route("/packages/search")
def packages_search():  # type: ignore[no-untyped-def]
    """Registry search for one source."""
    source = request.args.get("source", "").strip().lower()
    query = request.args.get("q", "")
    if not source:
        return jsonify({"error": "Missing 'source' parameter"}), 400

    try:
        results = asyncio.run(get_panel().search_packages(source, query))
    except (CapabilityError, ValueError) as e:
        return jsonify({"error": str(e)}), 400
    except GatewayError as e:
        return jsonify({"error": str(e)}), 502
    return jsonify({
        "source": source,
        "query": query.strip(),
        "results": [r.model_dump(mode="json") for r in results],
    })


@tools_bp.route("/packages/install", methods=["POST"])
def packages_install():  # type: ignore[no-untyped-def]
    """Install one package. Body: ``{"key": "npm:typescript"}``."""
    data = request.get_json(silent=True) or {}
    try:
        tool_key = ToolKey.parse(str(data.get("key", "")))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    result = asyncio.run(get_panel().install_package(tool_key))
    if not result.success:
        return jsonify({"error": result.message, **result.model_dump()}), 502
    return jsonify({"ok": True, **result.model_dump()})
