"""
Tests for the local API — app factory, tool, config and system routes.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from flask.testing import FlaskClient

from devdeck.core.panel import ControlPanel
from devdeck.gateway.base import (
    CLEAR_CACHE,
    GET_ENV_VARIABLES,
    GET_HOME_PATH,
    GET_PATH_ENTRIES,
    INSTALL_PACKAGE,
    INSTALL_VERSION,
    LIST_FILES_RECURSIVE,
    LIST_VERSIONS,
    SCAN,
    SCAN_CACHES,
    SCAN_PORTS,
    SEARCH_PACKAGES,
    UNINSTALL_TOOL,
    UPDATE_TOOL,
    GatewayError,
)
from devdeck.gateway.local import LocalGateway
from devdeck.gateway.mock import MockGateway, per_key_response
from devdeck.ui.web.server import EXTENSION_KEY, create_app


@pytest.fixture()
def client(panel: ControlPanel) -> FlaskClient:
    app = create_app(panel)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture()
def files_client(tmp_path: Path) -> FlaskClient:
    """Client over a local gateway rooted in a temp home."""
    app = create_app(ControlPanel(LocalGateway(home=tmp_path)))
    app.config["TESTING"] = True
    return app.test_client()


# ── App Factory Tests ────────────────────────────────────────────────


class TestAppFactory:
    def test_create_app(self, panel):
        app = create_app(panel)
        assert app.extensions[EXTENSION_KEY] is panel
        assert app.config["MOCK_MODE"] is True

    def test_local_gateway_is_not_mock(self, tmp_path: Path):
        app = create_app(ControlPanel(LocalGateway(home=tmp_path)))
        assert app.config["MOCK_MODE"] is False

    def test_snapshot_saved_after_request(self, tmp_path: Path, scanned_gateway, store):
        path = tmp_path / "entities.json"
        client = create_app(ControlPanel(scanned_gateway, store=store, cache_path=path)).test_client()
        client.get("/api/tools")
        assert path.is_file()
        assert "tools" in json.loads(path.read_text())["entities"]


# ── Tools ────────────────────────────────────────────────────────────


class TestToolsAPI:
    def test_list(self, client):
        resp = client.get("/api/tools")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["refreshed"] is True
        assert "npm:@anthropic-ai/claude-code" in [t["key"] for t in data["tools"]]
        assert data["busy"] == []

    def test_list_is_cached(self, client, scanned_gateway):
        client.get("/api/tools")
        scans = len(scanned_gateway.calls(SCAN))
        assert client.get("/api/tools").get_json()["refreshed"] is False
        assert len(scanned_gateway.calls(SCAN)) == scans

        assert client.get("/api/tools?refresh=1").get_json()["refreshed"] is True

    def test_list_filtered_by_source(self, client):
        data = client.get("/api/tools?source=cargo").get_json()
        assert [t["key"] for t in data["tools"]] == ["cargo:ripgrep"]

    def test_batch(self, client, scanned_gateway):
        scanned_gateway.set_response(UPDATE_TOOL, per_key_response("full_name", {
            "typescript": "updated",
            "ripgrep": GatewayError("crates.io unreachable"),
        }))
        resp = client.post("/api/tools/batch", json={
            "kind": "update", "keys": ["npm:typescript", "cargo:ripgrep"],
        })
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["succeeded"] == 1
        assert data["failed"] == 1
        assert data["summary"] == "Update finished: 1 succeeded, 1 failed"
        assert len(data["results"]) == 2

    @pytest.mark.parametrize("body", [
        {"kind": "reinstall", "keys": ["npm:x"]},
        {"kind": "update", "keys": []},
        {"kind": "update", "keys": "npm:x"},
        {"kind": "update", "keys": ["x"]},
        None,
    ])
    def test_batch_bad_input(self, client, scanned_gateway, body):
        resp = client.post("/api/tools/batch", json=body)
        assert resp.status_code == 400
        assert "error" in resp.get_json()
        assert scanned_gateway.calls(UPDATE_TOOL) == []

    def test_single_update_scoped_key(self, client, scanned_gateway):
        resp = client.post("/api/tools/npm:@anthropic-ai/claude-code/update")
        assert resp.status_code == 200
        assert resp.get_json()["ok"] is True
        assert scanned_gateway.calls(UPDATE_TOOL) == [
            {"source": "npm", "full_name": "@anthropic-ai/claude-code"},
        ]

    def test_single_uninstall_failure(self, client, scanned_gateway):
        scanned_gateway.set_failure(UNINSTALL_TOOL, "EACCES")
        resp = client.post("/api/tools/pip:black/uninstall")
        assert resp.status_code == 502
        assert resp.get_json()["error"] == "EACCES"


# ── Versions ─────────────────────────────────────────────────────────


class TestVersionsAPI:
    def test_versions(self, client, scanned_gateway):
        scanned_gateway.set_response(LIST_VERSIONS, ["5.5.2", "5.4.5", "5.3.3"])
        resp = client.get("/api/tools/npm:typescript/versions")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["tool"] == "npm:typescript"
        assert [v["version"] for v in data["versions"] if v["active"]] == ["5.4.5"]

    def test_versions_scoped_key(self, client, scanned_gateway):
        scanned_gateway.set_response(LIST_VERSIONS, ["1.0.3"])
        resp = client.get("/api/tools/npm:@anthropic-ai/claude-code/versions")
        assert resp.status_code == 200
        assert scanned_gateway.calls(LIST_VERSIONS) == [{"full_name": "@anthropic-ai/claude-code"}]

    def test_versions_unsupported_source(self, client, scanned_gateway):
        resp = client.get("/api/tools/cargo:ripgrep/versions")
        assert resp.status_code == 400
        assert scanned_gateway.calls(LIST_VERSIONS) == []

    def test_versions_unknown_tool(self, client):
        assert client.get("/api/tools/npm:left-pad/versions").status_code == 404

    def test_versions_listing_failure(self, client, scanned_gateway):
        scanned_gateway.set_failure(LIST_VERSIONS, "registry unreachable")
        resp = client.get("/api/tools/npm:typescript/versions")
        assert resp.status_code == 502
        assert resp.get_json()["error"] == "registry unreachable"

    def test_switch(self, client, scanned_gateway):
        scanned_gateway.set_response(LIST_VERSIONS, ["5.5.2", "5.4.5"])
        resp = client.post("/api/tools/npm:typescript/versions/switch", json={"version": "5.5.2"})
        assert resp.status_code == 200
        assert resp.get_json()["ok"] is True
        assert scanned_gateway.calls(INSTALL_VERSION) == [{"full_name": "typescript", "version": "5.5.2"}]

    def test_switch_missing_version(self, client):
        resp = client.post("/api/tools/npm:typescript/versions/switch", json={})
        assert resp.status_code == 400

    def test_switch_unavailable_version(self, client, scanned_gateway):
        scanned_gateway.set_response(LIST_VERSIONS, ["5.5.2"])
        resp = client.post("/api/tools/npm:typescript/versions/switch", json={"version": "0.9.0"})
        assert resp.status_code == 400
        assert scanned_gateway.calls(INSTALL_VERSION) == []

    def test_switch_failure(self, client, scanned_gateway):
        scanned_gateway.set_response(LIST_VERSIONS, ["5.5.2"])
        scanned_gateway.set_failure(INSTALL_VERSION, "ETARGET")
        resp = client.post("/api/tools/npm:typescript/versions/switch", json={"version": "5.5.2"})
        assert resp.status_code == 502
        assert resp.get_json()["error"] == "ETARGET"


# ── Config ───────────────────────────────────────────────────────────


class TestConfigAPI:
    def test_config_files(self, client, scanned_gateway):
        scanned_gateway.set_response(LIST_FILES_RECURSIVE, per_key_response("dir_path", {
            "/home/mock/.claude": [
                {"path": "/home/mock/.claude/settings.json", "name": "settings.json", "dir": "."},
                {"path": "/home/mock/.claude/agents/review.json", "name": "review.json", "dir": "agents"},
            ],
            "/home/mock/.npm": GatewayError("EACCES"),
        }, default=[]))
        resp = client.get("/api/tools/npm:@anthropic-ai/claude-code/config-files")
        assert resp.status_code == 200
        data = resp.get_json()
        assert len(data["files"]) == 2
        assert list(data["groups"]) == [".", "agents"]
        assert data["failures"] == [{"path": "/home/mock/.npm", "error": "EACCES"}]
        assert "/home/mock/.claude" in data["searched"]

    def test_config_files_home_failure(self, client, scanned_gateway):
        scanned_gateway.set_failure(GET_HOME_PATH, "no home")
        resp = client.get("/api/tools/pip:black/config-files")
        assert resp.status_code == 502

    def test_get_structured(self, files_client, tmp_path: Path):
        target = tmp_path / "settings.json"
        target.write_text('{"a": 1, "b": {"c": true}}')
        resp = files_client.get("/api/config/file", query_string={"path": str(target)})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["mode"] == "structured"
        assert data["fields"] == {"a": 1, "b.c": True}

    def test_get_missing_path_parameter(self, files_client):
        assert files_client.get("/api/config/file").status_code == 400

    def test_get_missing_file(self, files_client, tmp_path: Path):
        resp = files_client.get("/api/config/file", query_string={"path": str(tmp_path / "nope.json")})
        assert resp.status_code == 404

    def test_put_fields(self, files_client, tmp_path: Path):
        target = tmp_path / "settings.json"
        target.write_text('{"a": 1, "b": {"c": true}}')
        resp = files_client.put("/api/config/file", json={
            "path": str(target), "fields": {"a": 1, "b.c": False},
        })
        assert resp.status_code == 200
        assert resp.get_json()["document"]["fields"] == {"a": 1, "b.c": False}
        assert json.loads(target.read_text()) == {"a": 1, "b": {"c": False}}

    def test_put_conflicting_fields(self, files_client, tmp_path: Path):
        target = tmp_path / "settings.json"
        target.write_text('{"a": 1}')
        resp = files_client.put("/api/config/file", json={
            "path": str(target), "fields": {"a": 1, "a.b": 2},
        })
        assert resp.status_code == 400
        assert target.read_text() == '{"a": 1}'

    def test_put_raw_on_opaque(self, files_client, tmp_path: Path):
        target = tmp_path / "config.toml"
        target.write_text("a = 1\n")
        resp = files_client.put("/api/config/file", json={"path": str(target), "raw": "a = 2\n"})
        assert resp.status_code == 200
        assert target.read_text() == "a = 2\n"

    def test_put_wrong_mode(self, files_client, tmp_path: Path):
        structured = tmp_path / "s.json"
        structured.write_text('{"a": 1}')
        opaque = tmp_path / "o.toml"
        opaque.write_text("a = 1\n")
        assert files_client.put("/api/config/file", json={"path": str(structured), "raw": "{}"}).status_code == 400
        assert files_client.put("/api/config/file", json={"path": str(opaque), "fields": {}}).status_code == 400

    def test_get_outside_home_refused(self, tmp_path: Path):
        outside = tmp_path / "outside.json"
        outside.write_text('{"a": 1}')
        app = create_app(ControlPanel(LocalGateway(home=tmp_path / "home")))
        resp = app.test_client().get("/api/config/file", query_string={"path": str(outside)})
        assert resp.status_code == 403
        assert "outside" in resp.get_json()["error"]

    def test_put_outside_home_writes_nothing(self, tmp_path: Path):
        outside = tmp_path / "outside.json"
        outside.write_text('{"a": 1}')
        app = create_app(ControlPanel(LocalGateway(home=tmp_path / "home")))
        escape = tmp_path / "home" / ".." / "outside.json"
        resp = app.test_client().put("/api/config/file", json={"path": str(escape), "fields": {"a": 2}})
        assert resp.status_code == 403
        assert outside.read_text() == '{"a": 1}'

    def test_relative_path_refused(self, files_client):
        resp = files_client.get("/api/config/file", query_string={"path": "settings.json"})
        assert resp.status_code == 403


# ── System ───────────────────────────────────────────────────────────


class TestSystemAPI:
    def test_ports(self, client, scanned_gateway, clock):
        scanned_gateway.set_response(SCAN_PORTS, [{"port": 3000, "pid": 77, "process_name": "node"}])
        resp = client.get("/api/entities/ports")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["kind"] == "ports"
        assert data["items"][0]["port"] == 3000
        assert data["last_fetch_at"] == clock.now
        assert data["fresh"] is True
        assert "error" not in data

    def test_refresh_failure_reports_error(self, client, scanned_gateway):
        scanned_gateway.set_failure(SCAN_PORTS, "lsof missing")
        data = client.get("/api/entities/ports").get_json()
        assert data["items"] == []
        assert data["error"] == "lsof missing"

    def test_unknown_kind(self, client):
        assert client.get("/api/entities/volumes").status_code == 404

    def test_clear_cache(self, client, scanned_gateway):
        scanned_gateway.set_response(SCAN_CACHES, [{"name": "npm", "path": "/c/npm", "size_bytes": 0}])
        resp = client.post("/api/caches/clear", json={"name": "npm"})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["ok"] is True
        assert data["caches"][0]["name"] == "npm"
        assert scanned_gateway.calls(CLEAR_CACHE) == [{"name": "npm"}]

    def test_clear_cache_missing_name(self, client):
        assert client.post("/api/caches/clear", json={}).status_code == 400

    def test_clear_cache_failure(self, client, scanned_gateway):
        scanned_gateway.set_failure(CLEAR_CACHE, "permission denied")
        resp = client.post("/api/caches/clear", json={"name": "pip"})
        assert resp.status_code == 502

    def test_env(self, client, scanned_gateway):
        scanned_gateway.set_response(GET_ENV_VARIABLES, [
            {"name": "EDITOR", "value": "vim", "is_path": False},
            {"name": "CARGO_HOME", "value": "/home/me/.cargo", "is_path": True},
        ])
        data = client.get("/api/env").get_json()
        assert [v["name"] for v in data["variables"]] == ["CARGO_HOME", "EDITOR"]

        filtered = client.get("/api/env", query_string={"filter": "cargo"}).get_json()
        assert [v["name"] for v in filtered["variables"]] == ["CARGO_HOME"]
        paths = client.get("/api/env", query_string={"paths": "1"}).get_json()
        assert [v["name"] for v in paths["variables"]] == ["CARGO_HOME"]

    def test_env_path(self, client, scanned_gateway):
        scanned_gateway.set_response(GET_PATH_ENTRIES, ["/usr/local/bin", "/usr/bin"])
        assert client.get("/api/env/path").get_json() == {"entries": ["/usr/local/bin", "/usr/bin"]}

    def test_env_failure(self, client, scanned_gateway):
        scanned_gateway.set_failure(GET_ENV_VARIABLES, "backend down")
        assert client.get("/api/env").status_code == 502

    def test_env_on_local_gateway(self, tmp_path: Path):
        gateway = LocalGateway(home=tmp_path, environ={"PATH": "/bin", "LANG": "C"})
        client = create_app(ControlPanel(gateway)).test_client()
        data = client.get("/api/env").get_json()
        assert data["variables"] == [
            {"name": "LANG", "value": "C", "is_path": False},
            {"name": "PATH", "value": "/bin", "is_path": True},
        ]


# ── Package store ───────────────────────────────────────────────────


class TestPackagesAPI:
    def test_search(self, client, scanned_gateway):
        scanned_gateway.set_response(SEARCH_PACKAGES, [{"name": "typescript", "version": "5.4.5"}])
        resp = client.get("/api/packages/search", query_string={"source": "npm", "q": "typescript"})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["results"][0]["name"] == "typescript"
        assert data["results"][0]["source"] == "npm"

    def test_search_bad_input(self, client, scanned_gateway):
        assert client.get("/api/packages/search", query_string={"q": "x"}).status_code == 400
        assert client.get("/api/packages/search", query_string={"source": "npm", "q": " "}).status_code == 400
        assert client.get("/api/packages/search", query_string={"source": "brew", "q": "x"}).status_code == 400
        assert scanned_gateway.calls(SEARCH_PACKAGES) == []

    def test_search_failure(self, client, scanned_gateway):
        scanned_gateway.set_failure(SEARCH_PACKAGES, "registry unreachable")
        resp = client.get("/api/packages/search", query_string={"source": "npm", "q": "x"})
        assert resp.status_code == 502

    def test_install(self, client, scanned_gateway):
        resp = client.post("/api/packages/install", json={"key": "cargo:bat"})
        assert resp.status_code == 200
        assert resp.get_json()["ok"] is True
        assert scanned_gateway.calls(INSTALL_PACKAGE) == [{"source": "cargo", "full_name": "bat"}]

    def test_install_bad_key(self, client, scanned_gateway):
        assert client.post("/api/packages/install", json={"key": "bat"}).status_code == 400
        assert client.post("/api/packages/install", json={}).status_code == 400
        assert scanned_gateway.calls(INSTALL_PACKAGE) == []

    def test_install_failure(self, client, scanned_gateway):
        scanned_gateway.set_failure(INSTALL_PACKAGE, "could not compile")
        resp = client.post("/api/packages/install", json={"key": "cargo:bat"})
        assert resp.status_code == 502
        assert "could not compile" in resp.get_json()["error"]


class TestMockMode:
    def test_empty_mock(self):
        client = create_app(ControlPanel(MockGateway())).test_client()
        assert client.get("/api/tools").get_json()["tools"] == []
