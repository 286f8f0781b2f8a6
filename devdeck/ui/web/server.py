"""
Local API server — Flask app factory.

Creates the Flask application serving the control panel's JSON API
to a local front-end. The ControlPanel is created by the caller and
shared by every request through ``app.extensions``.
"""

from __future__ import annotations

import logging

from flask import Flask, current_app

from devdeck.core.panel import ControlPanel
from devdeck.gateway.mock import MockGateway

logger = logging.getLogger(__name__)

EXTENSION_KEY = "devdeck"


def get_panel() -> ControlPanel:
    """The ControlPanel of the current app (inside a request)."""
    return current_app.extensions[EXTENSION_KEY]


def create_app(panel: ControlPanel) -> Flask:
    """Create and configure the Flask application.

    Args:
        panel: Application state shared by all requests.

    Returns:
        Configured Flask application.
    """
    app = Flask(__name__)
    app.extensions[EXTENSION_KEY] = panel
    app.config["MOCK_MODE"] = isinstance(panel.gateway, MockGateway)
    app.json.sort_keys = False  # type: ignore[attr-defined]

    # Register blueprints
    from devdeck.ui.web.routes_config import config_bp
    from devdeck.ui.web.routes_system import system_bp
    from devdeck.ui.web.routes_tools import tools_bp

    app.register_blueprint(tools_bp, url_prefix="/api")
    app.register_blueprint(config_bp, url_prefix="/api")
    app.register_blueprint(system_bp, url_prefix="/api")

    # Persist whatever the request refreshed
    @app.teardown_request
    def _save_snapshot(exc):  # type: ignore[no-untyped-def]
        panel.save_snapshot()

    logger.info("Local API app created (sources=%s)", ", ".join(k.value for k in panel.registry.kinds()))
    return app


def run_server(
    app: Flask,
    host: str = "127.0.0.1",
    port: int = 8000,
    debug: bool = False,
) -> None:
    """Run the Flask development server.

    Requests are served one at a time: the entity cache store is not
    shared across threads.
    """
    logger.info("Starting local API on %s:%d", host, port)
    app.run(host=host, port=port, debug=debug, use_reloader=False, threaded=False)
