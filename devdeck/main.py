"""
devdeck — CLI entrypoint.

Usage:
    python -m devdeck.main --help
    python -m devdeck.main tools list
    python -m devdeck.main --mock versions list npm:typescript
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from devdeck import __version__
from devdeck.core.observability.logging_config import resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="devdeck")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to the settings file (default: auto-detect).",
)
@click.option("--mock", is_flag=True, help="Use the mock gateway (nothing touches the machine).")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    mock: bool,
) -> None:
    """devdeck — inspect and manage locally installed developer tools."""
    from devdeck.core.config.loader import ConfigError, load_settings
    from devdeck.core.panel import ControlPanel

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["mock"] = mock

    try:
        settings = load_settings(Path(config_path) if config_path else None)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        resolve_level(
            debug=debug, verbose=verbose, quiet=quiet, configured=settings.log_level,
        ),
        quiet_third_party=not debug,
    )

    ctx.obj["settings"] = settings
    if "panel" not in ctx.obj:
        panel = ControlPanel.from_settings(settings, mock=mock)
        panel.load_snapshot()
        ctx.obj["panel"] = panel
    # Cached collections outlive the process
    ctx.call_on_close(ctx.obj["panel"].save_snapshot)


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address.")
@click.option("--port", "-p", default=8000, type=int, help="Port number.")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Start the local JSON API."""
    from devdeck.ui.web.server import create_app, run_server

    panel = ctx.obj["panel"]
    app = create_app(panel)
    debug = ctx.obj.get("debug", False)

    click.echo()
    click.secho("⚡ devdeck — local API", bold=True)
    click.echo(f"   Listening: http://{host}:{port}/api")
    click.echo(f"   Sources:   {', '.join(k.value for k in panel.registry.kinds())}")
    if ctx.obj.get("mock"):
        click.secho("   Mode: mock (nothing touches the machine)", fg="yellow")
    elif not getattr(panel.gateway, "has_backend", True):
        click.secho("   ⚠️  No backend command configured — only file and environment operations work", fg="yellow")
    if debug:
        click.secho("   Logging: DEBUG (all output)", fg="yellow")
    click.echo()

    run_server(app, host=host, port=port, debug=debug)


# ── Register sub-command groups from devdeck/ui/cli/ ──────────────

from devdeck.ui.cli.config import config  # noqa: E402
from devdeck.ui.cli.packages import packages  # noqa: E402
from devdeck.ui.cli.system import caches, env, ports, processes  # noqa: E402
from devdeck.ui.cli.tools import tools  # noqa: E402
from devdeck.ui.cli.versions import versions  # noqa: E402

cli.add_command(tools)
cli.add_command(versions)
cli.add_command(config)
cli.add_command(caches)
cli.add_command(ports)
cli.add_command(processes)
cli.add_command(env)
cli.add_command(packages)


if __name__ == "__main__":
    cli()
