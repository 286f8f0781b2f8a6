"""
CLI commands for the package store — search a registry, install a package.

Installed packages show up in ``devdeck tools list`` after the
re-scan that follows a successful install.
"""

from __future__ import annotations

import asyncio
import json
import sys

import click

from devdeck.core.panel import ControlPanel
from devdeck.gateway.base import GatewayError
from devdeck.sources.base import CapabilityError
from devdeck.ui.cli.tools import parse_keys


@click.group()
def packages() -> None:
    """Package store — find and install new tools."""


@packages.command()
@click.argument("source")
@click.argument("query")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def search(ctx: click.Context, source: str, query: str, as_json: bool) -> None:
    """Search SOURCE's registry (npm, cargo, pip) for QUERY.

    Examples:

        devdeck packages search npm typescript

        devdeck packages search cargo ripgrep --json
    """
    panel: ControlPanel = ctx.obj["panel"]
    try:
        results = asyncio.run(panel.search_packages(source.lower(), query))
    except (CapabilityError, ValueError) as e:
        raise click.UsageError(str(e)) from None
    except GatewayError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps([r.model_dump(mode="json") for r in results], indent=2))
        return
    if not results:
        click.secho(f"⚠️  No {source} packages match '{query}'", fg="yellow")
        return

    click.secho(f"🔍 {source} packages matching '{query}' ({len(results)}):", fg="cyan", bold=True)
    for r in results:
        click.echo(f"   {r.name:<32} {r.version or '?':<12} {r.description or ''}".rstrip())
    click.echo()
    click.echo(f"   Install with: devdeck packages install {source.lower()}:<name>")


@packages.command()
@click.argument("key")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(ctx: click.Context, key: str, yes: bool, as_json: bool) -> None:
    """Install one package, addressed as <source>:<name>."""
    (tool_key,) = parse_keys([key])
    if not yes:
        click.confirm(f"Install {tool_key}?", abort=True)

    panel: ControlPanel = ctx.obj["panel"]
    result = asyncio.run(panel.install_package(tool_key))

    if as_json:
        click.echo(json.dumps(result.model_dump(mode="json"), indent=2))
    elif result.success:
        click.secho(f"✅ {result.message or f'Installed {tool_key}'}", fg="green")
    else:
        click.secho(f"❌ {result.message}", fg="red")
    if not result.success:
        sys.exit(1)
