"""
CLI commands for system entities — ports, processes, package caches
and the environment.

Each cached listing honors the five-minute freshness window unless
``--refresh`` is given; environment listings are always read live.
"""

from __future__ import annotations

import asyncio
import json
import sys

import click

from devdeck.core.panel import ControlPanel
from devdeck.core.services.entity_cache import EntityKind
from devdeck.core.services.environment import filter_variables
from devdeck.core.services.scan_coordinator import RefreshResult
from devdeck.gateway.base import GatewayError
from devdeck.ui.cli.tools import format_size


def _refresh(ctx: click.Context, kind: EntityKind, force: bool) -> RefreshResult:
    panel: ControlPanel = ctx.obj["panel"]
    result = asyncio.run(panel.refresh(kind, force=force))
    if not result.ok:
        click.secho(f"⚠️  Refresh failed: {result.error}", fg="yellow", err=True)
        if not result.items:
            sys.exit(1)
    return result


def _dump(result: RefreshResult) -> None:
    click.echo(json.dumps({
        result.kind.value: [item.model_dump(mode="json") for item in result.items],
        "refreshed": result.refreshed,
        "error": result.error,
    }, indent=2))


_refresh_option = click.option("--refresh", is_flag=True, help="Re-scan even if the cached list is fresh.")
_json_option = click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")


# ── Ports ───────────────────────────────────────────────────────


@click.group()
def ports() -> None:
    """Ports — listening ports and their processes."""


@ports.command("list")
@_refresh_option
@_json_option
@click.pass_context
def list_ports(ctx: click.Context, refresh: bool, as_json: bool) -> None:
    """List listening ports."""
    result = _refresh(ctx, EntityKind.PORTS, refresh)
    if as_json:
        _dump(result)
        return
    if not result.items:
        click.secho("⚠️  No listening ports", fg="yellow")
        return
    click.secho(f"🔌 Ports ({len(result.items)}):", fg="cyan", bold=True)
    for p in sorted(result.items, key=lambda p: p.port):
        click.echo(f"   {p.port:>6}/{p.protocol:<4} pid {p.pid:<8} {p.process_name}")
    click.echo()


# ── Processes ───────────────────────────────────────────────────


@click.group()
def processes() -> None:
    """Processes — running developer processes."""


@processes.command("list")
@_refresh_option
@_json_option
@click.pass_context
def list_processes(ctx: click.Context, refresh: bool, as_json: bool) -> None:
    """List running developer processes."""
    result = _refresh(ctx, EntityKind.PROCESSES, refresh)
    if as_json:
        _dump(result)
        return
    if not result.items:
        click.secho("⚠️  No processes", fg="yellow")
        return
    click.secho(f"⚙️  Processes ({len(result.items)}):", fg="cyan", bold=True)
    for p in result.items:
        click.echo(f"   {p.pid:>8} {p.name:<28} {p.cpu_usage:>5.1f}% {p.memory_mb:>8.1f} MB")
    click.echo()


# ── Caches ──────────────────────────────────────────────────────


@click.group()
def caches() -> None:
    """Caches — package-manager cache directories."""


@caches.command("list")
@_refresh_option
@_json_option
@click.pass_context
def list_caches(ctx: click.Context, refresh: bool, as_json: bool) -> None:
    """List package-manager caches and their sizes."""
    result = _refresh(ctx, EntityKind.CACHES, refresh)
    if as_json:
        _dump(result)
        return
    if not result.items:
        click.secho("⚠️  No caches found", fg="yellow")
        return
    total = sum(c.size_bytes for c in result.items)
    click.secho(f"🗄️  Caches ({len(result.items)}, {format_size(total)}):", fg="cyan", bold=True)
    for c in result.items:
        marker = "" if c.exists else "  (missing)"
        click.echo(f"   {c.name:<12} {format_size(c.size_bytes):>10}  {c.path}{marker}")
    click.echo()


@caches.command()
@click.argument("name")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation.")
@click.pass_context
def clear(ctx: click.Context, name: str, yes: bool) -> None:
    """Clear one package-manager cache (npm, pnpm, yarn, pip, cargo, ...)."""
    if not yes:
        click.confirm(f"Clear the {name} cache?", abort=True)

    panel: ControlPanel = ctx.obj["panel"]
    try:
        message = asyncio.run(panel.clear_cache(name))
    except GatewayError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)
    click.secho(f"✅ {message or f'Cleared {name} cache'}", fg="green")


# ── Environment ─────────────────────────────────────────────────


@click.group()
def env() -> None:
    """Environment — variables and PATH entries (read-only)."""


@env.command("list")
@click.option("--filter", "-f", "text", default="", help="Only variables whose name or value contains TEXT.")
@click.option("--paths", "paths_only", is_flag=True, help="Only path-like variables (PATH, *_HOME, *_DIR).")
@_json_option
@click.pass_context
def list_env(ctx: click.Context, text: str, paths_only: bool, as_json: bool) -> None:
    """List environment variables."""
    panel: ControlPanel = ctx.obj["panel"]
    try:
        variables = asyncio.run(panel.env_variables())
    except GatewayError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    variables = filter_variables(variables, text)
    if paths_only:
        variables = [v for v in variables if v.is_path]

    if as_json:
        click.echo(json.dumps([v.model_dump(mode="json") for v in variables], indent=2))
        return
    if not variables:
        click.secho("⚠️  No matching variables", fg="yellow")
        return
    click.secho(f"🌱 Environment ({len(variables)}):", fg="cyan", bold=True)
    width = max(len(v.name) for v in variables)
    for v in variables:
        click.secho(f"   {v.name:<{width}}", fg="blue" if v.is_path else None, nl=False)
        click.echo(f"  {v.value}")
    click.echo()


@env.command("path")
@_json_option
@click.pass_context
def path_env(ctx: click.Context, as_json: bool) -> None:
    """List PATH entries in search order."""
    panel: ControlPanel = ctx.obj["panel"]
    try:
        entries = asyncio.run(panel.path_entries())
    except GatewayError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(entries, indent=2))
        return
    if not entries:
        click.secho("⚠️  PATH is empty", fg="yellow")
        return
    click.secho(f"🧭 PATH ({len(entries)}):", fg="cyan", bold=True)
    for i, entry in enumerate(entries, 1):
        click.echo(f"   {i:>3}. {entry}")
    click.echo()
