"""
CLI commands for installed tools — list, update, uninstall.

Thin wrappers over ``devdeck.core.panel.ControlPanel``. Tools are
addressed by key: ``<source>:<full_name>`` (e.g. ``npm:@scope/pkg``).
"""

from __future__ import annotations

import asyncio
import json
import sys

import click

from devdeck.core.models.batch import BatchKind, BatchReport
from devdeck.core.models.tool import ToolKey, ToolRecord
from devdeck.core.panel import ControlPanel


def _panel(ctx: click.Context) -> ControlPanel:
    return ctx.obj["panel"]


def parse_keys(values: tuple[str, ...] | list[str]) -> list[ToolKey]:
    """Parse tool keys from the command line (usage error on bad input)."""
    keys: list[ToolKey] = []
    for value in values:
        try:
            keys.append(ToolKey.parse(value))
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="KEY") from None
    return keys


def format_size(size_bytes: int) -> str:
    """Human-readable byte count (``0 B``, ``1.5 KB``, ``12.0 MB``)."""
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{int(size)} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


@click.group()
def tools() -> None:
    """Tools — list, update and uninstall installed developer tools."""


# ── Observe ─────────────────────────────────────────────────────


@tools.command("list")
@click.option("--source", "-s", "source", default=None, help="Only show one source (npm, cargo, pip, ...).")
@click.option("--refresh", is_flag=True, help="Re-scan even if the cached list is fresh.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_tools(ctx: click.Context, source: str | None, refresh: bool, as_json: bool) -> None:
    """List installed tools across all sources."""
    panel = _panel(ctx)
    result = asyncio.run(panel.refresh_tools(force=refresh))
    items: list[ToolRecord] = result.items
    if source:
        items = [t for t in items if t.source.value == source.lower()]

    if as_json:
        click.echo(json.dumps(
            {"tools": [t.model_dump(mode="json") for t in items], "refreshed": result.refreshed},
            indent=2,
        ))
        return

    if not items:
        click.secho("⚠️  No tools found", fg="yellow")
        return

    label = "scanned" if result.refreshed else "cached"
    click.secho(f"🧰 Tools ({len(items)}, {label}):", fg="cyan", bold=True)
    for t in items:
        version = t.version or "?"
        click.echo(f"   {str(t.key):<40} {version:<14} {format_size(t.size_bytes):>10}")
    click.echo()


# ── Act ─────────────────────────────────────────────────────────


def _selected_keys(
    panel: ControlPanel,
    keys: tuple[str, ...],
    select_all: bool,
    source: str | None,
) -> list[ToolKey]:
    if select_all:
        result = asyncio.run(panel.refresh_tools())
        return [t.key for t in result.items if source is None or t.source.value == source.lower()]
    return parse_keys(keys)


def _print_report(report: BatchReport, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(report.model_dump(mode="json"), indent=2))
    else:
        for r in sorted(report.results, key=lambda r: (r.source, r.name)):
            if r.success:
                click.secho(f"   ✓ {r.source}:{r.name}", fg="green", nl=False)
            else:
                click.secho(f"   ✗ {r.source}:{r.name}", fg="red", nl=False)
            click.echo(f"  {r.message}" if r.message else "")
        click.echo()
        color = "green" if report.failed == 0 else "yellow" if report.succeeded else "red"
        click.secho(f"   {report.summary()}", fg=color, bold=True)
        click.echo()

    if report.failed:
        sys.exit(1)


@tools.command()
@click.argument("keys", nargs=-1)
@click.option("--all", "select_all", is_flag=True, help="Update every installed tool.")
@click.option("--source", "-s", "source", default=None, help="With --all: only this source.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def update(
    ctx: click.Context,
    keys: tuple[str, ...],
    select_all: bool,
    source: str | None,
    as_json: bool,
) -> None:
    """Update one or more tools.

    Examples:

        devdeck tools update npm:typescript

        devdeck tools update --all --source cargo
    """
    panel = _panel(ctx)
    selected = _selected_keys(panel, keys, select_all, source)
    if not selected:
        click.secho("⚠️  Nothing selected", fg="yellow")
        return

    report = asyncio.run(panel.run_batch(selected, BatchKind.UPDATE))
    _print_report(report, as_json)


@tools.command()
@click.argument("keys", nargs=-1)
@click.option("--all", "select_all", is_flag=True, help="Uninstall every installed tool.")
@click.option("--source", "-s", "source", default=None, help="With --all: only this source.")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def uninstall(
    ctx: click.Context,
    keys: tuple[str, ...],
    select_all: bool,
    source: str | None,
    yes: bool,
    as_json: bool,
) -> None:
    """Uninstall one or more tools."""
    panel = _panel(ctx)
    selected = _selected_keys(panel, keys, select_all, source)
    if not selected:
        click.secho("⚠️  Nothing selected", fg="yellow")
        return

    if not yes:
        names = ", ".join(str(k) for k in selected)
        click.confirm(f"Uninstall {len(selected)} tool(s): {names}?", abort=True)

    report = asyncio.run(panel.run_batch(selected, BatchKind.UNINSTALL))
    _print_report(report, as_json)
