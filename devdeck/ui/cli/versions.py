"""
CLI commands for version switching — list available versions, switch.

Thin wrappers over ``VersionSwitchWorkflow``. Only sources that can
enumerate versions (npm) support these commands.
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Coroutine, TypeVar

import click

from devdeck.core.models.tool import ToolRecord
from devdeck.core.panel import ControlPanel
from devdeck.core.services.version_switch import SwitchState, VersionSwitchWorkflow
from devdeck.sources.base import CapabilityError
from devdeck.ui.cli.tools import parse_keys

T = TypeVar("T")


class _Stop(Exception):
    """Ends a command with a message; ``warning`` selects ⚠️ over ❌."""

    def __init__(self, message: str, warning: bool = False):
        super().__init__(message)
        self.warning = warning


def _run(coro: Coroutine[Any, Any, T]) -> T:
    try:
        return asyncio.run(coro)
    except _Stop as e:
        if e.warning:
            click.secho(f"⚠️  {e}", fg="yellow")
        else:
            click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


@click.group()
def versions() -> None:
    """Versions — list and switch the installed version of a tool."""


async def _open(panel: ControlPanel, key_text: str) -> tuple[ToolRecord, VersionSwitchWorkflow]:
    key = parse_keys([key_text])[0]
    tool = await panel.find_tool(key)
    if tool is None:
        raise _Stop(f"Tool not found: {key}")

    workflow = panel.version_workflow()
    try:
        await workflow.open(tool)
    except CapabilityError as e:
        raise _Stop(str(e), warning=True) from None

    if workflow.state is SwitchState.ERROR:
        raise _Stop(f"Cannot list versions of {key}: {workflow.error}")
    return tool, workflow


@versions.command("list")
@click.argument("key")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_versions(ctx: click.Context, key: str, as_json: bool) -> None:
    """List the versions available for a tool (newest first)."""
    tool, workflow = _run(_open(ctx.obj["panel"], key))

    if as_json:
        click.echo(json.dumps({
            "tool": str(tool.key),
            "versions": [c.model_dump() for c in workflow.candidates],
        }, indent=2))
        return

    if not workflow.versions:
        click.secho(f"⚠️  No versions reported for {tool.key}", fg="yellow")
        return

    click.secho(f"🏷️  {tool.key} ({len(workflow.versions)} version(s)):", fg="cyan", bold=True)
    for candidate in workflow.candidates:
        if candidate.active:
            click.secho(f"   ● {candidate.version}  (current)", fg="green")
        else:
            click.echo(f"     {candidate.version}")
    click.echo()


@versions.command()
@click.argument("key")
@click.argument("version")
@click.pass_context
def switch(ctx: click.Context, key: str, version: str) -> None:
    """Install a specific version of a tool.

    Example:

        devdeck versions switch npm:typescript 5.4.5
    """

    async def _switch() -> VersionSwitchWorkflow:
        tool, workflow = await _open(ctx.obj["panel"], key)
        if version not in workflow.versions:
            raise _Stop(f"Version {version} is not available for {tool.key}")
        if not await workflow.select(version):
            raise _Stop(f"Switching {tool.key} to {version} failed: {workflow.error}")
        return workflow

    workflow = _run(_switch())
    click.secho(f"✅ {workflow.message}", fg="green")
