"""
CLI commands for tool configuration files — discover, show, edit.

Thin wrappers over ``ConfigEditorSession``. Structured (JSON object)
files are edited field by field with dotted paths; anything else is
replaced as raw text.
"""

from __future__ import annotations

import asyncio
import json
import sys

import click

from devdeck.core.models.config_file import ROOT_BUCKET
from devdeck.core.services.config_document import (
    ConfigDocumentError,
    classify,
    coerce_field_value,
)
from devdeck.gateway.base import GatewayError
from devdeck.ui.cli.tools import parse_keys


@click.group()
def config() -> None:
    """Config — find and edit a tool's configuration files."""


# ── Discover ────────────────────────────────────────────────────


@config.command()
@click.argument("key")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def files(ctx: click.Context, key: str, as_json: bool) -> None:
    """List candidate configuration files of a tool."""
    panel = ctx.obj["panel"]
    tool_key = parse_keys([key])[0]

    async def _discover():  # type: ignore[no-untyped-def]
        tool = await panel.find_tool(tool_key)
        if tool is None:
            return None
        return await panel.config_session().open(tool)

    try:
        report = asyncio.run(_discover())
    except GatewayError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if report is None:
        click.secho(f"❌ Tool not found: {tool_key}", fg="red")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps({
            "files": [f.model_dump() for f in report.files],
            "searched": report.searched,
            "failures": [{"path": f.path, "error": f.error} for f in report.failures],
        }, indent=2))
        return

    if not report.files:
        click.secho(f"⚠️  No configuration files found for {tool_key}", fg="yellow")
        if ctx.obj.get("verbose"):
            for path in report.searched:
                click.echo(f"   searched {path}")
    else:
        click.secho(f"📄 Config files for {tool_key} ({len(report.files)}):", fg="cyan", bold=True)
        for bucket, refs in report.grouped().items():
            if bucket != ROOT_BUCKET:
                click.secho(f"   📁 {bucket}/", fg="white", bold=True)
            indent = "   " if bucket == ROOT_BUCKET else "      "
            for ref in refs:
                click.echo(f"{indent}{ref.name:<28} {ref.path}")

    for failure in report.failures:
        click.secho(f"   ⚠️  {failure.path}: {failure.error}", fg="yellow")
    click.echo()


# ── Show / edit ─────────────────────────────────────────────────


@config.command()
@click.argument("path")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def show(ctx: click.Context, path: str, as_json: bool) -> None:
    """Show a configuration file as fields (JSON) or raw text."""
    session = ctx.obj["panel"].config_session()
    try:
        document = asyncio.run(session.select(path))
    except GatewayError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps({
            "path": document.path,
            "mode": document.mode,
            "fields": document.fields(),
            "raw": None if document.structured else document.raw,
        }, indent=2, ensure_ascii=False))
        return

    if not document.structured:
        click.echo(document.raw, nl=not document.raw.endswith("\n"))
        return

    click.secho(f"📄 {document.path}", fg="cyan", bold=True)
    for field_path, value in document.fields().items():
        click.echo(f"   {field_path} = {json.dumps(value, ensure_ascii=False)}")
    click.echo()


@config.command("set")
@click.argument("path")
@click.argument("assignments", nargs=-1, required=True)
@click.pass_context
def set_fields(ctx: click.Context, path: str, assignments: tuple[str, ...]) -> None:
    """Set fields of a JSON configuration file.

    Each assignment is FIELD=VALUE; VALUE is parsed as JSON when it can
    be (numbers, true/false, null, arrays) and kept as text otherwise.

    Example:

        devdeck config set ~/.claude/settings.json theme=dark editor.tabSize=2
    """
    updates: dict[str, object] = {}
    for assignment in assignments:
        field_path, sep, value = assignment.partition("=")
        if not sep or not field_path:
            raise click.BadParameter(f"expected FIELD=VALUE, got {assignment!r}", param_hint="ASSIGNMENTS")
        updates[field_path] = coerce_field_value(value)

    session = ctx.obj["panel"].config_session()

    async def _apply() -> str:
        document = await session.select(path)
        if not document.structured:
            raise ConfigDocumentError(f"{path} is not a JSON object; use 'config write' instead")
        return await session.save(fields={**document.fields(), **updates})

    try:
        message = asyncio.run(_apply())
    except (GatewayError, ConfigDocumentError) as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)
    click.secho(f"✅ {message or 'Saved'}: {path}", fg="green")


@config.command()
@click.argument("path")
@click.option(
    "--from-file", "-f", "source",
    type=click.File("r", encoding="utf-8"), default="-",
    help="Read new content from this file (default: stdin).",
)
@click.pass_context
def write(ctx: click.Context, path: str, source) -> None:  # type: ignore[no-untyped-def]
    """Replace a configuration file's content."""
    content = source.read()
    session = ctx.obj["panel"].config_session()

    async def _apply() -> str:
        document = await session.select(path)
        if not document.structured:
            return await session.save(raw=content)
        replacement = classify(path, content)
        if not replacement.structured:
            raise ConfigDocumentError(f"{path} holds a JSON object; new content must be one too")
        return await session.save(fields=replacement.fields())

    try:
        message = asyncio.run(_apply())
    except (GatewayError, ConfigDocumentError) as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)
    click.secho(f"✅ {message or 'Saved'}: {path}", fg="green")
