"""CLI entry points: tn formats, tn detect, tn parse."""

from __future__ import annotations

import dataclasses
import json
import logging
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from types import MappingProxyType

import click

from . import detect_format, parse_session
from .config import Config
from .errors import TranscriptError
from .registry import build_registry


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log every dropped record")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Transcript Normalizer: one session model for every coding agent."""
    ctx.ensure_object(dict)
    config = Config()
    logging.basicConfig(level=config.resolved_log_level(verbose), format="%(levelname)s %(name)s: %(message)s")
    ctx.obj["config"] = config


@cli.command()
@click.pass_context
def formats(ctx: click.Context) -> None:
    """List the transcript formats this install can read."""
    for decoder in build_registry(ctx.obj["config"]):
        aliases = f" (aliases: {', '.join(decoder.aliases)})" if decoder.aliases else ""
        click.echo(f"{decoder.name}{aliases}")


@cli.command()
@click.argument("transcript", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def detect(ctx: click.Context, transcript: Path) -> None:
    """Print the format of TRANSCRIPT."""
    config = ctx.obj["config"]
    name = detect_format(_read(transcript, config), config=config)
    if name is None:
        raise click.ClickException("Format not recognized.")
    click.echo(name)


@cli.command()
@click.argument("transcript", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--format", "format_name", help="Source format name or alias (default: detect)")
@click.option("--json", "as_json", is_flag=True, help="Dump the whole session as JSON")
@click.pass_context
def parse(ctx: click.Context, transcript: Path, format_name: str | None, as_json: bool) -> None:
    """Parse TRANSCRIPT and print a summary of the session."""
    config = ctx.obj["config"]
    try:
        session = parse_session(_read(transcript, config), format_name, config=config)
    except TranscriptError as exc:
        raise click.ClickException(str(exc)) from exc

    if as_json:
        click.echo(json.dumps(_jsonable(session), indent=2, default=str))
        return

    meta = session.metadata
    click.echo(f"Session:  {session.session_id}{' (generated)' if meta.session_id_generated else ''}")
    click.echo(f"Format:   {session.source_format}")
    click.echo(f"Start:    {session.start_time.isoformat()}")
    click.echo(f"End:      {session.end_time.isoformat()}")
    click.echo(f"Duration: {session.duration}")
    click.echo(f"Messages: {meta.message_count} from {meta.records_seen}/{meta.lines_total} record(s)")
    for role, count in sorted(meta.role_counts.items()):
        click.echo(f"  {role}: {count}")
    if meta.drops:
        click.echo("Dropped:")
        for reason, count in sorted(meta.drops.items()):
            click.echo(f"  {reason}: {count}")
    click.echo(
        f"Tools:    {meta.tool_invocation_count} call(s), {meta.tool_outcome_count} result(s), "
        f"{meta.orphaned_outcome_count} orphaned"
    )
    if meta.models:
        click.echo(f"Models:   {', '.join(meta.models)}")


def _read(path: Path, config: Config) -> str:
    size = path.stat().st_size
    if size > config.max_input_bytes:
        raise click.ClickException(
            f"{path} is {size} bytes, over the {config.max_input_bytes} byte limit (TN_MAX_INPUT_BYTES)."
        )
    return path.read_text(encoding="utf-8", errors="replace")


def _jsonable(value):
    """Convert session objects to plain JSON types."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        data = {f.name: _jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
        kind = getattr(value, "kind", None)
        if isinstance(kind, Enum):
            data = {"kind": kind.value, **data}
        return data
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, (dict, MappingProxyType)):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value
