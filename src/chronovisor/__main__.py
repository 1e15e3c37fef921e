"""Main CLI entry point for chronovisor.

This module provides a command-line interface using Typer in place of the
browser form. It orchestrates a conversion run:
1.  Loading configuration (environment / .env) and mapping files.
2.  Resolving the global time offset, optionally from a JSON meta file.
3.  Reading CSV/JSON inputs and mapping them to Chrono events.
4.  Optionally consolidating start/end events into duration pairs.
5.  Writing Chronovis JSON, CSV or legacy CSV, plus an optional diagnostics dump.

Mappings are built with `save-map` and inspected with `show-map`.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import typer
from dotenv import find_dotenv, load_dotenv

from .config import OUTPUT_FORMATS, get_settings
from .converter import (
    build_context,
    compute_time_offset,
    consolidate_pairs,
    convert_context,
    default_output_name,
    serialize,
)
from .errors import ChronovisorError
from .loader import load_mapping, read_offset_from_meta, save_mapping
from .models.chrono import Chrono
from .models.diagnostics import DiagnosticsLog
from .models.mapping_spec import EVENT_FIELDS, MappingSpec
from .pairing import SAME_AS_START

# Load .env file if present (before any config access)
_env_file = find_dotenv(usecwd=True)
if _env_file:
    load_dotenv(_env_file)

app = typer.Typer(help="Convert CSV/JSON event records into Chronovis annotations")
logger = logging.getLogger(__name__)

_NUMERIC_FIELDS = ("start", "end", "duration")


def _parse_number(value: str, name: str, option: str) -> Union[int, float]:
    try:
        number = float(value)
    except ValueError as e:
        raise typer.BadParameter(
            f"field {name!r} needs a number, got {value!r}", param_hint=option
        ) from e
    return int(number) if number.is_integer() else number


def parse_filter(items: Optional[List[str]], option: str) -> Dict[str, Any]:
    """Parse repeated ``field=value`` options into a filter mapping.

    Values for the numeric fields (start, end, duration) are read as numbers so
    they can equal event attributes; ``@start`` is kept as the mirror sentinel.
    """
    criteria: Dict[str, Any] = {}
    for item in items or []:
        name, sep, value = item.partition("=")
        name = name.strip()
        if not sep or not name:
            raise typer.BadParameter(f"expected field=value, got {item!r}", param_hint=option)
        if name not in Chrono.model_fields:
            raise typer.BadParameter(
                f"unknown event field {name!r}; expected one of {', '.join(Chrono.model_fields)}",
                param_hint=option,
            )
        if name in _NUMERIC_FIELDS and value != SAME_AS_START:
            value = _parse_number(value, name, option)
        criteria[name] = value
    return criteria


def parse_accessor_option(value: Optional[str]) -> Any:
    """Interpret a ``save-map`` field option.

    JSON integers and lists become accessors (``3``, ``["a","b"]``,
    ``[["a"],["b"]]``); anything else is a static literal. A leading ``=``
    forces a literal (``=3``).
    """
    if value is None:
        return None
    if value.startswith("="):
        return value[1:]
    stripped = value.strip()
    if stripped.startswith("[") or stripped.lstrip("-").isdigit():
        try:
            return json.loads(stripped)
        except json.JSONDecodeError as e:
            raise typer.BadParameter(f"invalid accessor {value!r}: {e}") from e
    return value


@app.callback()
def main() -> None:  # pragma: no cover - simple callback
    """chronovisor CLI.

    Use a subcommand like 'convert' to run a conversion.
    """
    pass


@app.command(help="Convert input files to Chronovis JSON or CSV.")
def convert(
    inputs: List[Path] = typer.Argument(..., help="CSV or JSON input files"),
    map_files: List[Path] = typer.Option(
        ..., "--map", "-m", help="Mapping file(s): one per input, or one shared by all"
    ),
    offset: Optional[str] = typer.Option(
        None, help="Time offset subtracted from every timestamp (overrides TIME_OFFSET)"
    ),
    offset_format: Optional[str] = typer.Option(
        None, help="Encoding of --offset: C, pythonic or javascript (overrides TIME_OFFSET_FORMAT)"
    ),
    offset_meta: Optional[Path] = typer.Option(
        None, help="JSON meta file to read the time offset from (requires --offset-property)"
    ),
    offset_property: Optional[str] = typer.Option(
        None, help="Property of --offset-meta holding the start time"
    ),
    output_format: Optional[str] = typer.Option(
        None, "--format", "-f", help="json, csv or oldcsv (overrides OUTPUT_FORMAT)"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output file; '-' writes to stdout"
    ),
    pair_start: Optional[List[str]] = typer.Option(
        None, help="Start-event filter field=value (repeatable)"
    ),
    pair_end: Optional[List[str]] = typer.Option(
        None, help="End-event filter field=value (repeatable); value '@start' mirrors the start"
    ),
    pairs_only: bool = typer.Option(
        False, "--pairs-only/--keep-unpaired", help="Keep only merged pairs after consolidation"
    ),
    diagnostics_file: Optional[Path] = typer.Option(
        None, help="Write the run's diagnostics as JSON (overrides DIAGNOSTICS_FILE)"
    ),
) -> None:
    """Run one conversion over the given inputs."""
    settings = get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL)

    fmt = (output_format or settings.OUTPUT_FORMAT).lower()
    if fmt not in OUTPUT_FORMATS:
        raise typer.BadParameter(f"must be one of {', '.join(OUTPUT_FORMATS)}", param_hint="--format")
    start_filter = parse_filter(pair_start, "--pair-start")
    end_filter = parse_filter(pair_end, "--pair-end")
    if bool(start_filter) != bool(end_filter):
        raise typer.BadParameter("--pair-start and --pair-end must be given together")

    diagnostics = DiagnosticsLog()
    raw_offset: Any = offset if offset is not None else settings.TIME_OFFSET
    if offset_meta is not None:
        if not offset_property:
            raise typer.BadParameter("--offset-property is required with --offset-meta")
        try:
            raw_offset = read_offset_from_meta(offset_meta, offset_property)
        except KeyError as e:
            typer.echo(str(e.args[0]), err=True)
            raise typer.Exit(code=1) from e
        except ChronovisorError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(code=1) from e
        logger.info("Read time offset %r from %s", raw_offset, offset_meta)
    time_offset = compute_time_offset(
        raw_offset, offset_format or settings.TIME_OFFSET_FORMAT, diagnostics
    )

    try:
        mappings = [load_mapping(p) for p in map_files]
        ctx = build_context(inputs, mappings, time_offset=time_offset, diagnostics=diagnostics)
    except ChronovisorError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    event_set = convert_context(ctx)
    if start_filter:
        result = consolidate_pairs(event_set, start_filter, end_filter, pairs_only=pairs_only)
        typer.echo(f"Consolidated {len(result.pairs)} pair(s).", err=True)

    text = serialize(event_set, fmt, sep=settings.CSV_SEPARATOR)
    target = output or (Path(settings.OUTPUT_FILE) if settings.OUTPUT_FILE else None)
    if target is None:
        target = Path(default_output_name(fmt))
    if str(target) == "-":
        typer.echo(text)
    else:
        target.write_text(text, encoding="utf-8", newline="")
        typer.echo(f"Wrote {len(event_set)} event(s) to {target}", err=True)

    diag_target = diagnostics_file or (
        Path(settings.DIAGNOSTICS_FILE) if settings.DIAGNOSTICS_FILE else None
    )
    if diag_target is not None:
        diag_target.write_text(json.dumps(ctx.diagnostics.to_json(), indent=2), encoding="utf-8")
    if len(ctx.diagnostics):
        typer.echo(f"{len(ctx.diagnostics)} diagnostic(s) recorded.", err=True)


@app.command("show-map", help="Validate a mapping file and print it.")
def show_map(map_file: Path = typer.Argument(..., help="Mapping file (.json or .cvrmap)")) -> None:
    try:
        spec = load_mapping(map_file)
    except ChronovisorError as e:
        typer.echo(f"Invalid mapping: {e}", err=True)
        raise typer.Exit(code=1) from e
    typer.echo(json.dumps(spec.to_persisted(), indent=2))


@app.command("save-map", help="Build a mapping from options and save it.")
def save_map(
    path: Path = typer.Argument(..., help="Destination (.cvrmap or .json)"),
    map_name: Optional[str] = typer.Option(None, help="Mapping name (defaults to file stem)"),
    type_: Optional[str] = typer.Option(None, "--type", help="Accessor or literal for type"),
    key: Optional[str] = typer.Option(None, help="Accessor or literal for key"),
    title: Optional[str] = typer.Option(None, help="Accessor or literal for title"),
    description: Optional[str] = typer.Option(None, help="Accessor or literal for description"),
    start: Optional[str] = typer.Option(None, help="Accessor or literal for start"),
    end: Optional[str] = typer.Option(None, help="Accessor or literal for end"),
    tags: Optional[str] = typer.Option(None, help="Accessor or literal for tags"),
    first_row: bool = typer.Option(False, "--first-row/--no-first-row", help="Skip header row"),
    timestamp_format: Optional[str] = typer.Option(
        None, help="C, pythonic or javascript (defaults to DEFAULT_TIMESTAMP_FORMAT)"
    ),
    sep: str = typer.Option(",", help="CSV separator"),
) -> None:
    settings = get_settings()
    values = dict(zip(EVENT_FIELDS, (type_, key, title, description, start, end, tags)))
    try:
        spec = MappingSpec.model_validate(
            {
                "mapName": map_name,
                **{name: parse_accessor_option(v) for name, v in values.items()},
                "firstRow": first_row,
                "timestampFormat": timestamp_format or settings.DEFAULT_TIMESTAMP_FORMAT,
                "sep": sep,
            }
        )
        written = save_mapping(spec, path)
    except (ChronovisorError, ValueError) as e:
        typer.echo(f"Invalid mapping: {e}", err=True)
        raise typer.Exit(code=1) from e
    typer.echo(f"Saved mapping to {written}")


if __name__ == "__main__":  # pragma: no cover
    app()
