#!/usr/bin/env python3
"""Command-line interface for pyrss-ladder using Typer."""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer
from typing_extensions import Annotated

from . import __version__  # type: ignore
from .address import FILE_TYPES, SUBFIELDS, describe_address, parse_address, tag_data_type
from .errors import (
    InvalidAddressToken,
    NoLadderLogicFound,
    NotACompoundDocumentError,
    UnknownProfileError,
)
from .parser import parse_rss
from .sniff import sniff_format
from .types import Project

app = typer.Typer(
    name="pyrss",
    help="Extract ladder logic, tags and data-table values from RSLogix 500 .RSS files.",
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Shared options and helpers
# ============================================================================

FileArgument = Annotated[Path, typer.Argument(help="Path to an RSLogix 500 .RSS file")]
ProfileOption = Annotated[
    str,
    typer.Option("--profile", help="Format profile", envvar="PYRSS_PROFILE"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]
FormatOption = Annotated[
    str,
    typer.Option("--format", "-f", help="Output format: text, json, csv"),
]

_FORMATS = ("text", "json", "csv")


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbose flag."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if not verbose else "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def read_input(path: Path) -> bytes:
    """Read the whole file; exit 2 when it does not exist."""
    if not path.is_file():
        typer.echo(f"Error: File not found: {path}", err=True)
        raise typer.Exit(2)
    return path.read_bytes()


def check_format(output_format: str) -> None:
    if output_format not in _FORMATS:
        typer.echo(f"Error: Invalid format '{output_format}'. Must be text, json, or csv.", err=True)
        raise typer.Exit(2)


def load_project(path: Path, profile: str, verbose: bool) -> Project:
    """Parse ``path``, mapping failures to exit codes: 2 bad input, 3 no ladder logic, 4 unexpected."""
    buffer = read_input(path)
    try:
        return parse_rss(buffer, profile=profile)
    except (NotACompoundDocumentError, UnknownProfileError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)
    except NoLadderLogicFound as e:
        typer.echo(f"Error: {e}", err=True)
        if e.tried:
            typer.echo(f"Streams tried: {', '.join(e.tried)}", err=True)
        raise typer.Exit(3)
    except Exception as e:
        typer.echo(f"Error: Unexpected error: {e}", err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        raise typer.Exit(4)


def format_number(value: int | float) -> str:
    """Integers verbatim, floats with 2 decimal places."""
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


# ============================================================================
# Commands
# ============================================================================

@app.command()
def sniff(
    path: FileArgument,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Classify a file by its signature: container-binary, zip-like, xml-like or unknown.

    Only container-binary files can be parsed.
    """
    setup_logging(verbose)
    buffer = read_input(path)
    fmt = sniff_format(buffer)
    if json_output:
        typer.echo(json.dumps({"file": str(path), "format": fmt.value, "size": len(buffer)}))
    else:
        typer.echo(fmt.value)


@app.command()
def parse(
    path: FileArgument,
    profile: ProfileOption = "slc500",
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Parse a project and print its routines and rungs.

    Text output lists one line per rung; --json prints the full project tree.
    """
    setup_logging(verbose)
    project = load_project(path, profile, verbose)

    if json_output:
        typer.echo(json.dumps(project.to_dict(), indent=2))
        return

    typer.echo(f"Project:    {project.name}")
    typer.echo(f"Processor:  {project.processor_type}")
    typer.echo(f"Stream:     {project.source_stream}")
    typer.echo(f"Tags:       {len(project.tags)}")
    for program in project.programs:
        for routine in program.routines:
            typer.echo(f"\n[{routine.name}] {len(routine.rungs)} rungs")
            for rung in routine.rungs:
                typer.echo(f"  {rung.number:4d}: {rung.text}")
    for diagnostic in project.diagnostics:
        typer.echo(f"Warning: {diagnostic.kind.value} at {diagnostic.offset}: {diagnostic.message}", err=True)


@app.command()
def timers(
    path: FileArgument,
    profile: ProfileOption = "slc500",
    verbose: VerboseOption = False,
    output_format: FormatOption = "text",
) -> None:
    """
    List programmed timer (time base, preset, accumulator) and counter (preset, accumulator) values.

    Values come from the instruction parameters in the ladder program.
    """
    setup_logging(verbose)
    check_format(output_format)
    project = load_project(path, profile, verbose)

    if output_format == "json":
        output = {
            "timers": [t.to_dict() for t in project.timers],
            "counters": [c.to_dict() for c in project.counters],
        }
        typer.echo(json.dumps(output, indent=2))
    elif output_format == "csv":
        typer.echo("address,time_base,preset,accumulator")
        for t in project.timers:
            typer.echo(f"{t.address},{t.time_base},{t.preset},{t.accumulator}")
        for c in project.counters:
            typer.echo(f"{c.address},,{c.preset},{c.accumulator}")
    else:
        for t in project.timers:
            typer.echo(f"{t.address}  base={t.time_base}s  PRE={t.preset}  ACC={t.accumulator}")
        for c in project.counters:
            typer.echo(f"{c.address}  PRE={c.preset}  ACC={c.accumulator}")


@app.command()
def registers(
    path: FileArgument,
    profile: ProfileOption = "slc500",
    verbose: VerboseOption = False,
    output_format: FormatOption = "text",
) -> None:
    """
    List initial data-table values from the DATA FILES stream.

    Unused integer elements (0 and -1) are not listed.
    """
    setup_logging(verbose)
    check_format(output_format)
    project = load_project(path, profile, verbose)

    if output_format == "json":
        values = {str(v.address): v.value for v in project.register_values}
        typer.echo(json.dumps(values, indent=2))
    elif output_format == "csv":
        typer.echo("address,value")
        for v in project.register_values:
            typer.echo(f"{v.address},{v.value}")
    else:
        for v in project.register_values:
            typer.echo(f"{v.address}={format_number(v.value)}")


@app.command()
def explain(
    address: Annotated[str, typer.Argument(help="Address to explain (e.g., T4:0.DN, B3:2/5, I:1/0)")],
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Show the file type, file number, element, bit and subfield of an address.

    Does not need a project file.
    """
    setup_logging(verbose)

    try:
        token = parse_address(address)
    except InvalidAddressToken as e:
        typer.echo(f"Error: Invalid address: {e}", err=True)
        raise typer.Exit(2)

    info: dict[str, Any] = {
        "address": str(token),
        "file_type": FILE_TYPES[token.prefix][0],
        "file_number": token.file_number,
        "element": token.element,
        "bit": token.bit,
        "subfield": token.subfield,
        "subfield_meaning": SUBFIELDS.get(token.subfield) if token.subfield else None,
        "data_type": tag_data_type(token).value,
        "description": describe_address(token),
    }

    if json_output:
        typer.echo(json.dumps(info, indent=2))
    else:
        typer.echo(f"Address:      {info['address']}")
        typer.echo(f"File type:    {info['file_type']}")
        typer.echo(f"File number:  {info['file_number']}")
        typer.echo(f"Element:      {info['element']}")
        if token.bit is not None:
            typer.echo(f"Bit:          {token.bit}")
        if token.subfield:
            typer.echo(f"Subfield:     {token.subfield} ({info['subfield_meaning'] or 'unknown'})")
        typer.echo(f"Data type:    {info['data_type']}")


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"pyrss-ladder {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
) -> None:
    """pyrss - RSLogix 500 ladder logic extraction."""
    pass


if __name__ == "__main__":
    app()
