"""Shared Typer option definitions for the litdown command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer


INPUTS_PANEL = "Input Handling"
RENDERING_PANEL = "Rendering"
OUTPUT_PANEL = "Output"
DIAGNOSTICS_PANEL = "Diagnostics"

InputArgument = Annotated[
    Path | None,
    typer.Argument(
        metavar="INPUT",
        help=(
            "Document to render: literate Markdown (.pmd, .pymd), a Python script (.py) "
            "or plain Markdown (.md, .markdown, .txt)."
        ),
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        rich_help_panel=INPUTS_PANEL,
    ),
]

EncodingOption = Annotated[
    str,
    typer.Option(
        "--encoding",
        help="Text encoding of the input document.",
        rich_help_panel=INPUTS_PANEL,
    ),
]

FormatOption = Annotated[
    list[str] | None,
    typer.Option(
        "--format",
        "-f",
        help=(
            "Output format name (e.g. html_document, pdf_document). Repeat to render several "
            "formats, or pass 'all' for every format declared in the front matter."
        ),
        rich_help_panel=RENDERING_PANEL,
    ),
]

FormatOptionOverride = Annotated[
    list[str] | None,
    typer.Option(
        "--option",
        metavar="KEY=VALUE",
        help="Override an output format option (dotted keys create nested mappings).",
        rich_help_panel=RENDERING_PANEL,
    ),
]

RuntimeOption = Annotated[
    str,
    typer.Option(
        "--runtime",
        help="Runtime mode: auto (front matter, else static), static or interactive.",
        rich_help_panel=RENDERING_PANEL,
    ),
]

ConverterOption = Annotated[
    str,
    typer.Option(
        "--converter",
        help="Converter backend: pandoc, markdown (HTML only) or passthrough.",
        rich_help_panel=RENDERING_PANEL,
    ),
]

OutputFileOption = Annotated[
    Path | None,
    typer.Option(
        "--output",
        "-o",
        help="Output file (ignored when several formats are rendered).",
        rich_help_panel=OUTPUT_PANEL,
    ),
]

OutputDirOption = Annotated[
    Path | None,
    typer.Option(
        "--output-dir",
        "-d",
        help="Directory receiving the output (relative to the input's directory).",
        rich_help_panel=OUTPUT_PANEL,
    ),
]

IntermediatesDirOption = Annotated[
    Path | None,
    typer.Option(
        "--intermediates-dir",
        help="Directory for intermediate files (defaults to the input's directory).",
        rich_help_panel=OUTPUT_PANEL,
    ),
]

CleanOption = Annotated[
    bool,
    typer.Option(
        "--clean/--no-clean",
        help="Remove intermediate files once rendering completes.",
        rich_help_panel=OUTPUT_PANEL,
    ),
]

QuietOption = Annotated[
    bool,
    typer.Option(
        "--quiet",
        "-q",
        help="Suppress progress messages.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase CLI verbosity. Combine multiple times for additional diagnostics.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

DebugOption = Annotated[
    bool,
    typer.Option(
        "--debug",
        help="Show full tracebacks when an unexpected error occurs.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

ListFormatsOption = Annotated[
    bool,
    typer.Option(
        "--list-formats",
        help="List the builtin output formats and exit.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

VersionOption = Annotated[
    bool,
    typer.Option(
        "--version",
        help="Show the litdown version and exit.",
        is_eager=True,
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]


__all__ = [
    "DIAGNOSTICS_PANEL",
    "INPUTS_PANEL",
    "OUTPUT_PANEL",
    "RENDERING_PANEL",
    "CleanOption",
    "ConverterOption",
    "DebugOption",
    "EncodingOption",
    "FormatOption",
    "FormatOptionOverride",
    "InputArgument",
    "IntermediatesDirOption",
    "ListFormatsOption",
    "OutputDirOption",
    "OutputFileOption",
    "QuietOption",
    "RuntimeOption",
    "VerboseOption",
    "VersionOption",
]
