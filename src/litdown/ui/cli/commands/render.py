"""Implementation of the primary ``litdown`` CLI command."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import click
import typer

from litdown.api import available_formats, create_converter, render as render_document
from litdown.core.exceptions import LitdownError, exception_hint
from litdown.core.render import RUNTIME_MODES
from litdown.version import get_version

from .._options import (
    CleanOption,
    ConverterOption,
    DebugOption,
    EncodingOption,
    FormatOption,
    FormatOptionOverride,
    InputArgument,
    IntermediatesDirOption,
    ListFormatsOption,
    OutputDirOption,
    OutputFileOption,
    QuietOption,
    RuntimeOption,
    VerboseOption,
    VersionOption,
)
from ..diagnostics import CliEmitter
from ..presenter import present_outputs
from ..state import debug_enabled, emit_error, set_cli_state


def _coerce_option_value(raw: str) -> Any:
    """Infer the type of a format option from its command-line string."""
    candidate = raw.strip()
    lowered = candidate.lower()
    if lowered in {"true", "yes", "on"}:
        return True
    if lowered in {"false", "no", "off"}:
        return False
    if lowered in {"null", "none"}:
        return None
    try:
        return int(candidate)
    except ValueError:
        pass
    try:
        return float(candidate)
    except ValueError:
        pass
    if candidate.startswith("[") and candidate.endswith("]"):
        inner = candidate[1:-1].strip()
        return [_coerce_option_value(item) for item in inner.split(",")] if inner else []
    return candidate


def _assign_nested_value(target: dict[str, Any], path: list[str], value: Any) -> None:
    cursor = target
    for key in path[:-1]:
        if key not in cursor:
            cursor[key] = {}
        elif not isinstance(cursor[key], dict):
            raise typer.BadParameter(
                f"Invalid option override for '{'.'.join(path)}', "
                f"'{key}' is already assigned to a non-mapping value."
            )
        cursor = cursor[key]
    cursor[path[-1]] = value


def parse_option_overrides(values: Iterable[str] | None) -> dict[str, Any]:
    """Parse ``key=value`` strings into a (possibly nested) options mapping."""
    overrides: dict[str, Any] = {}
    for raw in values or []:
        if not raw.strip():
            continue
        if "=" not in raw:
            raise typer.BadParameter(f"Invalid option override '{raw}', expected key=value.")
        key, value = raw.split("=", 1)
        parts = [part.strip() for part in key.split(".") if part.strip()]
        if not parts:
            raise typer.BadParameter(f"Invalid option override '{raw}', empty key.")
        _assign_nested_value(overrides, parts, _coerce_option_value(value))
    return overrides


def _format_request(formats: list[str] | None) -> str | list[str] | None:
    names = [name.strip() for name in formats or [] if name.strip()]
    if not names:
        return None
    if len(names) == 1:
        return names[0]
    return names


def render(
    input_path: InputArgument = None,
    formats: FormatOption = None,
    output: OutputFileOption = None,
    output_dir: OutputDirOption = None,
    intermediates_dir: IntermediatesDirOption = None,
    runtime: RuntimeOption = "auto",
    clean: CleanOption = True,
    quiet: QuietOption = False,
    encoding: EncodingOption = "utf-8",
    option_overrides: FormatOptionOverride = None,
    converter: ConverterOption = "pandoc",
    list_formats: ListFormatsOption = False,
    verbose: VerboseOption = 0,
    debug: DebugOption = False,
    version: VersionOption = False,
) -> None:
    """Render a literate Markdown document by weaving its code and converting the result."""

    ctx = click.get_current_context(silent=True)
    typer_ctx = ctx if isinstance(ctx, typer.Context) else None
    state = set_cli_state(ctx=typer_ctx, verbosity=verbose, quiet=quiet, debug=debug)

    if typer_ctx is not None and typer_ctx.resilient_parsing:
        return

    if version:
        typer.echo(get_version())
        raise typer.Exit()

    if list_formats:
        for name in available_formats():
            typer.echo(name)
        raise typer.Exit()

    if input_path is None:
        raise typer.BadParameter("Provide a document to render.")

    if runtime not in RUNTIME_MODES:
        raise typer.BadParameter(
            f"Invalid runtime '{runtime}' (expected one of: {', '.join(RUNTIME_MODES)})."
        )

    output_options = parse_option_overrides(option_overrides)
    emitter = CliEmitter(state)

    try:
        backend = create_converter(converter)
        result = render_document(
            input_path,
            _format_request(formats),
            output_file=output,
            output_dir=output_dir,
            output_options=output_options or None,
            intermediates_dir=intermediates_dir,
            runtime=runtime,
            clean=clean,
            quiet=quiet,
            encoding=encoding,
            converter=backend,
            emitter=emitter,
        )
    except (LitdownError, OSError) as exc:
        if debug_enabled():
            raise
        emit_error(exception_hint(exc) if isinstance(exc, OSError) else str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    if isinstance(result, list):
        present_outputs(state, result)


__all__ = ["parse_option_overrides", "render"]
