"""Typer application wiring for the litdown CLI."""

from __future__ import annotations

import click
import typer
from typer.core import TyperCommand

from litdown.ui.cli.commands.render import render

from .state import emit_error, get_cli_state


class OptionalInputCommand(TyperCommand):
    """Render command whose input may be omitted for ``--version`` and ``--list-formats``."""

    def __init__(self, *args: object, **kwargs: object) -> None:  # type: ignore[override]
        super().__init__(*args, **kwargs)
        for param in self.params:
            if isinstance(param, click.Argument):
                param.required = False


app = typer.Typer(
    help="Render literate Markdown documents with executable Python chunks.",
    context_settings={"help_option_names": ["--help", "-h"]},
    add_completion=False,
)
app.command(cls=OptionalInputCommand)(render)


def _report_crash(exc: BaseException) -> None:
    state = get_cli_state()
    if not state.show_tracebacks:
        emit_error(str(exc) or type(exc).__name__, exception=exc)
        return
    from rich.traceback import Traceback

    state.err_console.print(
        Traceback.from_exception(
            type(exc), exc, exc.__traceback__, show_locals=state.verbosity >= 2
        )
    )


def main() -> None:
    """Console script entry point."""
    try:
        app()
    except (typer.Exit, SystemExit):
        raise
    except KeyboardInterrupt as exc:
        emit_error("Rendering interrupted.")
        raise typer.Exit(code=130) from exc
    except Exception as exc:
        _report_crash(exc)
        raise typer.Exit(code=1) from exc


__all__ = ["app", "main"]
