"""Emitter routing render diagnostics to the Rich consoles."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from litdown.core.diagnostics import format_event_message

from .state import CLIState, emit_error, emit_warning, get_cli_state, render_message


class CliEmitter:
    """Print pipeline warnings to stderr and progress events to stdout.

    Warnings are shown even with ``--quiet``; events with a known summary
    are printed as info lines, and unknown ones only at ``-vv``.
    """

    def __init__(self, state: CLIState | None = None) -> None:
        self._state = state or get_cli_state()

    @property
    def debug_enabled(self) -> bool:
        return self._state.show_tracebacks

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        emit_warning(message, exception=exc)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        emit_error(message, exception=exc)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        message = format_event_message(name, payload)
        if message is None and self._state.verbosity >= 2:
            message = f"{name}: {dict(payload)}"
        if message:
            render_message("info", message)


__all__ = ["CliEmitter"]
