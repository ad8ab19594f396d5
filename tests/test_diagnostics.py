from __future__ import annotations

import logging

import pytest

from litdown.core.diagnostics import LoggingEmitter, NullEmitter, format_event_message
from litdown.core.exceptions import (
    CompatibilityError,
    ConversionError,
    LitdownError,
    exception_hint,
    exception_messages,
)
from litdown.ui.cli.diagnostics import CliEmitter
from litdown.ui.cli.state import set_cli_state


def _raise_nested_error() -> None:
    try:
        raise FileNotFoundError("bibliography refs.bib is missing")
    except FileNotFoundError as exc:
        raise LitdownError("render failed") from exc


def test_null_emitter_is_noop(caplog: pytest.LogCaptureFixture) -> None:
    emitter = NullEmitter()
    with caplog.at_level(logging.WARNING):
        emitter.warning("nothing to see")
        emitter.error("still quiet")
    assert not caplog.records
    emitter.event("ignored", {"value": 1})
    assert emitter.debug_enabled is False


def test_logging_emitter_logs_messages(caplog: pytest.LogCaptureFixture) -> None:
    emitter = LoggingEmitter(debug_enabled=True)
    with caplog.at_level(logging.INFO):
        emitter.error("boom")
        emitter.event("render_output", {"path": "/tmp/doc.html"})
    messages = [record.message for record in caplog.records]
    assert "boom" in messages
    assert "Output created: /tmp/doc.html" in messages
    assert emitter.debug_enabled is True


def test_cli_emitter_bridges_state(capsys: pytest.CaptureFixture[str]) -> None:
    state = set_cli_state(verbosity=1, quiet=False, debug=False)
    emitter = CliEmitter(state=state)

    emitter.warning("Heads up", exc=None)
    emitter.error("Boom", exc=None)
    emitter.event("custom", {"flag": True})
    emitter.event("render_output", {"path": "out.html"})

    captured = capsys.readouterr()
    combined_output = f"{captured.out}\n{captured.err}"
    assert "Heads up" in combined_output
    assert "Boom" in combined_output
    assert "Output created: out.html" in captured.out
    assert "custom" not in combined_output


def test_cli_emitter_shows_unknown_events_when_very_verbose(
    capsys: pytest.CaptureFixture[str],
) -> None:
    state = set_cli_state(verbosity=2, quiet=False, debug=False)
    emitter = CliEmitter(state=state)

    emitter.event("custom", {"flag": True})

    assert "custom: {'flag': True}" in capsys.readouterr().out
    set_cli_state(verbosity=0)


def test_quiet_cli_emitter_suppresses_info_but_keeps_warnings(
    capsys: pytest.CaptureFixture[str],
) -> None:
    state = set_cli_state(verbosity=0, quiet=True, debug=False)
    emitter = CliEmitter(state=state)

    emitter.event("render_output", {"path": "out.html"})
    emitter.warning("check units")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "check units" in captured.err
    set_cli_state(quiet=False)


def test_format_event_message() -> None:
    assert format_event_message("converter_run", {"to": "docx", "output": "a.docx"}) == (
        "Converting to docx: a.docx"
    )
    assert format_event_message("supporting_files", {"target": "x", "copied": False}) is None
    assert format_event_message("unknown", {}) is None


def test_exception_hint_reports_root_cause() -> None:
    with pytest.raises(LitdownError) as excinfo:
        _raise_nested_error()

    assert exception_messages(excinfo.value) == [
        "render failed",
        "bibliography refs.bib is missing",
    ]
    assert exception_hint(excinfo.value) == "bibliography refs.bib is missing"


def test_error_formatting() -> None:
    error = CompatibilityError(CompatibilityError.NON_STATIC_RUNTIME, "use HTML")
    assert str(error) == "non-static-runtime-non-html-target: use HTML"
    assert str(CompatibilityError(CompatibilityError.HTML_CONTENT)) == (
        "html-content-non-html-target"
    )
    assert str(ConversionError("failed", "line 1\n")) == "failed\nline 1"
