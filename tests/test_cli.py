import importlib
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

import litdown
from litdown.adapters import pandoc as pandoc_module
from litdown.core.config import PANDOC_ENV_VAR
from litdown.ui.cli import app
from litdown.ui.cli.commands.render import parse_option_overrides
from litdown.ui.cli.state import set_cli_state


def _document(tmp_path: Path) -> Path:
    source = tmp_path / "note.md"
    source.write_text("---\ntitle: Note\n---\n\nHello.\n", encoding="utf-8")
    return source


def test_version_flag_prints_version() -> None:
    result = CliRunner().invoke(app, ["--version"])

    assert result.exit_code == 0, result.output
    assert result.stdout.strip() == litdown.get_version()


def test_list_formats() -> None:
    result = CliRunner().invoke(app, ["--list-formats"])

    assert result.exit_code == 0, result.output
    names = result.stdout.split()
    assert "html_document" in names
    assert "identity_document" in names


def test_missing_input_is_a_usage_error() -> None:
    result = CliRunner().invoke(app, [])

    assert result.exit_code != 0


def test_render_with_passthrough_converter(tmp_path: Path) -> None:
    source = _document(tmp_path)

    result = CliRunner().invoke(
        app, [str(source), "--converter", "passthrough", "-f", "identity_document"]
    )

    assert result.exit_code == 0, result.output
    assert "Output created" in result.output
    assert (tmp_path / "note.txt").read_text(encoding="utf-8") == source.read_text(
        encoding="utf-8"
    )


def test_render_applies_option_overrides(tmp_path: Path) -> None:
    source = _document(tmp_path)

    result = CliRunner().invoke(
        app,
        [
            str(source),
            "--converter",
            "passthrough",
            "--format",
            "identity_document",
            "--option",
            "ext=.out",
            "--output-dir",
            "build",
            "--quiet",
        ],
    )

    assert result.exit_code == 0, result.output
    assert (tmp_path / "build" / "note.out").exists()
    assert "Output created" not in result.output


def test_render_multiple_formats(tmp_path: Path) -> None:
    source = _document(tmp_path)

    result = CliRunner().invoke(
        app,
        [
            str(source),
            "--converter",
            "passthrough",
            "-f",
            "identity_document",
            "-f",
            "html_document",
        ],
    )

    assert result.exit_code == 0, result.output
    assert (tmp_path / "note.txt").exists()
    assert (tmp_path / "note.html").exists()
    assert "Rendered outputs" in result.output


def test_missing_pandoc_reports_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    source = _document(tmp_path)
    monkeypatch.delenv(PANDOC_ENV_VAR, raising=False)
    monkeypatch.setattr(pandoc_module.shutil, "which", lambda name: None)

    result = CliRunner().invoke(app, [str(source)])

    assert result.exit_code == 1
    assert "Pandoc" in result.output
    assert sorted(path.name for path in tmp_path.iterdir()) == ["note.md"]


def test_unknown_converter_reports_error(tmp_path: Path) -> None:
    result = CliRunner().invoke(app, [str(_document(tmp_path)), "--converter", "troff"])

    assert result.exit_code == 1
    assert "Unknown converter" in result.output


def test_invalid_runtime_is_a_usage_error(tmp_path: Path) -> None:
    result = CliRunner().invoke(app, [str(_document(tmp_path)), "--runtime", "shiny"])

    assert result.exit_code == 2


def test_parse_option_overrides() -> None:
    overrides = parse_option_overrides(
        ["toc=true", "toc_depth=2", "chunk_options.echo=false", "css=[a.css, b.css]", ""]
    )

    assert overrides == {
        "toc": True,
        "toc_depth": 2,
        "chunk_options": {"echo": False},
        "css": ["a.css", "b.css"],
    }


@pytest.mark.parametrize("raw", ["toc", "=1"])
def test_parse_option_overrides_rejects_malformed(raw: str) -> None:
    with pytest.raises(typer.BadParameter):
        parse_option_overrides([raw])


def test_parse_option_overrides_rejects_conflicting_paths() -> None:
    with pytest.raises(typer.BadParameter):
        parse_option_overrides(["chunk_options=1", "chunk_options.echo=false"])


def test_main_reports_unexpected_errors(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    cli_module = importlib.import_module("litdown.ui.cli.app")
    set_cli_state(verbosity=0, quiet=False, debug=False)

    def _crash() -> None:
        raise RuntimeError("kaboom")

    monkeypatch.setattr(cli_module, "app", _crash)

    with pytest.raises(typer.Exit) as excinfo:
        cli_module.main()

    assert excinfo.value.exit_code == 1
    assert "kaboom" in capsys.readouterr().err
