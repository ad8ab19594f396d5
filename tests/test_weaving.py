from pathlib import Path
from typing import Any

import pytest

from litdown.core.exceptions import CompatibilityError, EmbeddedWarning
from litdown.core.formats import create_output_format
from litdown.core.metadata import Metadata
from litdown.core.weaving import (
    METADATA_VARIABLE,
    DependencyMetadata,
    HtmlDependency,
    WeaveState,
    build_weave_state,
    check_compatibility,
    injected_metadata,
    resolve_runtime,
    scoped_weave_state,
    weave_document,
)


class _Recorder:
    def __init__(self) -> None:
        self.warnings: list[str] = []
        self.events: list[tuple[str, dict[str, Any]]] = []
        self.debug_enabled = False

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        self.warnings.append(message)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        return

    def event(self, name: str, payload: dict[str, Any]) -> None:
        self.events.append((name, dict(payload)))


class _FakeEngine:
    """Weaving engine copying its input and publishing preset side-channel entries."""

    def __init__(self, entries: list[Any] | None = None, *, fail: bool = False) -> None:
        self.state = WeaveState(chunk_options={"echo": True})
        self._meta: list[Any] = []
        self.entries = list(entries or [])
        self.fail = fail
        self.seen_states: list[WeaveState] = []
        self.seen_metadata: list[Any] = []

    def weave(self, input_path, output_path, *, namespace, base_dir, quiet, encoding):
        self.seen_states.append(self.state)
        self.seen_metadata.append(namespace.get(METADATA_VARIABLE))
        self._meta.extend(self.entries)
        if self.fail:
            raise RuntimeError("chunk exploded")
        output_path.write_text(input_path.read_text(encoding=encoding), encoding=encoding)
        return output_path

    def spin(self, script_path: Path, *, encoding: str) -> Path:
        raise NotImplementedError

    def reset_meta(self, kind: type | None = None) -> list[Any]:
        if kind is None:
            taken, self._meta = self._meta, []
            return taken
        taken = [entry for entry in self._meta if isinstance(entry, kind)]
        self._meta = [entry for entry in self._meta if not isinstance(entry, kind)]
        return taken


def _weave(engine: _FakeEngine, tmp_path: Path, format_name: str, **kwargs: Any):
    knit_input = tmp_path / "report.pmd"
    knit_input.write_text("# Report\n", encoding="utf-8")
    output_format = create_output_format(format_name)
    output_file = tmp_path / f"report{output_format.converter.ext or '.html'}"
    params: dict[str, Any] = {
        "knit_input": knit_input,
        "knit_output": tmp_path / "report.knit.md",
        "output_format": output_format,
        "output_file": output_file,
        "files_dir": tmp_path / "report_files",
        "base_dir": tmp_path,
        "input_name": "report.pmd",
        "metadata": Metadata({"title": "Report"}),
        "runtime": "static",
        "namespace": {},
        "quiet": True,
        "encoding": "utf-8",
    }
    params.update(kwargs)
    return weave_document(engine, **params)


@pytest.mark.parametrize(
    ("requested", "metadata", "expected"),
    [
        ("auto", {}, "static"),
        (None, {}, "static"),
        ("auto", {"runtime": "shiny"}, "shiny"),
        ("interactive", {"runtime": "shiny"}, "interactive"),
        ("static", {}, "static"),
    ],
)
def test_resolve_runtime(requested: str | None, metadata: dict[str, Any], expected: str) -> None:
    assert resolve_runtime(requested, metadata) == expected


def test_build_weave_state_layers_format_overrides(tmp_path: Path) -> None:
    base = WeaveState(chunk_options={"echo": True, "dev": "svg"})
    output_format = create_output_format("html_document", {"chunk_options": {"echo": False}})

    state, cache_dir = build_weave_state(
        base,
        output_format,
        input_name="report.pmd",
        files_dir=tmp_path / "report_files",
        base_dir=tmp_path,
        runtime="static",
    )

    assert state.engine_options["litdown.to"] == "html"
    assert state.engine_options["litdown.runtime"] == "static"
    assert state.chunk_options["fig_path"] == "report_files/figure-html/"
    assert state.chunk_options["cache_path"] == "report_cache/html/"
    assert state.chunk_options["echo"] is False
    assert state.chunk_options["dev"] == "png"
    assert cache_dir == tmp_path / "report_cache/html/"
    assert base.chunk_options == {"echo": True, "dev": "svg"}


def test_scoped_weave_state_restores_on_error() -> None:
    engine = _FakeEngine()
    original = engine.state
    replacement = WeaveState(chunk_options={"echo": False})

    with pytest.raises(RuntimeError), scoped_weave_state(engine, replacement):
        assert engine.state is replacement
        raise RuntimeError("boom")

    assert engine.state is original


def test_injected_metadata_adds_and_removes() -> None:
    namespace: dict[str, Any] = {}
    metadata = Metadata({"title": "T"})

    with injected_metadata(namespace, metadata) as injected:
        assert injected is True
        assert namespace[METADATA_VARIABLE] is metadata

    assert METADATA_VARIABLE not in namespace


def test_injected_metadata_warns_on_collision() -> None:
    recorder = _Recorder()
    namespace: dict[str, Any] = {METADATA_VARIABLE: "user value"}

    with injected_metadata(namespace, Metadata(), recorder) as injected:
        assert injected is False

    assert namespace[METADATA_VARIABLE] == "user value"
    assert "won't be accessible" in recorder.warnings[0]


def test_check_compatibility_skips_html_targets(tmp_path: Path) -> None:
    html = create_output_format("html_document")
    dependencies = DependencyMetadata(entries=[HtmlDependency(name="widget")])

    check_compatibility(html, tmp_path / "out.html", dependencies, "interactive")


def test_check_compatibility_skips_html_output_file(tmp_path: Path) -> None:
    identity = create_output_format("identity_document")
    dependencies = DependencyMetadata(entries=[HtmlDependency(name="widget")])

    check_compatibility(identity, tmp_path / "out.html", dependencies, "static")


def test_check_compatibility_reports_html_content_first(tmp_path: Path) -> None:
    word = create_output_format("word_document")
    dependencies = DependencyMetadata(entries=[HtmlDependency(name="widget")])

    with pytest.raises(CompatibilityError) as excinfo:
        check_compatibility(word, tmp_path / "out.docx", dependencies, "interactive")

    assert excinfo.value.kind == CompatibilityError.HTML_CONTENT


def test_check_compatibility_rejects_interactive_runtime(tmp_path: Path) -> None:
    word = create_output_format("word_document")

    with pytest.raises(CompatibilityError) as excinfo:
        check_compatibility(word, tmp_path / "out.docx", DependencyMetadata(), "interactive")

    assert excinfo.value.kind == CompatibilityError.NON_STATIC_RUNTIME


def test_weave_document_collects_side_channel(tmp_path: Path) -> None:
    dependency = HtmlDependency(name="widget", version="1.0")
    engine = _FakeEngine(entries=[dependency, EmbeddedWarning("careful"), {"custom": 1}])
    original = engine.state
    recorder = _Recorder()

    result = _weave(engine, tmp_path, "html_document", emitter=recorder)

    assert result.output_path == tmp_path / "report.knit.md"
    assert result.dependencies.entries == [dependency, {"custom": 1}]
    assert [str(warning) for warning in result.dependencies.warnings] == ["careful"]
    assert recorder.warnings == ["Warning: careful"]
    assert engine.state is original
    assert engine.seen_states[0].engine_options["litdown.to"] == "html"
    assert engine.seen_metadata == [Metadata({"title": "Report"})]
    assert engine.reset_meta() == []


def test_weave_document_restores_state_on_failure(tmp_path: Path) -> None:
    engine = _FakeEngine(entries=["leftover"], fail=True)
    original = engine.state
    namespace: dict[str, Any] = {}

    with pytest.raises(RuntimeError, match="chunk exploded"):
        _weave(engine, tmp_path, "html_document", namespace=namespace)

    assert engine.state is original
    assert namespace == {}
    assert engine.reset_meta() == []


def test_weave_document_rejects_html_for_word(tmp_path: Path) -> None:
    engine = _FakeEngine(entries=[HtmlDependency(name="widget")])

    with pytest.raises(CompatibilityError):
        _weave(
            engine,
            tmp_path,
            "word_document",
            output_file=tmp_path / "report.docx",
        )

    assert engine.reset_meta() == []
