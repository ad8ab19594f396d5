from pathlib import Path

import pytest

from litdown.core import formats
from litdown.core.exceptions import ConfigurationError
from litdown.core.formats import (
    ConverterOptions,
    FormatOptions,
    HtmlDependencyInjector,
    OutputFormat,
    PreserveYamlPostProcessor,
    available_formats,
    create_output_format,
    register_format,
)
from litdown.core.metadata import Metadata
from litdown.core.weaving import DependencyMetadata, HtmlDependency


def test_builtin_formats_are_registered() -> None:
    assert {
        "html_document",
        "pdf_document",
        "word_document",
        "md_document",
        "identity_document",
    } <= set(available_formats())


def test_html_document_keeps_supporting_files_unless_self_contained() -> None:
    linked = create_output_format("html_document")
    embedded = create_output_format("html_document", {"self_contained": True})

    assert linked.to == "html"
    assert linked.clean_supporting is False
    assert embedded.clean_supporting is True
    assert "--embed-resources" in embedded.converter.args
    assert isinstance(linked.pre_processor, HtmlDependencyInjector)
    assert linked.weave.chunk_options["dev"] == "png"


def test_pdf_document_options() -> None:
    output_format = create_output_format(
        "pdf_document", {"latex_engine": "lualatex", "keep_tex": True, "geometry": "margin=1in"}
    )

    args = output_format.converter.args
    assert output_format.to == "latex"
    assert output_format.converter.ext == ".pdf"
    assert output_format.converter.keep_tex is True
    assert args[args.index("--pdf-engine") + 1] == "lualatex"
    assert "geometry:margin=1in" in args
    assert output_format.weave.chunk_options["dev"] == "pdf"


def test_pdf_document_rejects_unknown_engine() -> None:
    with pytest.raises(ConfigurationError):
        create_output_format("pdf_document", {"latex_engine": "troff"})


def test_md_document_variant_and_preserve_yaml() -> None:
    output_format = create_output_format("md_document", {"variant": "gfm", "preserve_yaml": True})

    assert output_format.to == "gfm"
    assert output_format.converter.ext == ".md"
    assert isinstance(output_format.post_processor, PreserveYamlPostProcessor)
    assert output_format.clean_supporting is False


def test_chunk_options_reach_weave_overrides() -> None:
    output_format = create_output_format(
        "word_document", {"chunk_options": {"echo": False, "dev": "svg"}}
    )

    assert output_format.weave.chunk_options == {"dev": "svg", "echo": False}


def test_with_args_returns_extended_copy() -> None:
    original = create_output_format("identity_document")

    extended = original.with_args(["--metadata", "lang=fr"])

    assert extended.converter.args[-2:] == ("--metadata", "lang=fr")
    assert "--metadata" not in original.converter.args
    assert original.with_args([]) is original


def test_register_custom_format() -> None:
    @register_format("slides_test_document", FormatOptions)
    def slides(options: FormatOptions) -> OutputFormat:
        return OutputFormat(
            name="slides_test_document",
            converter=ConverterOptions(to="revealjs", args=("--standalone",)),
            keep_md=options.keep_md,
        )

    try:
        output_format = create_output_format("slides_test_document", {"keep_md": True})
        assert output_format.to == "revealjs"
        assert output_format.keep_md is True
    finally:
        formats._REGISTRY.pop("slides_test_document", None)


def test_entry_point_factory_is_used(monkeypatch: pytest.MonkeyPatch) -> None:
    def factory(**options: object) -> OutputFormat:
        return OutputFormat(name="plugin_document", converter=ConverterOptions(to="rst"))

    monkeypatch.setattr(formats, "_load_entry_point", lambda name: factory)

    assert create_output_format("plugin_document").to == "rst"


def test_entry_point_must_return_output_format(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(formats, "_load_entry_point", lambda name: lambda **_: "nope")

    with pytest.raises(ConfigurationError):
        create_output_format("plugin_document")


def test_html_dependency_injector_stages_assets(tmp_path: Path) -> None:
    source = tmp_path / "assets" / "widget"
    source.mkdir(parents=True)
    (source / "widget.js").write_text("console.log('x');", encoding="utf-8")
    (source / "widget.css").write_text("body {}", encoding="utf-8")
    output_dir = tmp_path / "out"
    files_dir = output_dir / "report_files"
    dependencies = DependencyMetadata(
        entries=[
            HtmlDependency(
                name="widget",
                version="1.0",
                src=source,
                scripts=("widget.js",),
                stylesheets=("widget.css",),
            ),
            HtmlDependency(name="inline", head="<meta name='x' />"),
            "unrelated entry",
        ]
    )

    args = HtmlDependencyInjector().pre_process(
        Metadata(), tmp_path / "report.utf8.md", "static", dependencies, files_dir, output_dir
    )

    assert args[0] == "--include-in-header"
    header = Path(args[1]).read_text(encoding="utf-8")
    assert '<script src="report_files/widget-1.0/widget.js"></script>' in header
    assert '<link href="report_files/widget-1.0/widget.css" rel="stylesheet" />' in header
    assert "<meta name='x' />" in header
    assert (files_dir / "widget-1.0" / "widget.js").exists()


def test_html_dependency_injector_without_dependencies(tmp_path: Path) -> None:
    args = HtmlDependencyInjector().pre_process(
        Metadata(), tmp_path / "in.md", "static", DependencyMetadata(), tmp_path / "f", tmp_path
    )

    assert args == []
    assert not (tmp_path / "f").exists()


def test_preserve_yaml_post_processor(tmp_path: Path) -> None:
    source = tmp_path / "doc.utf8.md"
    source.write_text("---\ntitle: Demo\n---\n\nBody\n", encoding="utf-8")
    output = tmp_path / "doc.md"
    output.write_text("Body\n", encoding="utf-8")

    result = PreserveYamlPostProcessor().post_process(Metadata(), source, output, True, False)

    assert result == output
    assert output.read_text(encoding="utf-8") == "---\ntitle: Demo\n---\n\nBody\n"
