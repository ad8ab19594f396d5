from pathlib import Path

import pytest

from litdown.core.exceptions import ConfigurationError
from litdown.core.formats import create_output_format
from litdown.core.resolver import (
    enumerate_output_formats,
    merge_options,
    resolve_configuration,
    resolve_format_name,
    resolve_output_format,
)


DOCUMENT = """---
title: Demo
output:
  html_document:
    toc: true
    toc_depth: 2
  pdf_document:
    latex_engine: xelatex
---

Body text.
"""


def _lines(text: str) -> list[str]:
    return text.split("\n")


def test_concrete_output_format_is_used_verbatim() -> None:
    descriptor = create_output_format("word_document")

    resolved = resolve_configuration(_lines(DOCUMENT), descriptor)

    assert resolved.output_format is descriptor
    assert resolved.metadata["title"] == "Demo"


def test_format_name_precedence() -> None:
    metadata = {"output": {"pdf_document": {}}}

    assert resolve_format_name("word_document", metadata) == "word_document"
    assert resolve_format_name(None, metadata) == "pdf_document"
    assert resolve_format_name(None, {}) == "html_document"


def test_front_matter_options_apply_to_first_declared_format() -> None:
    resolved = resolve_configuration(_lines(DOCUMENT), None)

    args = resolved.output_format.converter.args
    assert resolved.output_format.name == "html_document"
    assert "--toc" in args
    assert args[args.index("--toc-depth") + 1] == "2"


def test_caller_options_override_front_matter() -> None:
    resolved = resolve_configuration(_lines(DOCUMENT), None, {"toc_depth": 4})

    args = resolved.output_format.converter.args
    assert args[args.index("--toc-depth") + 1] == "4"


def test_explicit_name_reads_matching_front_matter_options() -> None:
    resolved = resolve_configuration(_lines(DOCUMENT), "pdf_document")

    args = resolved.output_format.converter.args
    assert args[args.index("--pdf-engine") + 1] == "xelatex"


def test_invalid_option_raises_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        resolve_output_format({}, "html_document", {"unknown_option": True})


def test_unknown_format_raises_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("litdown.core.formats._load_entry_point", lambda _name: None)

    with pytest.raises(ConfigurationError):
        resolve_output_format({}, "slides_document")


def test_citeproc_flag_from_bibliography() -> None:
    text = "---\nbibliography: refs.bib\n---\n\nSee [@doe].\n"

    assert resolve_configuration(_lines(text), "html_document").citeproc is True
    assert resolve_configuration(_lines(DOCUMENT), "html_document").citeproc is False


def test_merge_options_is_recursive_and_pure() -> None:
    base = {"chunk_options": {"echo": True, "dev": "png"}, "toc": False}
    overrides = {"chunk_options": {"echo": False}}

    merged = merge_options(base, overrides)

    assert merged == {"chunk_options": {"echo": False, "dev": "png"}, "toc": False}
    assert base["chunk_options"]["echo"] is True


def test_enumerate_output_formats(tmp_path: Path) -> None:
    document = tmp_path / "doc.pmd"
    document.write_text(DOCUMENT, encoding="utf-8")
    plain = tmp_path / "plain.pmd"
    plain.write_text("No front matter\n", encoding="utf-8")

    assert enumerate_output_formats(document) == ["html_document", "pdf_document"]
    assert enumerate_output_formats(plain) is None
