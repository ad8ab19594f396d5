"""Pure-Python HTML converter built on Python-Markdown.

`MarkdownConverter` is a drop-in for Pandoc when only HTML output is needed.
It understands the subset of converter arguments the builtin HTML format
produces (``--css``, ``--include-in-header``, ``--toc``, ``--standalone``);
any other argument is ignored with a debug message.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
import html
import logging
from pathlib import Path

import markdown

from litdown.core.conversion import ConverterRun
from litdown.core.exceptions import ConversionError
from litdown.core.metadata import split_front_matter
from litdown.core.utils import is_html_target, read_text_utf8, resolve_against, write_text_utf8


logger = logging.getLogger(__name__)

DEFAULT_MARKDOWN_EXTENSIONS = [
    "pymdownx.highlight",
    "pymdownx.superfences",
    "abbr",
    "admonition",
    "attr_list",
    "def_list",
    "footnotes",
    "md_in_html",
    "pymdownx.betterem",
    "pymdownx.tilde",
    "tables",
]

DEFAULT_EXTENSION_CONFIGS: dict[str, dict[str, object]] = {
    "pymdownx.highlight": {
        "anchor_linenums": True,
        "pygments_lang_class": True,
    },
}

_VALUE_ARGS = {"--css", "--include-in-header", "--toc-depth", "--highlight-style", "--template"}


@dataclass(slots=True)
class HtmlArguments:
    """Converter arguments understood by `MarkdownConverter`."""

    standalone: bool = False
    toc: bool = False
    toc_depth: int = 3
    css: list[str] = field(default_factory=list)
    headers: list[Path] = field(default_factory=list)


def parse_html_arguments(args: Sequence[str], base_dir: Path) -> HtmlArguments:
    parsed = HtmlArguments()
    tokens = list(args)
    index = 0
    while index < len(tokens):
        token = tokens[index]
        value = tokens[index + 1] if index + 1 < len(tokens) else None
        if token in _VALUE_ARGS and value is not None:
            if token == "--css":
                parsed.css.append(value)
            elif token == "--include-in-header":
                parsed.headers.append(resolve_against(base_dir, value))
            elif token == "--toc-depth":
                parsed.toc_depth = int(value)
            else:
                logger.debug("ignoring converter argument %s %s", token, value)
            index += 2
            continue
        if token == "--standalone":
            parsed.standalone = True
        elif token == "--toc":
            parsed.toc = True
        else:
            logger.debug("ignoring converter argument %s", token)
        index += 1
    return parsed


@dataclass(slots=True)
class MarkdownConverter:
    """Render canonical Markdown to HTML without external executables."""

    extensions: list[str] = field(default_factory=lambda: list(DEFAULT_MARKDOWN_EXTENSIONS))
    name: str = "markdown"

    def ensure_available(self) -> None:
        return

    def convert(self, run: ConverterRun) -> None:
        if not is_html_target(run.to):
            raise ConversionError(
                f"The markdown converter only produces HTML output (requested '{run.to}')."
            )
        options = parse_html_arguments(run.args, run.base_dir)
        source = read_text_utf8(run.input_path)
        front_matter, body = split_front_matter(source)

        extensions = list(self.extensions)
        extension_configs = {
            name: dict(DEFAULT_EXTENSION_CONFIGS[name])
            for name in extensions
            if name in DEFAULT_EXTENSION_CONFIGS
        }
        if options.toc:
            extensions.append("toc")
            extension_configs["toc"] = {"toc_depth": f"1-{options.toc_depth}"}

        try:
            processor = markdown.Markdown(
                extensions=extensions, extension_configs=extension_configs
            )
            content = processor.convert(body)
        except Exception as exc:  # pragma: no cover - library-controlled
            raise ConversionError(f"Failed to convert Markdown: {exc}") from exc

        if options.toc:
            content = f'<nav id="TOC">\n{getattr(processor, "toc", "")}\n</nav>\n{content}'
        if options.standalone:
            content = _standalone(content, front_matter, options)
        write_text_utf8(run.output_path, content)
        logger.debug("wrote %s with python-markdown", run.output_path)


def _standalone(content: str, front_matter: dict[str, object], options: HtmlArguments) -> str:
    title = front_matter.get("title")
    head: list[str] = ['<meta charset="utf-8" />']
    if title is not None:
        head.append(f"<title>{html.escape(str(title))}</title>")
    head.extend(
        f'<link rel="stylesheet" href="{html.escape(sheet, quote=True)}" />'
        for sheet in options.css
    )
    for header in options.headers:
        head.append(read_text_utf8(header).rstrip("\n"))

    body: list[str] = []
    if title is not None:
        body.append(f'<h1 class="title">{html.escape(str(title))}</h1>')
    body.append(content)
    return (
        "<!DOCTYPE html>\n<html>\n<head>\n"
        + "\n".join(head)
        + "\n</head>\n<body>\n"
        + "\n".join(body)
        + "\n</body>\n</html>\n"
    )


__all__ = [
    "DEFAULT_MARKDOWN_EXTENSIONS",
    "HtmlArguments",
    "MarkdownConverter",
    "parse_html_arguments",
]
