"""Weaving engine executing ``{python}`` chunks of literate Markdown.

Chunk syntax
: A chunk opens with a fence followed by ``{python}`` and optional
  options, e.g. ```` ```{python setup, echo=False, results='asis'} ````.
  The first bare token is the chunk label; other options are ``key=value``
  pairs whose values are Python literals.

Options
: ``echo`` (show the source), ``eval`` (execute), ``include`` (keep any
  output), ``results`` (``markup``, ``asis`` or ``hide``), ``error`` (render
  exceptions instead of failing), ``warning`` (render Python warnings),
  ``comment`` (prefix of output lines), ``cache`` (reuse woven text stored
  under ``cache_path``), ``fig_path`` and ``dev`` (figure location and
  format).

Side channel
: Code running in a chunk can publish objects with `emit_meta`. Values
  exposing ``_repr_html_`` are inserted as raw HTML and publish an
  `HtmlDependency`. Warnings of category `EmbeddedWarning` are published
  instead of being rendered. The orchestrator collects everything with
  `PythonWeaver.reset_meta`.

Hooks
: ``source(code, options)``, ``output(text, options)`` and
  ``chunk(text, options)`` on `WeaveState.hooks` replace the default
  Markdown formatting of each part.
"""

from __future__ import annotations

import ast
from collections.abc import Callable, Iterator, Mapping, MutableMapping
import contextlib
from contextvars import ContextVar
from dataclasses import dataclass, field
import hashlib
import io
import logging
from pathlib import Path
import re
import traceback
from typing import Any
import warnings

from litdown.core.exceptions import EmbeddedWarning, WeavingError
from litdown.core.utils import is_html_target, normalise_encoding, read_text_utf8
from litdown.core.weaving import HtmlDependency, WeaveState

from .spin import spin_script


logger = logging.getLogger(__name__)

_CHUNK_START_RE = re.compile(r"^(?P<fence>`{3,})\s*\{python(?:[\s,]+(?P<options>.*?))?\}\s*$")
_INLINE_RE = re.compile(r"`py\s+(?P<expr>[^`]+)`")
_FENCE_RE = re.compile(r"^\s*(`{3,}|~{3,})")

DEFAULT_CHUNK_OPTIONS: dict[str, Any] = {
    "echo": True,
    "eval": True,
    "include": True,
    "results": "markup",
    "error": True,
    "warning": True,
    "comment": "##",
    "cache": False,
    "fig_path": "figure/",
    "cache_path": "cache/",
    "dev": "png",
}

_ACTIVE_META: ContextVar[list[Any] | None] = ContextVar("litdown_weave_meta", default=None)


def emit_meta(entry: Any) -> bool:
    """Publish ``entry`` on the side channel of the weaving in progress.

    Returns False when no weaving is running.
    """
    sink = _ACTIVE_META.get()
    if sink is None:
        logger.debug("emit_meta() called outside weaving; dropping %r", entry)
        return False
    sink.append(entry)
    return True


def parse_chunk_options(raw: str | None) -> tuple[str | None, dict[str, Any]]:
    """Split a chunk header into its label and option mapping."""
    if not raw or not raw.strip():
        return None, {}
    label: str | None = None
    options: dict[str, Any] = {}
    for position, token in enumerate(_split_options(raw)):
        token = token.strip()
        if not token:
            continue
        if "=" not in token:
            if position == 0:
                label = token
                continue
            raise WeavingError(f"Invalid chunk option '{token}' (expected key=value).")
        key, _, value = token.partition("=")
        options[key.strip().replace(".", "_")] = _literal(value.strip())
    if "label" in options and label is None:
        label = str(options.pop("label"))
    return label, options


def _split_options(raw: str) -> Iterator[str]:
    depth = 0
    quote: str | None = None
    current: list[str] = []
    for char in raw:
        if quote is not None:
            current.append(char)
            if char == quote:
                quote = None
            continue
        if char in {"'", '"'}:
            quote = char
        elif char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
        elif char == "," and depth == 0:
            yield "".join(current)
            current = []
            continue
        current.append(char)
    yield "".join(current)


def _literal(value: str) -> Any:
    aliases = {"TRUE": True, "FALSE": False, "NULL": None}
    if value in aliases:
        return aliases[value]
    try:
        return ast.literal_eval(value)
    except (ValueError, SyntaxError):
        return value


@dataclass(slots=True)
class Chunk:
    """A code chunk located in the source document."""

    label: str
    options: dict[str, Any]
    code: str


@dataclass(slots=True)
class ChunkResult:
    """Captured effects of executing one chunk."""

    stdout: str = ""
    value: Any = None
    error: str | None = None
    warnings: list[str] = field(default_factory=list)


def _default_source_hook(code: str, options: Mapping[str, Any]) -> str:
    return f"```python\n{code}\n```"


def _default_output_hook(text: str, options: Mapping[str, Any]) -> str:
    if options.get("results") == "asis":
        return text
    prefix = options.get("comment") or ""
    lines = [f"{prefix} {line}".rstrip() if prefix else line for line in text.split("\n")]
    return "```\n" + "\n".join(lines) + "\n```"


def _default_chunk_hook(text: str, options: Mapping[str, Any]) -> str:
    return text


class PythonWeaver:
    """Execute Python chunks in a shared namespace and weave their output."""

    def __init__(self, state: WeaveState | None = None) -> None:
        self.state = state or WeaveState(chunk_options=dict(DEFAULT_CHUNK_OPTIONS))
        self._meta: list[Any] = []

    # Side channel -----------------------------------------------------

    def reset_meta(self, kind: type | None = None) -> list[Any]:
        """Remove and return side-channel entries, optionally only those of ``kind``."""
        if kind is None:
            drained = list(self._meta)
            self._meta.clear()
            return drained
        drained = [entry for entry in self._meta if isinstance(entry, kind)]
        self._meta[:] = [entry for entry in self._meta if not isinstance(entry, kind)]
        return drained

    # Spinning ---------------------------------------------------------

    def spin(self, script_path: Path, *, encoding: str) -> Path:
        return spin_script(script_path, encoding=encoding)

    # Weaving ----------------------------------------------------------

    def weave(
        self,
        input_path: Path,
        output_path: Path,
        *,
        namespace: MutableMapping[str, Any],
        base_dir: Path,
        quiet: bool,
        encoding: str,
    ) -> Path:
        codec = normalise_encoding(encoding)
        source = read_text_utf8(Path(input_path), codec)
        woven = self.weave_text(source, namespace=namespace, base_dir=base_dir, quiet=quiet)
        Path(output_path).write_text(woven, encoding=codec)
        return Path(output_path)

    def weave_text(
        self,
        source: str,
        *,
        namespace: MutableMapping[str, Any],
        base_dir: Path,
        quiet: bool = True,
    ) -> str:
        """Return ``source`` with every chunk replaced by its woven output."""
        token = _ACTIVE_META.set(self._meta)
        try:
            return self._weave_lines(source.split("\n"), namespace, base_dir, quiet)
        finally:
            _ACTIVE_META.reset(token)

    def _weave_lines(
        self,
        lines: list[str],
        namespace: MutableMapping[str, Any],
        base_dir: Path,
        quiet: bool,
    ) -> str:
        output: list[str] = []
        counter = 0
        index = 0
        in_fence: str | None = None

        while index < len(lines):
            line = lines[index]
            match = _CHUNK_START_RE.match(line) if in_fence is None else None
            if match is None:
                fence = _FENCE_RE.match(line)
                if fence is not None:
                    marker = fence.group(1)
                    if in_fence is None:
                        in_fence = marker
                    elif marker.startswith(in_fence[0]) and len(marker) >= len(in_fence):
                        in_fence = None
                elif in_fence is None:
                    line = self._weave_inline(line, namespace)
                output.append(line)
                index += 1
                continue

            counter += 1
            opening = match.group("fence")
            body: list[str] = []
            index += 1
            while index < len(lines) and not _is_closing(lines[index], opening):
                body.append(lines[index])
                index += 1
            index += 1

            label, options = parse_chunk_options(match.group("options"))
            chunk = Chunk(
                label=label or f"unnamed-chunk-{counter}",
                options={**self.state.chunk_options, **options},
                code="\n".join(body),
            )
            if not quiet:
                logger.info("weaving chunk %s", chunk.label)
            output.append(self._weave_chunk(chunk, namespace, base_dir))

        return "\n".join(output)

    def _weave_inline(self, line: str, namespace: MutableMapping[str, Any]) -> str:
        def substitute(match: re.Match[str]) -> str:
            expression = match.group("expr").strip()
            try:
                return str(eval(compile(expression, "<inline>", "eval"), namespace))
            except Exception as exc:
                raise WeavingError(f"Error in inline expression '{expression}': {exc}") from exc

        return _INLINE_RE.sub(substitute, line)

    def _weave_chunk(
        self, chunk: Chunk, namespace: MutableMapping[str, Any], base_dir: Path
    ) -> str:
        options = chunk.options
        cache_file: Path | None = None
        if options.get("cache") and options.get("eval", True):
            cache_file = self._cache_file(chunk, base_dir)
            if cache_file.is_file():
                logger.debug("reusing cached chunk %s", chunk.label)
                return cache_file.read_text(encoding="utf-8")

        parts: list[str] = []
        if options.get("echo", True):
            parts.append(self._hook("source", _default_source_hook)(chunk.code, options))

        if options.get("eval", True):
            result = self._execute(chunk, namespace)
            parts.extend(self._render_result(chunk, result, base_dir))

        if not options.get("include", True):
            return ""
        text = "\n\n".join(part for part in parts if part)
        woven = self._hook("chunk", _default_chunk_hook)(text, options)
        if cache_file is not None:
            cache_file.parent.mkdir(parents=True, exist_ok=True)
            cache_file.write_text(woven, encoding="utf-8")
        return woven

    def _hook(
        self, name: str, default: Callable[[str, Mapping[str, Any]], str]
    ) -> Callable[[str, Mapping[str, Any]], str]:
        return self.state.hooks.get(name, default)

    def _cache_file(self, chunk: Chunk, base_dir: Path) -> Path:
        digest = hashlib.sha1(
            (chunk.code + repr(sorted(chunk.options.items(), key=lambda item: item[0]))).encode(
                "utf-8"
            )
        ).hexdigest()[:12]
        cache_root = base_dir / str(chunk.options.get("cache_path") or "cache/")
        return cache_root / f"{chunk.label}_{digest}.md"

    def _execute(self, chunk: Chunk, namespace: MutableMapping[str, Any]) -> ChunkResult:
        result = ChunkResult()
        filename = f"<chunk {chunk.label}>"
        buffer = io.StringIO()
        with contextlib.redirect_stdout(buffer), warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            try:
                tree = ast.parse(chunk.code, filename=filename, mode="exec")
                trailing: ast.Expression | None = None
                if tree.body and isinstance(tree.body[-1], ast.Expr):
                    trailing = ast.Expression(tree.body.pop().value)
                exec(compile(tree, filename, "exec"), namespace)
                if trailing is not None:
                    result.value = eval(compile(trailing, filename, "eval"), namespace)
            except Exception as exc:
                if not chunk.options.get("error", True):
                    raise WeavingError(f"Error in chunk '{chunk.label}': {exc}") from exc
                result.error = "".join(traceback.format_exception_only(type(exc), exc)).rstrip()

        result.stdout = buffer.getvalue()
        for record in caught:
            if issubclass(record.category, EmbeddedWarning):
                emit_meta(EmbeddedWarning(str(record.message)))
            else:
                result.warnings.append(f"{record.category.__name__}: {record.message}")
        return result

    def _render_result(self, chunk: Chunk, result: ChunkResult, base_dir: Path) -> list[str]:
        options = chunk.options
        output_hook = self._hook("output", _default_output_hook)
        parts: list[str] = []
        hide = options.get("results") == "hide"

        text_blocks: list[str] = []
        if result.stdout and not hide:
            text_blocks.append(result.stdout.rstrip("\n"))
        if options.get("warning", True):
            text_blocks.extend(f"Warning: {message}" for message in result.warnings)
        if result.error is not None:
            text_blocks.append(f"Error: {result.error}")

        value = result.value
        if value is not None and not hide:
            if hasattr(value, "savefig"):
                parts.append(self._save_figure(chunk, value, base_dir))
            elif hasattr(value, "_repr_markdown_") and not self._html_target():
                parts.append(str(value._repr_markdown_()))
            elif hasattr(value, "_repr_html_"):
                parts.append(f"```{{=html}}\n{value._repr_html_()}\n```")
                emit_meta(HtmlDependency(name=type(value).__name__.lower(), version="0"))
            else:
                text_blocks.append(repr(value))

        if text_blocks:
            parts.insert(0, output_hook("\n".join(text_blocks), options))
        return parts

    def _html_target(self) -> bool:
        return is_html_target(str(self.state.engine_options.get("litdown.to", "html")))

    def _save_figure(self, chunk: Chunk, figure: Any, base_dir: Path) -> str:
        options = chunk.options
        fig_path = str(options.get("fig_path") or "figure/")
        extension = str(options.get("dev") or "png")
        relative = f"{fig_path}{chunk.label}-1.{extension}"
        target = base_dir / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        figure.savefig(target)
        return f"![]({relative})"


def _is_closing(line: str, fence: str) -> bool:
    stripped = line.strip()
    return stripped.startswith(fence) and set(stripped) == {"`"}


__all__ = [
    "DEFAULT_CHUNK_OPTIONS",
    "Chunk",
    "ChunkResult",
    "PythonWeaver",
    "emit_meta",
    "parse_chunk_options",
]
