"""Public rendering entry points wiring the default collaborators."""

from __future__ import annotations

from collections.abc import Callable, Mapping, MutableMapping
from pathlib import Path
from typing import Any

from litdown.adapters.markdown import MarkdownConverter
from litdown.adapters.pandoc import PandocConverter
from litdown.adapters.passthrough import PassthroughConverter
from litdown.adapters.weaver import PythonWeaver
from litdown.core.conversion import Converter
from litdown.core.diagnostics import DiagnosticEmitter
from litdown.core.exceptions import ConfigurationError
from litdown.core.inputs import EnvironmentFacts
from litdown.core.render import FormatRequest, render as _render
from litdown.core.weaving import WeavingEngine


CONVERTERS: dict[str, Callable[[], Converter]] = {
    "pandoc": PandocConverter,
    "markdown": MarkdownConverter,
    "passthrough": PassthroughConverter,
}


def create_converter(name: str) -> Converter:
    """Instantiate the converter registered under ``name``."""
    factory = CONVERTERS.get(name.strip().lower())
    if factory is None:
        known = ", ".join(sorted(CONVERTERS))
        raise ConfigurationError(f"Unknown converter '{name}' (available: {known}).")
    return factory()


def render(
    input: Path | str,
    output_format: FormatRequest = None,
    output_file: Path | str | None = None,
    output_dir: Path | str | None = None,
    output_options: Mapping[str, Any] | None = None,
    intermediates_dir: Path | str | None = None,
    runtime: str = "auto",
    clean: bool = True,
    namespace: MutableMapping[str, Any] | None = None,
    quiet: bool = False,
    encoding: str | None = "utf-8",
    *,
    converter: Converter | str | None = None,
    engine: WeavingEngine | None = None,
    emitter: DiagnosticEmitter | None = None,
    environment: EnvironmentFacts | None = None,
) -> Path | list[Path]:
    """Render a literate document, defaulting to Pandoc and the Python weaver.

    Returns the absolute output path, or the list of paths when several
    output formats are rendered.
    """
    if converter is None:
        resolved_converter: Converter = PandocConverter()
    elif isinstance(converter, str):
        resolved_converter = create_converter(converter)
    else:
        resolved_converter = converter

    return _render(
        input,
        output_format,
        output_file,
        output_dir,
        output_options,
        intermediates_dir,
        runtime,
        clean,
        namespace,
        quiet,
        encoding,
        converter=resolved_converter,
        engine=engine if engine is not None else PythonWeaver(),
        emitter=emitter,
        environment=environment,
    )


__all__ = ["CONVERTERS", "create_converter", "render"]
