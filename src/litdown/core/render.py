"""Render coordinator driving one document through the full pipeline.

Architecture
: `render_one` runs a single output format through the stages
  normalize, resolve, weave, pre-process, convert, post-process and the
  optional plain Markdown sibling. Every artifact the render creates is
  registered on its own `IntermediateSet`, which is cleaned on every exit
  path, failures included.
: `render` expands ``"all"`` and lists of format names into sequential
  passes over `render_one`. Each pass owns its intermediates and base
  directory, and an explicit output file only ever applies to a single pass.

The base directory is the absolute parent of the working input. It is passed
explicitly to every stage that resolves relative paths; the process working
directory is never modified.

Usage
: ``render(Path("report.pmd"), "pdf_document", converter=PandocConverter(),
  engine=PythonWeaver())``
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping, Sequence
from dataclasses import dataclass, field, replace
import logging
from pathlib import Path
from typing import Any

from .config import DEFAULT_FORMAT
from .conversion import Converter, invoke_conversion
from .diagnostics import DiagnosticEmitter, ensure_emitter
from .exceptions import ConfigurationError
from .formats import OutputFormat
from .hooks import run_post_processor, run_pre_processor
from .inputs import EnvironmentFacts, normalize_input
from .intermediates import IntermediateSet
from .metadata import Metadata, md_header_from_front_matter, split_front_matter
from .resolver import enumerate_output_formats, resolve_configuration
from .timing import PerfTimer
from .utils import (
    file_with_ext,
    files_dir_name,
    is_html_target,
    normalise_encoding,
    read_text_utf8,
    resolve_against,
    write_text_utf8,
)
from .weaving import (
    DependencyMetadata,
    WeavingEngine,
    resolve_runtime,
    weave_document,
)


logger = logging.getLogger(__name__)

ALL_FORMATS = "all"
RUNTIME_MODES = ("auto", "static", "interactive")

FormatRequest = str | OutputFormat | Sequence[str] | None


@dataclass(frozen=True, slots=True)
class RenderRequest:
    """Caller-supplied parameters of a render."""

    input: Path
    output_format: FormatRequest = None
    output_file: Path | None = None
    output_dir: Path | None = None
    output_options: Mapping[str, Any] | None = None
    intermediates_dir: Path | None = None
    runtime: str = "auto"
    clean: bool = True
    namespace: MutableMapping[str, Any] = field(default_factory=dict)
    quiet: bool = False
    encoding: str | None = "utf-8"


def pandoc_output_file(input_path: Path, output_format: OutputFormat) -> str:
    """Return the default output file name for ``input_path`` and the format target."""
    ext = output_format.converter.ext
    if ext is None:
        target = output_format.to.split("+", 1)[0].split("-", 1)[0]
        if target in {"latex", "beamer"}:
            ext = ".pdf"
        elif is_html_target(target):
            ext = ".html"
        elif target.startswith("markdown"):
            ext = ".markdown" if input_path.suffix.lower() == ".md" else ".md"
        else:
            ext = f".{target}"
    return f"{input_path.stem}{ext}"


def resolve_output_path(
    *,
    working: Path,
    base_dir: Path,
    output_format: OutputFormat,
    output_file: Path | str | None,
    output_dir: Path | str | None,
) -> Path:
    """Compute the absolute output location, creating ``output_dir`` when needed."""
    name: Path = Path(output_file) if output_file is not None else Path(
        pandoc_output_file(working, output_format)
    )
    if output_dir is not None:
        directory = resolve_against(base_dir, output_dir)
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / name.name
    else:
        target = resolve_against(base_dir, name)
    return target.absolute()


def write_markdown_sibling(output_path: Path, metadata: Metadata, source_text: str) -> Path | None:
    """Write ``<output stem>.md`` made of a synthesized header and the body."""
    md_path = file_with_ext(output_path, "md")
    if md_path == output_path:
        return None
    _, body = split_front_matter(source_text)
    lines = [*md_header_from_front_matter(metadata), *body.split("\n")]
    return write_text_utf8(md_path, "\n".join(lines))


def render_one(
    request: RenderRequest,
    *,
    converter: Converter,
    engine: WeavingEngine | None = None,
    emitter: DiagnosticEmitter | None = None,
    environment: EnvironmentFacts | None = None,
) -> Path:
    """Render ``request.input`` to a single output format and return the output path."""
    emitter = ensure_emitter(emitter)
    converter.ensure_available()

    if isinstance(request.output_format, Sequence) and not isinstance(
        request.output_format, str
    ):
        raise ConfigurationError("render_one() accepts a single output format.")

    codec = normalise_encoding(request.encoding)
    source = Path(request.input).expanduser().absolute()
    timer = PerfTimer()

    with (
        timer.section("render"),
        IntermediateSet(clean=request.clean, protected=[source]) as intermediates,
    ):
        normalized = normalize_input(
            source,
            intermediates=intermediates,
            intermediates_dir=request.intermediates_dir,
            engine=engine,
            environment=environment,
            encoding=codec,
        )
        base_dir = normalized.base_dir

        lines = read_text_utf8(normalized.knit_input, codec).split("\n")
        resolved = resolve_configuration(lines, request.output_format, request.output_options)
        output_format = resolved.output_format
        metadata = resolved.metadata

        output_file = resolve_output_path(
            working=normalized.working,
            base_dir=base_dir,
            output_format=output_format,
            output_file=request.output_file,
            output_dir=request.output_dir,
        )
        if output_file in {source, normalized.working, normalized.knit_input}:
            raise ConfigurationError(
                f"Output file '{output_file}' would overwrite the input document."
            )
        output_file.parent.mkdir(parents=True, exist_ok=True)
        files_dir = output_file.parent / files_dir_name(output_file)

        runtime = resolve_runtime(request.runtime, metadata)
        dependencies = DependencyMetadata()
        cache_dir: Path | None = None
        text_source = normalized.knit_input

        if normalized.executable:
            if engine is None:
                raise ConfigurationError(
                    f"A weaving engine is required to render '{normalized.name}'."
                )
            with timer.section("weave"):
                woven = weave_document(
                    engine,
                    knit_input=normalized.knit_input,
                    knit_output=normalized.knit_output,
                    output_format=output_format,
                    output_file=output_file,
                    files_dir=files_dir,
                    base_dir=base_dir,
                    input_name=normalized.name,
                    metadata=metadata,
                    runtime=runtime,
                    namespace=request.namespace,
                    quiet=request.quiet,
                    encoding=codec,
                    emitter=emitter,
                )
            if output_format.keep_woven:
                intermediates.discard(normalized.knit_output)
            text_source = woven.output_path
            dependencies = woven.dependencies
            cache_dir = woven.cache_dir

        if output_format.clean_supporting and (cache_dir is None or not cache_dir.is_dir()):
            intermediates.add(files_dir)

        input_text = read_text_utf8(text_source, codec)
        write_text_utf8(normalized.utf8_input, input_text)

        with timer.section("pre-processor"):
            extra_args = run_pre_processor(
                output_format.pre_processor,
                metadata=metadata,
                input_path=normalized.utf8_input,
                runtime=runtime,
                dependencies=dependencies,
                files_dir=files_dir,
                output_dir=output_file.parent,
            )
        output_format = output_format.with_args(extra_args)

        with timer.section("convert"):
            invoke_conversion(
                converter,
                output_format,
                input_path=normalized.utf8_input,
                output_file=output_file,
                metadata=metadata,
                citeproc=resolved.citeproc,
                base_dir=base_dir,
                quiet=request.quiet,
                emitter=emitter,
            )

        with timer.section("post-processor"):
            final_output = run_post_processor(
                output_format.post_processor,
                metadata=metadata,
                input_path=normalized.utf8_input,
                output_path=output_file,
                clean=request.clean,
                verbose=not request.quiet,
            )

        if not request.quiet:
            emitter.event("render_output", {"path": str(final_output)})

        if output_format.keep_md and not normalized.md_input:
            sibling = write_markdown_sibling(final_output, metadata, input_text)
            if sibling is not None:
                logger.debug("kept markdown sibling %s", sibling)

    logger.debug("rendered %s in %s", final_output, timer.summary())
    return final_output.absolute()


def expand_format_request(
    input_path: Path, requested: FormatRequest, encoding: str | None
) -> FormatRequest:
    """Turn ``"all"`` into the declared format names (or the default one).

    A single resolved name is returned as a plain string so it renders in
    single-format mode.
    """
    if isinstance(requested, str) and requested == ALL_FORMATS:
        declared = enumerate_output_formats(input_path, encoding) or []
        if len(declared) > 1:
            return declared
        return declared[0] if declared else DEFAULT_FORMAT
    return requested


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
    converter: Converter,
    engine: WeavingEngine | None = None,
    emitter: DiagnosticEmitter | None = None,
    environment: EnvironmentFacts | None = None,
) -> Path | list[Path]:
    """Render ``input`` to one or several output formats.

    A list of format names (or ``"all"`` resolving to several declared
    formats) renders each one in turn and returns the produced paths in the
    same order; ``output_file`` is ignored in that mode. The first failure
    stops the loop and propagates.
    """
    if runtime not in RUNTIME_MODES:
        raise ConfigurationError(
            f"Invalid runtime '{runtime}' (expected one of: {', '.join(RUNTIME_MODES)})."
        )
    converter.ensure_available()

    input_path = Path(input).expanduser().absolute()
    request = RenderRequest(
        input=input_path,
        output_format=None,
        output_file=Path(output_file) if output_file is not None else None,
        output_dir=Path(output_dir) if output_dir is not None else None,
        output_options=output_options,
        intermediates_dir=(
            Path(intermediates_dir).expanduser().absolute()
            if intermediates_dir is not None
            else None
        ),
        runtime=runtime,
        clean=clean,
        namespace=namespace if namespace is not None else {},
        quiet=quiet,
        encoding=encoding,
    )

    requested = expand_format_request(input_path, output_format, encoding)
    options = dict(converter=converter, engine=engine, emitter=emitter, environment=environment)

    if isinstance(requested, Sequence) and not isinstance(requested, str):
        names = [str(name) for name in requested]
        outputs: list[Path] = []
        for name in names:
            logger.debug("rendering %s as %s", input_path, name)
            outputs.append(
                render_one(replace(request, output_format=name, output_file=None), **options)
            )
        return outputs

    return render_one(replace(request, output_format=requested), **options)


__all__ = [
    "ALL_FORMATS",
    "RUNTIME_MODES",
    "FormatRequest",
    "RenderRequest",
    "expand_format_request",
    "pandoc_output_file",
    "render",
    "render_one",
    "resolve_output_path",
    "write_markdown_sibling",
]
