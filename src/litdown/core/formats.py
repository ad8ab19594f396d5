"""Output format descriptors and the builtin format registry.

An `OutputFormat` bundles everything the pipeline needs to know about a target:
converter options (target, source dialect, arguments, auxiliary TeX output),
weaving overrides, the optional pre/post-processing hooks, and the retention
flags. Formats are created from a name plus an options mapping; each builtin
format validates its options with a pydantic model so typos in front matter
fail loudly instead of being silently ignored.

Third-party formats can be registered programmatically with
`register_format` or published through the ``litdown.formats`` entry-point
group. Entry points resolve to a callable accepting keyword options and
returning an `OutputFormat`.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from importlib import metadata as importlib_metadata
import logging
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import ConfigurationError
from .hooks import PostProcessor, PreProcessor
from .metadata import split_front_matter
from .supporting import materialize_supporting_files
from .utils import read_text_utf8, write_text_utf8
from .weaving import DependencyMetadata, WeaveOverrides


logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "litdown.formats"


@dataclass(frozen=True, slots=True)
class ConverterOptions:
    """Arguments describing a single converter invocation."""

    to: str
    from_: str = "markdown"
    args: tuple[str, ...] = ()
    keep_tex: bool = False
    ext: str | None = None


@dataclass(frozen=True, slots=True)
class OutputFormat:
    """Fully resolved description of one output target."""

    name: str
    converter: ConverterOptions
    weave: WeaveOverrides = field(default_factory=WeaveOverrides)
    pre_processor: PreProcessor | None = None
    post_processor: PostProcessor | None = None
    keep_md: bool = False
    keep_woven: bool = False
    clean_supporting: bool = True

    @property
    def to(self) -> str:
        return self.converter.to

    def with_args(self, extra: Sequence[str]) -> OutputFormat:
        """Return a copy whose converter arguments end with ``extra``."""
        if not extra:
            return self
        converter = replace(self.converter, args=(*self.converter.args, *extra))
        return replace(self, converter=converter)


class FormatOptions(BaseModel):
    """Options shared by every builtin format."""

    model_config = ConfigDict(extra="forbid")

    toc: bool = False
    toc_depth: int = Field(default=3, ge=1, le=6)
    number_sections: bool = False
    template: str | None = None
    md_extensions: str = ""
    pandoc_args: list[str] = Field(default_factory=list)
    keep_md: bool = False
    keep_woven: bool = False
    clean_supporting: bool = True
    chunk_options: dict[str, Any] = Field(default_factory=dict)


class HtmlDocumentOptions(FormatOptions):
    css: list[str] = Field(default_factory=list)
    self_contained: bool = False
    highlight: str | None = "pygments"


class PdfDocumentOptions(FormatOptions):
    latex_engine: Literal["pdflatex", "xelatex", "lualatex"] = "pdflatex"
    keep_tex: bool = False
    geometry: str | None = None
    fig_width: float = 6.5
    fig_height: float = 4.5


class WordDocumentOptions(FormatOptions):
    reference_docx: str | None = None


class MdDocumentOptions(FormatOptions):
    variant: str = "markdown_strict"
    preserve_yaml: bool = False


class IdentityDocumentOptions(FormatOptions):
    ext: str = ".txt"


@dataclass(frozen=True, slots=True)
class FormatDefinition:
    """Registry entry pairing an options model with its builder."""

    name: str
    options_model: type[FormatOptions]
    build: Callable[[Any], OutputFormat]

    def create(self, options: Mapping[str, Any]) -> OutputFormat:
        try:
            parsed = self.options_model.model_validate(dict(options))
        except ValidationError as exc:
            raise ConfigurationError(
                f"Invalid options for output format '{self.name}': {exc}"
            ) from exc
        return self.build(parsed)


_REGISTRY: dict[str, FormatDefinition] = {}


def register_format(
    name: str, options_model: type[FormatOptions] = FormatOptions
) -> Callable[[Callable[[Any], OutputFormat]], Callable[[Any], OutputFormat]]:
    """Register a builder producing an `OutputFormat` from validated options."""

    def decorator(builder: Callable[[Any], OutputFormat]) -> Callable[[Any], OutputFormat]:
        _REGISTRY[name] = FormatDefinition(name=name, options_model=options_model, build=builder)
        return builder

    return decorator


def available_formats() -> list[str]:
    return sorted(_REGISTRY)


def create_output_format(name: str, options: Mapping[str, Any] | None = None) -> OutputFormat:
    """Materialise the format ``name`` with the given options."""
    key = name.strip()
    definition = _REGISTRY.get(key)
    if definition is not None:
        return definition.create(options or {})

    factory = _load_entry_point(key)
    if factory is None:
        known = ", ".join(available_formats())
        raise ConfigurationError(f"Unknown output format '{name}' (available: {known}).")
    try:
        produced = factory(**dict(options or {}))
    except TypeError as exc:
        raise ConfigurationError(f"Invalid options for output format '{name}': {exc}") from exc
    if not isinstance(produced, OutputFormat):
        raise ConfigurationError(f"Entry point '{name}' did not return an OutputFormat.")
    return produced


def _load_entry_point(name: str) -> Callable[..., Any] | None:
    try:
        candidates = importlib_metadata.entry_points().select(group=ENTRY_POINT_GROUP, name=name)
    except Exception:  # pragma: no cover - broken installation metadata
        logger.debug("unable to enumerate %s entry points", ENTRY_POINT_GROUP, exc_info=True)
        return None
    for entry_point in candidates:
        return entry_point.load()
    return None


def _common_args(options: FormatOptions) -> list[str]:
    args: list[str] = []
    if options.toc:
        args.extend(["--toc", "--toc-depth", str(options.toc_depth)])
    if options.number_sections:
        args.append("--number-sections")
    if options.template:
        args.extend(["--template", options.template])
    args.extend(options.pandoc_args)
    return args


def _weave_overrides(options: FormatOptions, **chunk_defaults: Any) -> WeaveOverrides:
    chunk_options = dict(chunk_defaults)
    chunk_options.update(options.chunk_options)
    return WeaveOverrides(chunk_options=chunk_options)


def _from_dialect(options: FormatOptions) -> str:
    return f"markdown{options.md_extensions}"


@dataclass(frozen=True, slots=True)
class HtmlDependencyInjector:
    """Stage HTML dependencies next to the output and link them from the header."""

    header_name: str = "litdown-header.html"

    def pre_process(
        self,
        metadata: Mapping[str, Any],
        input_path: Path,
        runtime: str,
        dependencies: DependencyMetadata,
        files_dir: Path,
        output_dir: Path,
    ) -> list[str]:
        html_dependencies = dependencies.html_dependencies
        if not html_dependencies:
            return []

        lines: list[str] = []
        for dependency in html_dependencies:
            if dependency.src is not None:
                target = materialize_supporting_files(
                    dependency.src, files_dir, rename_to=dependency.slug
                )
                relative = target.relative_to(output_dir).as_posix()
                lines.extend(
                    f'<link href="{relative}/{sheet}" rel="stylesheet" />'
                    for sheet in dependency.stylesheets
                )
                lines.extend(
                    f'<script src="{relative}/{script}"></script>' for script in dependency.scripts
                )
            if dependency.head:
                lines.append(dependency.head)

        header = write_text_utf8(files_dir / self.header_name, "\n".join(lines) + "\n")
        return ["--include-in-header", str(header)]


@dataclass(frozen=True, slots=True)
class PreserveYamlPostProcessor:
    """Re-prepend the source front matter to a Markdown output."""

    def post_process(
        self,
        metadata: Mapping[str, Any],
        input_path: Path,
        output_path: Path,
        clean: bool,
        verbose: bool,
    ) -> Path:
        source = read_text_utf8(input_path)
        front_matter, body = split_front_matter(source)
        if not front_matter:
            return output_path
        header_length = len(source) - len(body)
        header = source[:header_length].rstrip("\n")
        produced = read_text_utf8(output_path)
        write_text_utf8(output_path, f"{header}\n\n{produced}")
        return output_path


@register_format("html_document", HtmlDocumentOptions)
def html_document(options: HtmlDocumentOptions) -> OutputFormat:
    args = ["--standalone", "--section-divs", *_common_args(options)]
    for stylesheet in options.css:
        args.extend(["--css", stylesheet])
    if options.self_contained:
        args.append("--embed-resources")
    if options.highlight:
        args.extend(["--highlight-style", options.highlight])
    else:
        args.append("--no-highlight")
    return OutputFormat(
        name="html_document",
        converter=ConverterOptions(to="html", from_=_from_dialect(options), args=tuple(args)),
        weave=_weave_overrides(options, dev="png"),
        pre_processor=HtmlDependencyInjector(),
        keep_md=options.keep_md,
        keep_woven=options.keep_woven,
        # linked (non self-contained) pages still reference the supporting files
        clean_supporting=options.clean_supporting and options.self_contained,
    )


@register_format("pdf_document", PdfDocumentOptions)
def pdf_document(options: PdfDocumentOptions) -> OutputFormat:
    args = ["--pdf-engine", options.latex_engine, *_common_args(options)]
    if options.geometry:
        args.extend(["--variable", f"geometry:{options.geometry}"])
    return OutputFormat(
        name="pdf_document",
        converter=ConverterOptions(
            to="latex",
            from_=_from_dialect(options),
            args=tuple(args),
            keep_tex=options.keep_tex,
            ext=".pdf",
        ),
        weave=_weave_overrides(
            options, dev="pdf", fig_width=options.fig_width, fig_height=options.fig_height
        ),
        keep_md=options.keep_md,
        keep_woven=options.keep_woven,
        clean_supporting=options.clean_supporting,
    )


@register_format("word_document", WordDocumentOptions)
def word_document(options: WordDocumentOptions) -> OutputFormat:
    args = _common_args(options)
    if options.reference_docx:
        args.extend(["--reference-doc", options.reference_docx])
    return OutputFormat(
        name="word_document",
        converter=ConverterOptions(to="docx", from_=_from_dialect(options), args=tuple(args)),
        weave=_weave_overrides(options, dev="png"),
        keep_md=options.keep_md,
        keep_woven=options.keep_woven,
        clean_supporting=options.clean_supporting,
    )


@register_format("md_document", MdDocumentOptions)
def md_document(options: MdDocumentOptions) -> OutputFormat:
    return OutputFormat(
        name="md_document",
        converter=ConverterOptions(
            to=options.variant,
            from_=_from_dialect(options),
            args=("--standalone", *_common_args(options)),
            ext=".md",
        ),
        weave=_weave_overrides(options, dev="png"),
        post_processor=PreserveYamlPostProcessor() if options.preserve_yaml else None,
        keep_md=options.keep_md,
        keep_woven=options.keep_woven,
        clean_supporting=False,
    )


@register_format("identity_document", IdentityDocumentOptions)
def identity_document(options: IdentityDocumentOptions) -> OutputFormat:
    ext = options.ext if options.ext.startswith(".") else f".{options.ext}"
    return OutputFormat(
        name="identity_document",
        converter=ConverterOptions(
            to="identity", from_=_from_dialect(options), args=tuple(_common_args(options)), ext=ext
        ),
        weave=_weave_overrides(options),
        keep_md=options.keep_md,
        keep_woven=options.keep_woven,
        clean_supporting=options.clean_supporting,
    )


__all__ = [
    "ENTRY_POINT_GROUP",
    "ConverterOptions",
    "FormatDefinition",
    "FormatOptions",
    "HtmlDependencyInjector",
    "HtmlDocumentOptions",
    "IdentityDocumentOptions",
    "MdDocumentOptions",
    "OutputFormat",
    "PdfDocumentOptions",
    "PreserveYamlPostProcessor",
    "WordDocumentOptions",
    "available_formats",
    "create_output_format",
    "html_document",
    "identity_document",
    "md_document",
    "pdf_document",
    "register_format",
    "word_document",
]
