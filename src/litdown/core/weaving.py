"""Weaving orchestration: scoped engine state, side-channel metadata, compatibility checks.

The weaving engine owns a `WeaveState` (engine options, chunk option defaults,
output hooks). The orchestrator never mutates that state in place: it builds
a modified copy for the current output format, installs it with
`scoped_weave_state` for exactly the duration of the weaving call, and the
previous state is reinstated on every exit path.

Code executed by the engine can publish entries on a side channel (HTML
dependencies, embedded warnings, arbitrary objects). The channel is reset
before weaving; afterwards embedded warnings are surfaced one by one and the
remaining entries become the `DependencyMetadata` handed to hooks.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, MutableMapping
from contextlib import contextmanager
from dataclasses import dataclass, field
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal, Protocol, runtime_checkable

from .diagnostics import DiagnosticEmitter, ensure_emitter
from .exceptions import CompatibilityError, EmbeddedWarning, MetadataNameCollisionWarning
from .utils import cache_dir_name, is_html_target


if TYPE_CHECKING:  # pragma: no cover - type checking only
    from .formats import OutputFormat
    from .metadata import Metadata


logger = logging.getLogger(__name__)

RuntimeMode = Literal["auto", "static", "interactive"]
WEAVE_PROTOCOL_VERSION = 2
METADATA_VARIABLE = "metadata"


@dataclass(frozen=True, slots=True)
class HtmlDependency:
    """HTML-only resource required by woven content (scripts, stylesheets, raw head)."""

    name: str
    version: str = "0"
    src: Path | None = None
    scripts: tuple[str, ...] = ()
    stylesheets: tuple[str, ...] = ()
    head: str | None = None

    @property
    def slug(self) -> str:
        return f"{self.name}-{self.version}"


@dataclass(slots=True)
class DependencyMetadata:
    """Side-channel entries collected from one weaving invocation."""

    entries: list[Any] = field(default_factory=list)
    warnings: list[EmbeddedWarning] = field(default_factory=list)

    @property
    def html_dependencies(self) -> list[HtmlDependency]:
        return [entry for entry in self.entries if isinstance(entry, HtmlDependency)]

    @property
    def has_html_dependencies(self) -> bool:
        return any(isinstance(entry, HtmlDependency) for entry in self.entries)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True, slots=True)
class WeaveOverrides:
    """Format-specific adjustments applied on top of the engine state."""

    engine_options: Mapping[str, Any] = field(default_factory=dict)
    chunk_options: Mapping[str, Any] = field(default_factory=dict)
    hooks: Mapping[str, Callable[..., str]] = field(default_factory=dict)


@dataclass(slots=True)
class WeaveState:
    """Process-wide configuration of a weaving engine, as an explicit value."""

    engine_options: dict[str, Any] = field(default_factory=dict)
    chunk_options: dict[str, Any] = field(default_factory=dict)
    hooks: dict[str, Callable[..., str]] = field(default_factory=dict)

    def copy(self) -> WeaveState:
        return WeaveState(
            engine_options=dict(self.engine_options),
            chunk_options=dict(self.chunk_options),
            hooks=dict(self.hooks),
        )

    def updated(
        self,
        *,
        engine_options: Mapping[str, Any] | None = None,
        chunk_options: Mapping[str, Any] | None = None,
        hooks: Mapping[str, Callable[..., str]] | None = None,
    ) -> WeaveState:
        """Return a copy with the given mappings merged over the current values."""
        state = self.copy()
        state.engine_options.update(engine_options or {})
        state.chunk_options.update(chunk_options or {})
        state.hooks.update(hooks or {})
        return state


@runtime_checkable
class WeavingEngine(Protocol):
    """Executes embedded code and writes the woven Markdown."""

    state: WeaveState

    def weave(
        self,
        input_path: Path,
        output_path: Path,
        *,
        namespace: MutableMapping[str, Any],
        base_dir: Path,
        quiet: bool,
        encoding: str,
    ) -> Path: ...

    def spin(self, script_path: Path, *, encoding: str) -> Path: ...

    def reset_meta(self, kind: type | None = None) -> list[Any]: ...


@dataclass(slots=True)
class WeaveResult:
    """Outcome of the weaving stage."""

    output_path: Path
    runtime: str
    dependencies: DependencyMetadata
    cache_dir: Path | None


@contextmanager
def scoped_weave_state(engine: WeavingEngine, state: WeaveState) -> Iterator[WeaveState]:
    """Install ``state`` on ``engine`` and restore the previous state on exit."""
    snapshot = engine.state
    engine.state = state
    try:
        yield state
    finally:
        engine.state = snapshot


@contextmanager
def injected_metadata(
    namespace: MutableMapping[str, Any],
    metadata: Metadata,
    emitter: DiagnosticEmitter | None = None,
) -> Iterator[bool]:
    """Expose ``metadata`` to executed code unless the name is already taken."""
    if METADATA_VARIABLE in namespace:
        warning = MetadataNameCollisionWarning(
            "'metadata' object already exists in the execution namespace "
            "so it won't be accessible while weaving"
        )
        ensure_emitter(emitter).warning(str(warning))
        yield False
        return

    namespace[METADATA_VARIABLE] = metadata
    try:
        yield True
    finally:
        namespace.pop(METADATA_VARIABLE, None)


def resolve_runtime(requested: str | None, metadata: Mapping[str, Any]) -> str:
    """Resolve the runtime mode: explicit value, else front matter, else static."""
    if requested is None or requested == "auto":
        hinted = metadata.get("runtime")
        if hinted is not None and str(hinted).strip():
            return str(hinted).strip()
        return "static"
    return requested


def build_weave_state(
    base: WeaveState,
    output_format: OutputFormat,
    *,
    input_name: str,
    files_dir: Path,
    base_dir: Path,
    runtime: str,
) -> tuple[WeaveState, Path]:
    """Derive the engine state used while weaving for ``output_format``.

    Returns the state and the absolute chunk cache directory.
    """
    target = output_format.to
    figures_dir = _relative_to_base(files_dir, base_dir) + f"/figure-{target}/"
    cache_path = cache_dir_name(Path(input_name), target)

    state = base.updated(
        engine_options={
            "litdown.to": target,
            "litdown.keep_md": output_format.keep_md,
            "litdown.version": WEAVE_PROTOCOL_VERSION,
            "litdown.runtime": runtime,
        },
        chunk_options={
            "tidy": False,
            "error": False,
            "fig_path": figures_dir,
            "cache_path": cache_path,
        },
    )
    overrides = output_format.weave
    state = state.updated(
        engine_options=overrides.engine_options,
        chunk_options=overrides.chunk_options,
        hooks=overrides.hooks,
    )
    return state, base_dir / cache_path


def _relative_to_base(path: Path, base_dir: Path) -> str:
    try:
        return Path(os.path.relpath(path, base_dir)).as_posix()
    except ValueError:  # pragma: no cover - different drives on Windows
        return path.as_posix()


def check_compatibility(
    output_format: OutputFormat,
    output_file: Path,
    dependencies: DependencyMetadata,
    runtime: str,
) -> None:
    """Reject HTML-only content or interactive runtimes for non-HTML targets.

    The HTML content check always runs before the runtime check.
    """
    if is_html_target(output_format.to) or output_file.suffix.lower() == ".html":
        return
    if dependencies.has_html_dependencies:
        raise CompatibilityError(
            CompatibilityError.HTML_CONTENT,
            f"Functions that produce HTML output found in document targeting "
            f"{output_format.to} output. Please change the output type of this document to HTML.",
        )
    if runtime != "static":
        raise CompatibilityError(
            CompatibilityError.NON_STATIC_RUNTIME,
            f"Runtime '{runtime}' is not supported for {output_format.to} output. "
            "Please change the output type of this document to HTML.",
        )


def weave_document(
    engine: WeavingEngine,
    *,
    knit_input: Path,
    knit_output: Path,
    output_format: OutputFormat,
    output_file: Path,
    files_dir: Path,
    base_dir: Path,
    input_name: str,
    metadata: Metadata,
    runtime: str,
    namespace: MutableMapping[str, Any],
    quiet: bool,
    encoding: str,
    emitter: DiagnosticEmitter | None = None,
) -> WeaveResult:
    """Run the weaving engine under a scoped state and validate its side channel."""
    emitter = ensure_emitter(emitter)
    state, cache_dir = build_weave_state(
        engine.state,
        output_format,
        input_name=input_name,
        files_dir=files_dir,
        base_dir=base_dir,
        runtime=runtime,
    )

    engine.reset_meta()
    try:
        with scoped_weave_state(engine, state), injected_metadata(namespace, metadata, emitter):
            woven = engine.weave(
                knit_input,
                knit_output,
                namespace=namespace,
                base_dir=base_dir,
                quiet=quiet,
                encoding=encoding,
            )

        embedded = list(engine.reset_meta(EmbeddedWarning))
        for warning in embedded:
            emitter.warning(f"Warning: {warning}")
        entries = engine.reset_meta()
    finally:
        engine.reset_meta()

    dependencies = DependencyMetadata(entries=entries, warnings=embedded)
    logger.debug(
        "weaving produced %s with %d side-channel entries", woven, len(dependencies.entries)
    )
    check_compatibility(output_format, output_file, dependencies, runtime)
    return WeaveResult(
        output_path=woven,
        runtime=runtime,
        dependencies=dependencies,
        cache_dir=cache_dir,
    )


__all__ = [
    "METADATA_VARIABLE",
    "WEAVE_PROTOCOL_VERSION",
    "DependencyMetadata",
    "HtmlDependency",
    "RuntimeMode",
    "WeaveOverrides",
    "WeaveResult",
    "WeaveState",
    "WeavingEngine",
    "build_weave_state",
    "check_compatibility",
    "injected_metadata",
    "resolve_runtime",
    "scoped_weave_state",
    "weave_document",
]
