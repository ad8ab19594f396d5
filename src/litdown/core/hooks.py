"""Pre- and post-processing hooks attached to output formats.

Architecture
: A `PreProcessor` runs after weaving and before conversion. It receives the
  document metadata, the canonical UTF-8 input, the resolved runtime, the
  dependency metadata collected from the weaving engine, and the supporting
  files and output directories. It returns extra converter arguments that are
  appended to the format's base argument list.
: A `PostProcessor` runs after conversion and returns the final output path,
  which may differ from the converter's output when the hook relocates or
  transforms the artifact.

Hooks may write additional files but must not alter weaving-engine state.
They are invoked exclusively through `run_pre_processor` and
`run_post_processor`; an absent hook is a no-op.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable


if TYPE_CHECKING:  # pragma: no cover - type checking only
    from .metadata import Metadata
    from .weaving import DependencyMetadata


logger = logging.getLogger(__name__)


@runtime_checkable
class PreProcessor(Protocol):
    """Contribute converter arguments before conversion."""

    def pre_process(
        self,
        metadata: Metadata,
        input_path: Path,
        runtime: str,
        dependencies: DependencyMetadata,
        files_dir: Path,
        output_dir: Path,
    ) -> Sequence[str]: ...


@runtime_checkable
class PostProcessor(Protocol):
    """Rewrite or relocate the converted artifact."""

    def post_process(
        self,
        metadata: Metadata,
        input_path: Path,
        output_path: Path,
        clean: bool,
        verbose: bool,
    ) -> Path: ...


@dataclass(frozen=True, slots=True)
class FunctionPreProcessor:
    """Adapt a plain callable to the `PreProcessor` protocol."""

    func: Callable[..., Sequence[str] | None]

    def pre_process(
        self,
        metadata: Metadata,
        input_path: Path,
        runtime: str,
        dependencies: DependencyMetadata,
        files_dir: Path,
        output_dir: Path,
    ) -> Sequence[str]:
        result = self.func(metadata, input_path, runtime, dependencies, files_dir, output_dir)
        return list(result or [])


@dataclass(frozen=True, slots=True)
class FunctionPostProcessor:
    """Adapt a plain callable to the `PostProcessor` protocol."""

    func: Callable[..., Path | str]

    def post_process(
        self,
        metadata: Metadata,
        input_path: Path,
        output_path: Path,
        clean: bool,
        verbose: bool,
    ) -> Path:
        return Path(self.func(metadata, input_path, output_path, clean, verbose))


def run_pre_processor(
    hook: PreProcessor | None,
    *,
    metadata: Metadata,
    input_path: Path,
    runtime: str,
    dependencies: DependencyMetadata,
    files_dir: Path,
    output_dir: Path,
) -> list[str]:
    """Invoke ``hook`` and return the extra converter arguments it produced."""
    if hook is None:
        return []
    extra = hook.pre_process(metadata, input_path, runtime, dependencies, files_dir, output_dir)
    arguments = [str(argument) for argument in extra or ()]
    logger.debug("pre-processor contributed %d argument(s)", len(arguments))
    return arguments


def run_post_processor(
    hook: PostProcessor | None,
    *,
    metadata: Metadata,
    input_path: Path,
    output_path: Path,
    clean: bool,
    verbose: bool,
) -> Path:
    """Invoke ``hook`` and return the final output path."""
    if hook is None:
        return output_path
    final = Path(hook.post_process(metadata, input_path, output_path, clean, verbose))
    if not final.is_absolute():
        final = output_path.parent / final
    if final != output_path:
        logger.debug("post-processor moved output %s -> %s", output_path, final)
    return final


__all__ = [
    "FunctionPostProcessor",
    "FunctionPreProcessor",
    "PostProcessor",
    "PreProcessor",
    "run_post_processor",
    "run_pre_processor",
]
