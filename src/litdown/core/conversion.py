"""Invocation of the format converter for the resolved output format."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from .diagnostics import DiagnosticEmitter, ensure_emitter
from .formats import OutputFormat
from .utils import file_with_ext


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ConverterRun:
    """One converter invocation."""

    input_path: Path
    to: str
    from_: str
    output_path: Path
    citeproc: bool
    args: tuple[str, ...]
    base_dir: Path
    verbose: bool = False


@runtime_checkable
class Converter(Protocol):
    """Turns canonical Markdown into the target representation."""

    name: str

    def ensure_available(self) -> None:
        """Raise `ConfigurationError` when the converter cannot be used."""
        ...

    def convert(self, run: ConverterRun) -> None:
        """Produce ``run.output_path`` or raise `ConversionError`."""
        ...


def path_argument(value: Any) -> str:
    """Format a path for the converter command line using forward slashes."""
    return str(value).replace("\\", "/")


def bibliography_args(metadata: Mapping[str, Any]) -> list[str]:
    """Forward front-matter bibliographies explicitly to the converter.

    Passing them on the command line avoids YAML reading identifiers such as
    ``2019.bib`` as numbers.
    """
    bibliography = metadata.get("bibliography")
    if bibliography is None:
        return []
    entries: Sequence[Any]
    if isinstance(bibliography, str | Path | int | float):
        entries = [bibliography]
    elif isinstance(bibliography, Sequence):
        entries = list(bibliography)
    else:
        return []
    args: list[str] = []
    for entry in entries:
        args.extend(["--bibliography", path_argument(entry)])
    return args


def invoke_conversion(
    converter: Converter,
    output_format: OutputFormat,
    *,
    input_path: Path,
    output_file: Path,
    metadata: Mapping[str, Any],
    citeproc: bool,
    base_dir: Path,
    quiet: bool = False,
    emitter: DiagnosticEmitter | None = None,
) -> Path:
    """Run the optional auxiliary TeX conversion, then the main conversion."""
    emitter = ensure_emitter(emitter)
    options = output_format.converter
    args = (*options.args, *bibliography_args(metadata))

    targets: list[Path] = []
    if options.keep_tex:
        targets.append(file_with_ext(output_file, "tex"))
    targets.append(output_file)

    for target in targets:
        run = ConverterRun(
            input_path=input_path,
            to=options.to,
            from_=options.from_,
            output_path=target,
            citeproc=citeproc,
            args=args,
            base_dir=base_dir,
            verbose=not quiet,
        )
        if not quiet:
            emitter.event(
                "converter_run",
                {"converter": converter.name, "to": options.to, "output": str(target)},
            )
        logger.debug("running %s: %s", converter.name, run)
        converter.convert(run)

    return output_file


__all__ = [
    "Converter",
    "ConverterRun",
    "bibliography_args",
    "invoke_conversion",
    "path_argument",
]
