"""Resolution of document metadata and caller overrides into one output format."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping, Sequence
import copy
from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any

from .config import DEFAULT_FORMAT
from .formats import OutputFormat, create_output_format
from .metadata import (
    Metadata,
    citeproc_required,
    declared_format_options,
    declared_output_formats,
    parse_metadata,
)
from .utils import read_text_utf8


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResolvedConfiguration:
    """Everything the later stages read from the resolver."""

    output_format: OutputFormat
    metadata: Metadata
    citeproc: bool


def merge_options(base: Mapping[str, Any], overrides: Mapping[str, Any] | None) -> dict[str, Any]:
    """Recursively merge ``overrides`` on top of ``base`` without mutating either."""
    merged: dict[str, Any] = copy.deepcopy(dict(base))

    def _merge(target: MutableMapping[str, Any], source: Mapping[str, Any]) -> None:
        for key, value in source.items():
            existing = target.get(key)
            if isinstance(existing, MutableMapping) and isinstance(value, Mapping):
                nested: dict[str, Any] = dict(existing)
                _merge(nested, value)
                target[key] = nested
                continue
            target[key] = copy.deepcopy(value)

    _merge(merged, overrides or {})
    return merged


def resolve_format_name(
    requested: str | None, metadata: Mapping[str, Any], default: str = DEFAULT_FORMAT
) -> str:
    """Pick the format name: explicit request, then front matter, then ``default``."""
    if requested:
        return requested
    declared = declared_output_formats(metadata)
    if declared:
        return declared[0]
    return default


def resolve_output_format(
    metadata: Mapping[str, Any],
    requested: str | OutputFormat | None,
    output_options: Mapping[str, Any] | None = None,
    *,
    default: str = DEFAULT_FORMAT,
) -> OutputFormat:
    """Return a concrete `OutputFormat`; descriptors passed by the caller are kept verbatim."""
    if isinstance(requested, OutputFormat):
        return requested
    name = resolve_format_name(requested if isinstance(requested, str) else None, metadata, default)
    options = merge_options(declared_format_options(metadata, name), output_options)
    logger.debug("resolved output format %s with options %s", name, sorted(options))
    return create_output_format(name, options)


def resolve_configuration(
    lines: Sequence[str],
    requested: str | OutputFormat | None,
    output_options: Mapping[str, Any] | None = None,
    *,
    default: str = DEFAULT_FORMAT,
) -> ResolvedConfiguration:
    """Extract metadata from ``lines`` and resolve the output format for it."""
    metadata = parse_metadata(lines)
    output_format = resolve_output_format(metadata, requested, output_options, default=default)
    return ResolvedConfiguration(
        output_format=output_format,
        metadata=metadata,
        citeproc=citeproc_required(metadata, lines),
    )


def enumerate_output_formats(input_path: Path, encoding: str | None = "utf-8") -> list[str] | None:
    """Return the format names declared by the document at ``input_path``."""
    lines = read_text_utf8(Path(input_path), encoding).split("\n")
    return declared_output_formats(parse_metadata(lines))


__all__ = [
    "ResolvedConfiguration",
    "enumerate_output_formats",
    "merge_options",
    "resolve_configuration",
    "resolve_format_name",
    "resolve_output_format",
]
