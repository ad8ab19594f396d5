"""Facade exposing the litdown rendering pipeline.

Architecture
: `render` drives a document through normalisation, format resolution,
  weaving, the format hooks and conversion, returning the produced path (or
  paths when several formats are requested).
: `materialize_supporting_files` stages auxiliary assets next to an output
  document; output format hooks use it to ship HTML dependencies.
: Collaborators are protocols (`Converter`, `WeavingEngine`,
  `DiagnosticEmitter`) so embedding code can swap Pandoc or the Python weaver
  for its own implementations.

Usage Example
:
    >>> from pathlib import Path
    >>> from tempfile import TemporaryDirectory
    >>> from litdown.api import render
    >>> with TemporaryDirectory() as tmpdir:
    ...     path = Path(tmpdir) / "notes.md"
    ...     _ = path.write_text("# Notes\\nHello\\n")
    ...     output = render(path, "identity_document", converter="passthrough", quiet=True)
    ...     output.read_text()
    '# Notes\\nHello\\n'
"""

from __future__ import annotations

from litdown.core.formats import (
    OutputFormat,
    available_formats,
    create_output_format,
    register_format,
)
from litdown.core.render import RenderRequest, render_one
from litdown.core.supporting import materialize_supporting_files

from .render import CONVERTERS, create_converter, render


__all__ = [
    "CONVERTERS",
    "OutputFormat",
    "RenderRequest",
    "available_formats",
    "create_converter",
    "create_output_format",
    "materialize_supporting_files",
    "register_format",
    "render",
    "render_one",
]
