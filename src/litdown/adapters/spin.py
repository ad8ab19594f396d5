"""Turn plain Python scripts into literate documents.

Lines starting with ``#'`` are prose, ``#+`` (or ``# %%``) starts a new
chunk whose options follow the marker, and every other line is code
collected into ``{python}`` chunks::

    #' # Analysis
    #' Some *prose*.
    #+ setup, echo=False
    import math
    math.pi
"""

from __future__ import annotations

import logging
from pathlib import Path
import re

from litdown.core.utils import normalise_encoding


logger = logging.getLogger(__name__)

_PROSE_RE = re.compile(r"^#' ?(?P<text>.*)$")
_CHUNK_RE = re.compile(r"^(?:#\+|# %%)\s*(?P<options>.*?)\s*$")


def _flush_code(output: list[str], options: str | None, code: list[str]) -> None:
    while code and not code[0].strip():
        code.pop(0)
    while code and not code[-1].strip():
        code.pop()
    if not code and not options:
        return
    header = f"```{{python {options}}}" if options else "```{python}"
    if output and output[-1].strip():
        output.append("")
    output.extend([header, *code, "```", ""])


def spin_text(source: str) -> str:
    """Return the literate Markdown equivalent of the script ``source``."""
    output: list[str] = []
    code: list[str] = []
    options: str | None = None
    in_code = False

    for line in source.splitlines():
        prose = _PROSE_RE.match(line)
        if prose is not None:
            if in_code:
                _flush_code(output, options, code)
                code, options, in_code = [], None, False
            output.append(prose.group("text"))
            continue
        marker = _CHUNK_RE.match(line)
        if marker is not None:
            if in_code:
                _flush_code(output, options, code)
            code, options, in_code = [], marker.group("options") or None, True
            continue
        if not in_code:
            if not line.strip():
                output.append(line)
                continue
            in_code = True
        code.append(line)

    if in_code:
        _flush_code(output, options, code)

    text = "\n".join(output).rstrip("\n")
    return f"{text}\n"


def spin_script(script_path: Path, *, encoding: str | None = "utf-8") -> Path:
    """Spin ``script_path`` into ``<stem>.pmd`` next to it and return that path."""
    codec = normalise_encoding(encoding)
    script = Path(script_path)
    target = script.with_suffix(".pmd")
    source = script.read_text(encoding=codec)
    target.write_text(spin_text(source), encoding=codec)
    logger.debug("spun %s into %s", script, target)
    return target


__all__ = ["spin_script", "spin_text"]
