"""Path and text helpers shared by the pipeline stages."""

from __future__ import annotations

import codecs
from pathlib import Path


HTML_TARGETS = frozenset(
    {"html", "html4", "html5", "s5", "slidy", "slideous", "dzslides", "revealjs"}
)
LITERATE_SUFFIXES = frozenset({".pmd", ".pymd"})
SCRIPT_SUFFIXES = frozenset({".py"})
TEXT_SUFFIXES = frozenset({".md", ".markdown", ".txt"})


def file_name_without_spaces(name: str) -> str:
    """Replace every space of a file name with a dash."""
    return name.replace(" ", "-")


def file_with_ext(path: Path, ext: str) -> Path:
    """Swap the final suffix of ``path`` for ``ext`` (given without the dot)."""
    return path.with_name(f"{path.stem}.{ext}")


def file_with_meta_ext(path: Path, meta_ext: str, ext: str) -> Path:
    """Return ``<stem>.<meta_ext>.<ext>`` next to ``path``."""
    return path.with_name(f"{path.stem}.{meta_ext}.{ext}")


def files_dir_name(output_file: Path) -> str:
    """Return the supporting-files directory name associated with an output file."""
    return f"{output_file.stem}_files"


def cache_dir_name(input_file: Path, target: str) -> str:
    """Return the chunk cache directory (relative) for an input and conversion target."""
    return f"{input_file.stem}_cache/{target}/"


def is_html_target(target: str) -> bool:
    """Return True when the conversion target belongs to the HTML family."""
    base = target.split("+", 1)[0].split("-", 1)[0].lower()
    return base in HTML_TARGETS


def normalise_encoding(encoding: str | None) -> str:
    """Return a canonical codec name, defaulting to UTF-8."""
    if not encoding or encoding in {"native.enc", "native"}:
        return "utf-8"
    try:
        return codecs.lookup(encoding).name
    except LookupError as exc:
        raise ValueError(f"Unknown text encoding '{encoding}'.") from exc


def read_text_utf8(path: Path, encoding: str | None = "utf-8") -> str:
    """Read a file in ``encoding`` and return its text with a canonical line ending."""
    raw = path.read_bytes()
    text = raw.decode(normalise_encoding(encoding))
    text = text.lstrip("\ufeff")
    return text.replace("\r\n", "\n").replace("\r", "\n")


def write_text_utf8(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8", newline="\n")
    return path


def resolve_against(base_dir: Path, candidate: str | Path) -> Path:
    """Resolve ``candidate`` relative to ``base_dir`` unless it is already absolute."""
    path = Path(candidate).expanduser()
    if path.is_absolute():
        return path
    return base_dir / path


__all__ = [
    "HTML_TARGETS",
    "LITERATE_SUFFIXES",
    "SCRIPT_SUFFIXES",
    "TEXT_SUFFIXES",
    "cache_dir_name",
    "file_name_without_spaces",
    "file_with_ext",
    "file_with_meta_ext",
    "files_dir_name",
    "is_html_target",
    "normalise_encoding",
    "read_text_utf8",
    "resolve_against",
    "write_text_utf8",
]
