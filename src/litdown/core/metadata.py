"""Front-matter parsing and the read-only metadata view handed to hooks."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
import re
from types import MappingProxyType
from typing import Any

import yaml


_FENCE_RE = re.compile(r"^\s*(```|~~~)")
_REFERENCES_RE = re.compile(r"^references:.*$")


@dataclass(slots=True, frozen=True)
class MetadataBlock:
    """A YAML metadata block located in a document (line indices are inclusive)."""

    start: int
    end: int
    data: Mapping[str, Any]


class Metadata(Mapping[str, Any]):
    """Immutable view over merged document metadata."""

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data = MappingProxyType(dict(data or {}))

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Metadata({dict(self._data)!r})"

    @property
    def title(self) -> str | None:
        return _coerce_text(self._data.get("title"))

    @property
    def authors(self) -> list[str]:
        raw = self._data.get("author")
        if raw is None:
            return []
        if isinstance(raw, str):
            return [raw]
        if isinstance(raw, Sequence):
            return [str(item) for item in raw if isinstance(item, str | int | float)]
        return []

    @property
    def date(self) -> str | None:
        return _coerce_text(self._data.get("date"))

    @property
    def bibliography(self) -> Any:
        return self._data.get("bibliography")

    @property
    def runtime(self) -> str | None:
        return _coerce_text(self._data.get("runtime"))

    @property
    def output(self) -> Any:
        return self._data.get("output")

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)


def _coerce_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime | date):
        return value.isoformat()
    candidate = str(value).strip()
    return candidate or None


def split_front_matter(source: str) -> tuple[dict[str, Any], str]:
    """Split YAML front matter from Markdown content, returning metadata and body."""
    candidate = source.lstrip("\ufeff")
    lines = candidate.splitlines()
    if not lines or lines[0].strip() != "---":
        return {}, source

    front_matter_lines: list[str] = []
    closing_index: int | None = None
    for idx, line in enumerate(lines[1:], start=1):
        stripped = line.strip()
        if stripped in {"---", "..."}:
            closing_index = idx
            break
        front_matter_lines.append(line)

    if closing_index is None:
        return {}, source

    raw_block = "\n".join(front_matter_lines)
    try:
        metadata = yaml.safe_load(raw_block) or {}
    except yaml.YAMLError:
        return {}, source

    if not isinstance(metadata, dict):
        metadata = {}

    body = "\n".join(lines[closing_index + 1 :])
    if source.endswith("\n"):
        body += "\n"
    return metadata, body


def iter_metadata_blocks(lines: Sequence[str]) -> Iterator[MetadataBlock]:
    """Yield every YAML metadata block outside fenced code.

    A block opens with ``---`` at the top of the document or after a blank
    line, must not be followed by a blank line, and closes with ``---`` or
    ``...``. Blocks that do not parse into a mapping are ignored.
    """
    in_fence = False
    index = 0
    total = len(lines)
    while index < total:
        line = lines[index]
        if _FENCE_RE.match(line):
            in_fence = not in_fence
            index += 1
            continue
        opens = (
            not in_fence
            and line.rstrip() == "---"
            and (index == 0 or not lines[index - 1].strip())
            and index + 1 < total
            and lines[index + 1].strip() != ""
        )
        if opens:
            closing = next(
                (
                    candidate
                    for candidate in range(index + 1, total)
                    if lines[candidate].rstrip() in {"---", "..."}
                ),
                None,
            )
            if closing is not None:
                try:
                    data = yaml.safe_load("\n".join(lines[index + 1 : closing]))
                except yaml.YAMLError:
                    data = None
                if isinstance(data, dict):
                    yield MetadataBlock(start=index, end=closing, data=data)
                    index = closing + 1
                    continue
        index += 1


def parse_metadata(lines: Sequence[str]) -> Metadata:
    """Merge every metadata block of a document; the first value of a key wins."""
    merged: dict[str, Any] = {}
    for block in iter_metadata_blocks(lines):
        for key, value in block.data.items():
            merged.setdefault(str(key), value)
    return Metadata(merged)


def citeproc_required(metadata: Mapping[str, Any], lines: Sequence[str] | None = None) -> bool:
    """Return True when the document references a bibliography."""
    if metadata.get("bibliography") is not None or metadata.get("references") is not None:
        return True
    return any(_REFERENCES_RE.match(line) for line in lines or ())


def declared_output_formats(metadata: Mapping[str, Any]) -> list[str] | None:
    """Return the format names listed under ``output`` in declaration order."""
    raw = metadata.get("output")
    if raw is None:
        return None
    names: list[str] = []
    if isinstance(raw, str):
        names.append(raw.strip())
    elif isinstance(raw, Mapping):
        names.extend(str(key).strip() for key in raw)
    elif isinstance(raw, Sequence):
        for entry in raw:
            if isinstance(entry, str):
                names.append(entry.strip())
            elif isinstance(entry, Mapping):
                names.extend(str(key).strip() for key in entry)
    cleaned = [name for name in names if name]
    return cleaned or None


def declared_format_options(metadata: Mapping[str, Any], name: str) -> dict[str, Any]:
    """Return the options declared in front matter for the format ``name``."""
    raw = metadata.get("output")
    candidates: list[Mapping[str, Any]] = []
    if isinstance(raw, Mapping):
        candidates.append(raw)
    elif isinstance(raw, Sequence) and not isinstance(raw, str):
        candidates.extend(entry for entry in raw if isinstance(entry, Mapping))
    for mapping in candidates:
        if name in mapping:
            options = mapping[name]
            if isinstance(options, Mapping):
                return dict(options)
            return {}
    return {}


def md_header_from_front_matter(metadata: Metadata) -> list[str]:
    """Build a plain Markdown header (title, authors, date) from metadata."""
    header: list[str] = []
    if metadata.title is not None:
        header.append(f"# {metadata.title}")
    header.extend(f"{author}  " for author in metadata.authors)
    if metadata.date is not None:
        header.append(f"{metadata.date}  ")
    return header


def synthesized_metadata_block(title: str, author: str, when: str) -> str:
    """Render a YAML metadata block for documents without their own front matter."""
    payload = yaml.safe_dump(
        {"title": title, "author": author, "date": when},
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
    return f"\n---\n{payload}---\n"


__all__ = [
    "Metadata",
    "MetadataBlock",
    "citeproc_required",
    "declared_format_options",
    "declared_output_formats",
    "iter_metadata_blocks",
    "md_header_from_front_matter",
    "parse_metadata",
    "split_front_matter",
    "synthesized_metadata_block",
]
