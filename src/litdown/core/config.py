"""Configuration models used by the renderer.

ConverterConfig

`pandoc` (`Path | None`)
: Explicit Pandoc executable. When omitted the `LITDOWN_PANDOC` environment
  variable is consulted, then the `PATH`.

`minimum_version` (`str`)
: Oldest Pandoc release accepted by the renderer. Older binaries are treated
  as missing so that a `ConfigurationError` surfaces before any file is
  touched.

`extra_args` (`list[str]`)
: Arguments appended to every converter invocation, after the format's own
  arguments.
"""

from __future__ import annotations

import os
from pathlib import Path
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator


PANDOC_ENV_VAR = "LITDOWN_PANDOC"
REQUIRED_PANDOC_VERSION = "2.11"
DEFAULT_FORMAT = "html_document"

_VERSION_RE = re.compile(r"^\d+(\.\d+)*$")


class ConverterConfig(BaseModel):
    """Settings controlling discovery of the Pandoc converter."""

    model_config = ConfigDict(extra="forbid")

    pandoc: Path | None = None
    minimum_version: str = REQUIRED_PANDOC_VERSION
    extra_args: list[str] = Field(default_factory=list)

    @field_validator("minimum_version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        candidate = value.strip()
        if not _VERSION_RE.match(candidate):
            raise ValueError(f"Invalid version specifier '{value}'.")
        return candidate

    @classmethod
    def from_environment(cls) -> ConverterConfig:
        """Build a configuration honouring ``LITDOWN_PANDOC``."""
        env_binary = os.environ.get(PANDOC_ENV_VAR)
        if env_binary:
            return cls(pandoc=Path(env_binary).expanduser())
        return cls()


def parse_version(value: str) -> tuple[int, ...]:
    """Return a comparable tuple for dotted version strings such as ``3.1.2``."""
    parts: list[int] = []
    for segment in value.strip().split("."):
        digits = re.match(r"\d+", segment)
        if digits is None:
            break
        parts.append(int(digits.group(0)))
    return tuple(parts)


__all__ = [
    "DEFAULT_FORMAT",
    "PANDOC_ENV_VAR",
    "REQUIRED_PANDOC_VERSION",
    "ConverterConfig",
    "parse_version",
]
