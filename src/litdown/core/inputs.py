"""Input normalisation: whitespace-free working copy, spun scripts, base directory."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import getpass
import logging
from pathlib import Path
import shutil

from .exceptions import ConfigurationError, NameCollisionError
from .intermediates import IntermediateSet
from .metadata import synthesized_metadata_block
from .utils import (
    LITERATE_SUFFIXES,
    SCRIPT_SUFFIXES,
    TEXT_SUFFIXES,
    file_name_without_spaces,
    file_with_meta_ext,
    normalise_encoding,
)
from .weaving import WeavingEngine


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EnvironmentFacts:
    """Ambient facts used to synthesise metadata for spun scripts."""

    user: str
    now: datetime

    @classmethod
    def current(cls) -> EnvironmentFacts:
        try:
            user = getpass.getuser()
        except (KeyError, OSError):
            user = "unknown"
        return cls(user=user, now=datetime.now())

    def date_string(self) -> str:
        return self.now.strftime("%a %b %d %H:%M:%S %Y")


@dataclass(frozen=True, slots=True)
class NormalizedInput:
    """Working view of a render input with every derived location resolved."""

    source: Path
    working: Path
    base_dir: Path
    knit_input: Path
    knit_output: Path
    utf8_input: Path
    intermediates_dir: Path | None

    @property
    def name(self) -> str:
        """Base name of the working file (whitespace-free)."""
        return self.working.name

    @property
    def suffix(self) -> str:
        return self.working.suffix.lower()

    @property
    def md_input(self) -> bool:
        return self.suffix in {".md", ".markdown"}

    @property
    def text_input(self) -> bool:
        return self.suffix in TEXT_SUFFIXES

    @property
    def executable(self) -> bool:
        return self.suffix in SCRIPT_SUFFIXES | LITERATE_SUFFIXES


def intermediates_location(name: str, base_dir: Path, intermediates_dir: Path | None) -> Path:
    root = intermediates_dir if intermediates_dir is not None else base_dir
    return root / name


def normalize_input(
    input_path: Path | str,
    *,
    intermediates: IntermediateSet,
    intermediates_dir: Path | str | None = None,
    engine: WeavingEngine | None = None,
    environment: EnvironmentFacts | None = None,
    encoding: str | None = "utf-8",
) -> NormalizedInput:
    """Prepare ``input_path`` for rendering without touching the original file."""
    source = Path(input_path).expanduser().absolute()
    if not source.is_file():
        raise FileNotFoundError(f"Input file '{source}' does not exist.")

    inter_dir: Path | None = None
    if intermediates_dir is not None:
        inter_dir = Path(intermediates_dir).expanduser().absolute()
        inter_dir.mkdir(parents=True, exist_ok=True)

    working = source
    if " " in source.name:
        target = intermediates_location(
            file_name_without_spaces(source.name), source.parent, inter_dir
        )
        if target.exists():
            raise NameCollisionError(
                "The name of the input file cannot contain spaces (attempted to copy to a "
                f"version without spaces '{target}' however that file already exists)"
            )
        shutil.copy2(source, target)
        intermediates.add(target)
        working = target
        logger.debug("copied %s to whitespace-free %s", source, target)

    base_dir = working.parent
    codec = normalise_encoding(encoding)

    knit_input = working
    if working.suffix.lower() in SCRIPT_SUFFIXES:
        if engine is None:
            raise ConfigurationError("A weaving engine is required to render Python scripts.")
        spin_input = intermediates_location(
            file_with_meta_ext(working, "spin", "py").name, base_dir, inter_dir
        )
        shutil.copy2(working, spin_input)
        intermediates.add(spin_input)
        knit_input = engine.spin(spin_input, encoding=codec)
        intermediates.add(knit_input)
        facts = environment or EnvironmentFacts.current()
        # appended last so metadata produced by the spin itself keeps precedence
        block = synthesized_metadata_block(working.name, facts.user, facts.date_string())
        with knit_input.open("a", encoding=codec) as handle:
            handle.write(block)

    knit_output = intermediates.add(
        intermediates_location(file_with_meta_ext(working, "knit", "md").name, base_dir, inter_dir)
    )
    utf8_input = intermediates.add(
        intermediates_location(file_with_meta_ext(working, "utf8", "md").name, base_dir, inter_dir)
    )

    return NormalizedInput(
        source=source,
        working=working,
        base_dir=base_dir,
        knit_input=knit_input,
        knit_output=knit_output,
        utf8_input=utf8_input,
        intermediates_dir=inter_dir,
    )


__all__ = [
    "EnvironmentFacts",
    "NormalizedInput",
    "intermediates_location",
    "normalize_input",
]
