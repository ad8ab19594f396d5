"""Identity converter copying the canonical Markdown to the output path."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import shutil

from litdown.core.conversion import ConverterRun


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PassthroughConverter:
    """No-op converter: the output is the normalized input, byte for byte."""

    name: str = "passthrough"

    def ensure_available(self) -> None:
        return

    def convert(self, run: ConverterRun) -> None:
        run.output_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(run.input_path, run.output_path)
        logger.debug("copied %s to %s", run.input_path, run.output_path)


__all__ = ["PassthroughConverter"]
