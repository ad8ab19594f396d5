"""Pandoc-backed format converter."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
import re
import shutil
import subprocess

from litdown.core.config import ConverterConfig, parse_version
from litdown.core.conversion import ConverterRun, path_argument
from litdown.core.exceptions import ConfigurationError, ConversionError


logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"^pandoc(?:\.exe)?\s+(\d+(?:\.\d+)*)", re.IGNORECASE)


@dataclass(slots=True)
class PandocConverter:
    """Invoke the ``pandoc`` executable for every conversion."""

    config: ConverterConfig = field(default_factory=ConverterConfig.from_environment)
    name: str = "pandoc"
    _binary: Path | None = field(default=None, init=False, repr=False)
    _version: tuple[int, ...] | None = field(default=None, init=False, repr=False)

    def locate(self) -> Path | None:
        """Return the Pandoc executable, honouring explicit configuration first."""
        if self._binary is not None:
            return self._binary
        candidate = self.config.pandoc
        if candidate is not None:
            if candidate.is_file():
                self._binary = candidate
                return candidate
            found = shutil.which(str(candidate))
        else:
            found = shutil.which("pandoc")
        self._binary = Path(found) if found else None
        return self._binary

    def version(self) -> tuple[int, ...] | None:
        """Return the installed Pandoc version, or ``None`` when it cannot be read."""
        if self._version is not None:
            return self._version
        binary = self.locate()
        if binary is None:
            return None
        try:
            process = subprocess.run(
                [str(binary), "--version"],
                check=False,
                capture_output=True,
                text=True,
            )
        except OSError:
            logger.debug("unable to execute %s --version", binary, exc_info=True)
            return None
        first_line = process.stdout.splitlines()[0] if process.stdout else ""
        match = _VERSION_RE.match(first_line.strip())
        if match is None:
            return None
        self._version = parse_version(match.group(1))
        return self._version

    def ensure_available(self) -> None:
        binary = self.locate()
        if binary is None:
            raise ConfigurationError(
                "Pandoc is required to render documents and was not found. "
                f"Install Pandoc {self.config.minimum_version} or later, or point "
                "LITDOWN_PANDOC at the executable."
            )
        installed = self.version()
        required = parse_version(self.config.minimum_version)
        if installed is None or installed < required:
            found = ".".join(str(part) for part in installed) if installed else "unknown"
            raise ConfigurationError(
                f"Pandoc version {self.config.minimum_version} or higher is required "
                f"(found {found} at {binary})."
            )

    def build_command(self, run: ConverterRun) -> list[str]:
        binary = self.locate()
        if binary is None:
            raise ConfigurationError("Pandoc executable not found.")
        command = [
            str(binary),
            path_argument(run.input_path),
            "--from",
            run.from_,
            "--to",
            run.to,
            "--output",
            path_argument(run.output_path),
        ]
        if run.citeproc:
            command.append("--citeproc")
        command.extend(run.args)
        command.extend(self.config.extra_args)
        return command

    def convert(self, run: ConverterRun) -> None:
        command = self.build_command(run)
        logger.debug("pandoc command: %s", " ".join(command))
        try:
            process = subprocess.run(
                command,
                check=False,
                capture_output=True,
                text=True,
                cwd=run.base_dir,
            )
        except OSError as exc:
            raise ConversionError(f"Failed to execute pandoc: {exc}") from exc

        if process.returncode != 0:
            raise ConversionError(
                f"pandoc document conversion failed with error {process.returncode}",
                process.stderr or "",
            )
        if process.stderr and run.verbose:
            for line in process.stderr.splitlines():
                if line.strip():
                    logger.info("pandoc: %s", line.rstrip())


__all__ = ["PandocConverter"]
