"""Staging of auxiliary assets into a document's supporting-files directory."""

from __future__ import annotations

import logging
from pathlib import Path
import shutil

from .diagnostics import DiagnosticEmitter, ensure_emitter


logger = logging.getLogger(__name__)


def materialize_supporting_files(
    source_dir: Path | str,
    files_dir: Path | str,
    rename_to: str | None = None,
    *,
    emitter: DiagnosticEmitter | None = None,
) -> Path:
    """Copy ``source_dir`` under ``files_dir`` once and return the target directory.

    The directory is first copied under its own base name, then renamed to
    ``rename_to`` when given. When either the staged or the final name already
    exists nothing is copied, so repeated calls for the same asset are cheap
    and return the same path. The returned path is suitable for building
    ``href``/``src`` references relative to the output document.
    """
    source = Path(source_dir)
    files_root = Path(files_dir)
    files_root.mkdir(parents=True, exist_ok=True)

    target_stage_dir = files_root / source.name
    target_dir = files_root / (rename_to if rename_to is not None else source.name)

    copied = False
    if not target_dir.exists() and not target_stage_dir.exists():
        shutil.copytree(source, target_stage_dir)
        if rename_to is not None and target_stage_dir != target_dir:
            target_stage_dir.rename(target_dir)
        copied = True
        logger.debug("staged supporting files %s -> %s", source, target_dir)

    ensure_emitter(emitter).event(
        "supporting_files",
        {"source": str(source), "target": str(target_dir), "copied": copied},
    )
    return target_dir


__all__ = ["materialize_supporting_files"]
