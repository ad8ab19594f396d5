"""Console summaries printed after a render."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from .state import CLIState


def _format_path(path: Path) -> str:
    """Show ``path`` relative to the working directory when it lives below it."""
    resolved = path.resolve()
    try:
        return str(resolved.relative_to(Path.cwd()))
    except ValueError:
        return str(resolved)


def _format_size(path: Path) -> str:
    try:
        size = path.stat().st_size
    except OSError:
        return "-"
    for unit in ("B", "KiB", "MiB"):
        if size < 1024 or unit == "MiB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} MiB"


def present_outputs(state: CLIState, outputs: Sequence[Path]) -> None:
    """Print a table of the artifacts produced by a multi-format render."""
    if state.quiet or len(outputs) < 2:
        return

    from rich import box
    from rich.table import Table

    table = Table(
        title="Rendered outputs",
        box=box.SQUARE,
        show_edge=True,
        header_style="bold cyan",
    )
    table.add_column("Format")
    table.add_column("File")
    table.add_column("Size", justify="right")
    for path in outputs:
        table.add_row(path.suffix.lstrip(".") or "-", _format_path(path), _format_size(path))
    state.console.print(table)


__all__ = ["present_outputs"]
