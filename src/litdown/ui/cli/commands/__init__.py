"""CLI command implementations exposed via `litdown.ui.cli`."""

from __future__ import annotations

from .render import render


__all__ = ["render"]
