"""Lightweight wall-clock timers for pipeline stages."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
import logging
import time


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PerfTimer:
    """Accumulate elapsed seconds per named section."""

    sections: dict[str, float] = field(default_factory=dict)

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        started = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - started
            self.sections[name] = self.sections.get(name, 0.0) + elapsed
            logger.debug("%s took %.3fs", name, elapsed)

    def summary(self) -> str:
        return ", ".join(f"{name}={seconds:.3f}s" for name, seconds in self.sections.items())


__all__ = ["PerfTimer"]
