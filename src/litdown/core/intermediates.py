"""Tracking and cleanup of the artifacts produced during a single render."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
import logging
from pathlib import Path
import shutil
from types import TracebackType


logger = logging.getLogger(__name__)


class IntermediateSet:
    """Ordered set of generated paths deleted once when the render exits.

    The set is owned by exactly one render. Paths handed over by the caller as
    primary input are ``protected`` and can never be tracked, so cleanup only
    ever removes files the render itself created.
    """

    def __init__(self, *, clean: bool = True, protected: Iterable[Path] = ()) -> None:
        self.clean = clean
        self._paths: dict[Path, None] = {}
        self._protected = {self._key(path) for path in protected}
        self._cleaned = False

    @staticmethod
    def _key(path: Path) -> Path:
        return Path(path).absolute()

    def add(self, path: Path) -> Path:
        """Track ``path`` for deletion and return it unchanged."""
        key = self._key(path)
        if key in self._protected:
            raise ValueError(f"Refusing to track caller-supplied input '{path}' for cleanup.")
        if self._cleaned:
            raise RuntimeError("Cannot track new intermediates after cleanup has run.")
        self._paths.setdefault(key, None)
        return path

    def discard(self, path: Path) -> None:
        """Stop tracking ``path`` so that it survives cleanup."""
        self._paths.pop(self._key(path), None)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, Path):
            return False
        return self._key(path) in self._paths

    def __iter__(self) -> Iterator[Path]:
        return iter(list(self._paths))

    def __len__(self) -> int:
        return len(self._paths)

    @property
    def cleaned(self) -> bool:
        return self._cleaned

    def cleanup(self) -> list[Path]:
        """Delete every tracked path still present on disk; runs at most once."""
        if self._cleaned:
            return []
        self._cleaned = True
        if not self.clean:
            return []

        removed: list[Path] = []
        for path in self._paths:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            elif path.exists() or path.is_symlink():
                path.unlink()
            else:
                continue
            logger.debug("removed intermediate %s", path)
            removed.append(path)
        return removed

    def __enter__(self) -> IntermediateSet:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cleanup()


__all__ = ["IntermediateSet"]
