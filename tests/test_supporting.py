from pathlib import Path
import shutil
from typing import Any

import pytest

from litdown.core import supporting
from litdown.core.supporting import materialize_supporting_files


class _Recorder:
    debug_enabled = False

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        return

    def error(self, message: str, exc: BaseException | None = None) -> None:
        return

    def event(self, name: str, payload: dict[str, Any]) -> None:
        self.events.append((name, dict(payload)))


@pytest.fixture
def asset_dir(tmp_path: Path) -> Path:
    source = tmp_path / "assets" / "plotly"
    source.mkdir(parents=True)
    (source / "plotly.min.js").write_text("/* plotly */", encoding="utf-8")
    return source


def test_copies_directory_under_files_dir(tmp_path: Path, asset_dir: Path) -> None:
    files_dir = tmp_path / "out" / "report_files"

    target = materialize_supporting_files(asset_dir, files_dir)

    assert target == files_dir / "plotly"
    assert (target / "plotly.min.js").read_text(encoding="utf-8") == "/* plotly */"


def test_rename_to_moves_staged_copy(tmp_path: Path, asset_dir: Path) -> None:
    files_dir = tmp_path / "report_files"

    target = materialize_supporting_files(asset_dir, files_dir, rename_to="plotly-2.0")

    assert target == files_dir / "plotly-2.0"
    assert (target / "plotly.min.js").exists()
    assert not (files_dir / "plotly").exists()


def test_repeated_calls_copy_once(
    tmp_path: Path, asset_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls: list[tuple[Path, Path]] = []
    real_copytree = shutil.copytree

    def counting_copytree(src: Path, dst: Path, *args: Any, **kwargs: Any) -> Any:
        calls.append((Path(src), Path(dst)))
        return real_copytree(src, dst, *args, **kwargs)

    monkeypatch.setattr(supporting.shutil, "copytree", counting_copytree)
    files_dir = tmp_path / "report_files"
    recorder = _Recorder()

    first = materialize_supporting_files(asset_dir, files_dir, "plotly-2.0", emitter=recorder)
    second = materialize_supporting_files(asset_dir, files_dir, "plotly-2.0", emitter=recorder)

    assert first == second
    assert len(calls) == 1
    assert [payload["copied"] for _, payload in recorder.events] == [True, False]
    assert {name for name, _ in recorder.events} == {"supporting_files"}
