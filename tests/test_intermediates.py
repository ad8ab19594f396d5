from pathlib import Path

import pytest

from litdown.core.intermediates import IntermediateSet


def test_add_returns_path_and_deduplicates(tmp_path: Path) -> None:
    tracked = IntermediateSet()
    target = tmp_path / "doc.knit.md"

    assert tracked.add(target) is target
    tracked.add(tmp_path / "." / "doc.knit.md")

    assert len(tracked) == 1
    assert target in tracked


def test_refuses_protected_input(tmp_path: Path) -> None:
    source = tmp_path / "doc.pmd"
    source.write_text("content", encoding="utf-8")
    tracked = IntermediateSet(protected=[source])

    with pytest.raises(ValueError):
        tracked.add(source)
    assert source not in tracked


def test_cleanup_removes_files_and_directories_once(tmp_path: Path) -> None:
    file_path = tmp_path / "doc.utf8.md"
    file_path.write_text("text", encoding="utf-8")
    directory = tmp_path / "doc_files"
    (directory / "nested").mkdir(parents=True)
    (directory / "nested" / "asset.css").write_text("", encoding="utf-8")
    missing = tmp_path / "never-created.md"

    tracked = IntermediateSet()
    for path in (file_path, directory, missing):
        tracked.add(path)

    removed = tracked.cleanup()

    assert not file_path.exists()
    assert not directory.exists()
    assert set(removed) == {file_path, directory}
    assert tracked.cleaned
    assert tracked.cleanup() == []


def test_cleanup_disabled_keeps_files(tmp_path: Path) -> None:
    file_path = tmp_path / "doc.knit.md"
    file_path.write_text("text", encoding="utf-8")
    tracked = IntermediateSet(clean=False)
    tracked.add(file_path)

    assert tracked.cleanup() == []
    assert file_path.exists()


def test_add_after_cleanup_is_rejected(tmp_path: Path) -> None:
    tracked = IntermediateSet()
    tracked.cleanup()

    with pytest.raises(RuntimeError):
        tracked.add(tmp_path / "late.md")


def test_discarded_path_survives_cleanup(tmp_path: Path) -> None:
    kept = tmp_path / "doc.knit.md"
    kept.write_text("woven", encoding="utf-8")
    tracked = IntermediateSet()
    tracked.add(kept)
    tracked.discard(kept)

    tracked.cleanup()

    assert kept.exists()


def test_context_manager_cleans_on_failure(tmp_path: Path) -> None:
    generated = tmp_path / "doc.utf8.md"

    with pytest.raises(RuntimeError, match="boom"), IntermediateSet() as tracked:
        generated.write_text("text", encoding="utf-8")
        tracked.add(generated)
        raise RuntimeError("boom")

    assert not generated.exists()
