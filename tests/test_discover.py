from pathlib import Path

from imagist.discover import discover_inputs


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"")
    return path


def test_discover_filters_extensions_and_sorts(tmp_path: Path) -> None:
    b = _touch(tmp_path / "b.JPG")
    a = _touch(tmp_path / "a.png")
    _touch(tmp_path / "notes.txt")
    _touch(tmp_path / "nested" / "c.gif")

    assert discover_inputs(tmp_path) == [a, b]
    assert discover_inputs(tmp_path, extensions=["gif"], recursive=True) == [tmp_path / "nested" / "c.gif"]


def test_discover_skips_excluded_subtree(tmp_path: Path) -> None:
    source = _touch(tmp_path / "photo.jpg")
    _touch(tmp_path / "output" / "photo.jpg")

    assert discover_inputs(tmp_path, recursive=True, exclude=tmp_path / "output") == [source]


def test_discover_single_file_and_missing_path(tmp_path: Path) -> None:
    photo = _touch(tmp_path / "photo.jpeg")
    assert discover_inputs(photo) == [photo]
    assert discover_inputs(_touch(tmp_path / "readme.md")) == []
    assert discover_inputs(tmp_path / "missing") == []
