import subprocess
from pathlib import Path

import pytest
from PIL import Image

from imagist import optimizer
from imagist.backends import magick_backend
from imagist.errors import BackendFailureError, UnsupportedImageTypeError
from imagist.subprocess_utils import subprocess as utils_subprocess


def _noise(path: Path, size: tuple[int, int], image_format: str) -> Path:
    Image.effect_noise(size, 40).convert("RGB").save(path, format=image_format)
    return path


def test_limit_geometry_only_limits_exceeded_dimensions() -> None:
    assert optimizer.limit_geometry(3000, 100, 2816, 2112) == "2816"
    assert optimizer.limit_geometry(100, 3000, 2816, 2112) == "x2112"
    assert optimizer.limit_geometry(3000, 3000, 2816, 2112) == "2816x2112"
    assert optimizer.limit_geometry(2816, 2112, 2816, 2112) == ""


def test_detect_image_format_reads_content_not_suffix(tmp_path: Path) -> None:
    disguised = tmp_path / "really_a_png.jpg"
    Image.new("RGB", (4, 4)).save(disguised, format="PNG")
    assert optimizer.detect_image_format(disguised) == "PNG"


def test_unsupported_types_are_rejected(tmp_path: Path) -> None:
    tiff = tmp_path / "scan.tif"
    Image.new("RGB", (4, 4)).save(tiff, format="TIFF")
    text = tmp_path / "notes.png"
    text.write_text("hello", encoding="utf-8")

    with pytest.raises(UnsupportedImageTypeError):
        optimizer.compress(tiff, engine="pillow")
    with pytest.raises(UnsupportedImageTypeError):
        optimizer.compress(text, engine="pillow")


def test_pillow_engine_downsamples_and_converts_to_jpeg(tmp_path: Path) -> None:
    source = _noise(tmp_path / "huge.bmp", (3000, 200), "BMP")
    dest = tmp_path / "out" / "huge.jpg"

    result = optimizer.compress(source, dest, engine="pillow")

    assert result.image_format == "BMP"
    assert result.output == dest
    assert result.kept_original is False
    assert result.final_bytes < result.original_bytes
    assert result.to_dict()["format"] == "BMP"
    assert result.to_dict()["output"] == str(dest)
    with Image.open(dest) as optimized:
        assert optimized.format == "JPEG"
        assert optimized.size == (2816, 188)


def test_result_is_written_over_source_without_dest(tmp_path: Path) -> None:
    source = _noise(tmp_path / "photo.bmp", (300, 200), "BMP")
    result = optimizer.compress(source, engine="pillow")
    assert result.output == source
    with Image.open(source) as optimized:
        assert optimized.format == "JPEG"


def test_original_bytes_are_kept_when_result_is_not_smaller(tmp_path: Path, monkeypatch) -> None:
    source = tmp_path / "tiny.jpg"
    Image.new("RGB", (8, 8), color="#808080").save(source, format="JPEG", quality=10)
    original = source.read_bytes()

    def _bloated(src: Path, tmp: Path, *_args) -> None:
        tmp.write_bytes(b"\xff" * (len(original) + 100))

    monkeypatch.setattr(optimizer, "_compress_general_pillow", _bloated)
    dest = tmp_path / "kept.jpg"
    result = optimizer.compress(source, dest, engine="pillow")

    assert result.kept_original is True
    assert dest.read_bytes() == original
    assert result.saved_bytes == 0


def test_pillow_engine_keeps_gif_format(tmp_path: Path) -> None:
    source = tmp_path / "anim.gif"
    frames = [Image.effect_noise((64, 64), 60).convert("P") for _ in range(3)]
    frames[0].save(source, save_all=True, append_images=frames[1:])
    dest = tmp_path / "anim_opt.gif"

    result = optimizer.compress(source, dest, engine="pillow")

    assert result.image_format == "GIF"
    with Image.open(dest) as optimized:
        assert optimized.format == "GIF"


def test_external_gif_runs_gifsicle(tmp_path: Path, monkeypatch) -> None:
    source = tmp_path / "a.gif"
    Image.new("P", (16, 16)).save(source)
    calls: list[list[str]] = []

    def _fake_run(cmd, capture_output=True, check=False):
        calls.append(list(cmd))
        Path(cmd[cmd.index("-o") + 1]).write_bytes(b"GIF89a")
        return subprocess.CompletedProcess(cmd, 0, b"", b"")

    monkeypatch.setattr(utils_subprocess, "run", _fake_run)
    result = optimizer.compress(source, tmp_path / "b.gif", engine="external")

    assert calls[0][0] == optimizer.GIFSICLE_BIN
    assert calls[0][1] == str(source)
    assert calls[0][-1] == "-O3"
    assert result.kept_original is False
    assert (tmp_path / "b.gif").read_bytes() == b"GIF89a"


def test_external_general_runs_imagemagick_with_limit(tmp_path: Path, monkeypatch) -> None:
    source = tmp_path / "wide.png"
    Image.new("RGB", (3000, 100)).save(source)
    calls: list[list[str]] = []

    def _fake_run(cmd, capture_output=True, check=False):
        calls.append(list(cmd))
        Path(cmd[-1].split(":", 1)[1]).write_bytes(b"J")
        return subprocess.CompletedProcess(cmd, 0, b"", b"")

    toolchain = magick_backend.MagickToolchain(convert=["convert"], identify=["identify"])
    monkeypatch.setattr(optimizer, "detect_toolchain", lambda: toolchain)
    monkeypatch.setattr(utils_subprocess, "run", _fake_run)

    optimizer.compress(source, tmp_path / "wide.jpg", engine="external")

    cmd = calls[0]
    assert cmd[:6] == ["convert", "-strip", "-interlace", "Plane", "-quality", "80"]
    assert cmd[6:8] == ["-resize", "2816"]
    assert cmd[8] == f"{source}[0]"
    assert cmd[-1].startswith("JPEG:")


def test_external_failure_cleans_temp_file(tmp_path: Path, monkeypatch) -> None:
    import tempfile

    temp_dir = tmp_path / "tmp"
    temp_dir.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(temp_dir))
    source = tmp_path / "a.gif"
    Image.new("P", (16, 16)).save(source)

    def _failing_run(cmd, capture_output=True, check=False):
        return subprocess.CompletedProcess(cmd, 1, b"", b"gifsicle: read error")

    monkeypatch.setattr(utils_subprocess, "run", _failing_run)
    with pytest.raises(BackendFailureError) as exc_info:
        optimizer.compress(source, engine="external")

    assert "read error" in exc_info.value.diagnostic
    assert list(temp_dir.iterdir()) == []
    assert source.read_bytes()[:3] == b"GIF"


def test_auto_engine_falls_back_to_pillow_without_tools(monkeypatch) -> None:
    monkeypatch.delenv(magick_backend.MAGICK_ENV, raising=False)
    monkeypatch.setattr(optimizer.shutil, "which", lambda name: None)
    monkeypatch.setattr(magick_backend.shutil, "which", lambda name: None)
    assert optimizer._resolve_engine("auto", "GIF") == "pillow"
    assert optimizer._resolve_engine("auto", "JPEG") == "pillow"
    assert optimizer._resolve_engine("external", "JPEG") == "external"
    with pytest.raises(ValueError):
        optimizer._resolve_engine("turbo", "JPEG")
