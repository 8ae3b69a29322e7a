import json
from pathlib import Path

import pytest
from PIL import Image
from typer.testing import CliRunner

from imagist.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))


def _make_image(path: Path, size: tuple[int, int], image_format: str | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.effect_noise(size, 40).convert("RGB").save(path, format=image_format)
    return path


def test_demo_resizes_and_crops_into_sibling_output(tmp_path: Path) -> None:
    images = tmp_path / "images"
    _make_image(images / "wide.jpg", (1000, 500))
    _make_image(images / "tall.png", (300, 900))

    result = runner.invoke(app, ["demo", str(images), "--backend", "pillow"])

    assert result.exit_code == 0, result.output
    assert "success=2" in result.output
    for name in ("wide.jpg", "tall.png"):
        with Image.open(tmp_path / "output" / name) as out:
            assert out.size == (200, 200)


def test_process_runs_resize_crop_and_names_output(tmp_path: Path) -> None:
    source = _make_image(tmp_path / "in" / "a.png", (400, 200))
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app,
        [
            "process",
            str(source.parent),
            "--out",
            str(out_dir),
            "--width",
            "25%",
            "--crop-left",
            "center",
            "--crop-top",
            "middle",
            "--crop-width",
            "50",
            "--crop-height",
            "50",
            "--name",
            "{stem}_{width}x{height}.{ext}",
        ],
    )

    assert result.exit_code == 0, result.output
    with Image.open(out_dir / "a_50x50.png") as out:
        assert out.size == (50, 50)


def test_process_applies_watermark(tmp_path: Path) -> None:
    source = tmp_path / "in" / "base.png"
    source.parent.mkdir()
    Image.new("RGB", (100, 80), color="#FFFFFF").save(source)
    logo = tmp_path / "logo.png"
    Image.new("RGB", (10, 10), color="#000000").save(logo)

    result = runner.invoke(
        app,
        ["process", str(source), "--watermark", str(logo), "--edge-x", "left", "--edge-y", "top", "--padding-x", "0", "--padding-y", "0"],
    )

    assert result.exit_code == 0, result.output
    with Image.open(tmp_path / "in" / "output" / "base.png") as out:
        assert out.convert("RGB").getpixel((5, 5)) == (0, 0, 0)
        assert out.convert("RGB").getpixel((50, 50)) == (255, 255, 255)


def test_process_reports_failures_with_exit_code(tmp_path: Path) -> None:
    folder = tmp_path / "in"
    _make_image(folder / "good.png", (40, 40))
    (folder / "broken.png").write_bytes(b"not an image")

    result = runner.invoke(app, ["process", str(folder), "--crop-width", "100", "--crop-height", "10", "--crop-left", "90"])

    assert result.exit_code == 1
    assert "success=0" in result.output
    assert "failed=2" in result.output


def test_process_skip_existing(tmp_path: Path) -> None:
    source = _make_image(tmp_path / "in" / "a.png", (40, 40))
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    (out_dir / "a.png").write_bytes(b"keep")

    result = runner.invoke(app, ["process", str(source), "--out", str(out_dir), "--skip-existing"])

    assert result.exit_code == 0, result.output
    assert "skipped=1" in result.output
    assert (out_dir / "a.png").read_bytes() == b"keep"


def test_optimize_writes_smaller_jpeg(tmp_path: Path) -> None:
    source = _make_image(tmp_path / "in" / "scan.bmp", (600, 400), "BMP")
    out_dir = tmp_path / "out"

    result = runner.invoke(app, ["optimize", str(source.parent), "--out", str(out_dir), "--engine", "pillow"])

    assert result.exit_code == 0, result.output
    optimized = out_dir / "scan.bmp"
    assert optimized.stat().st_size < source.stat().st_size
    with Image.open(optimized) as out:
        assert out.format == "JPEG"


def test_inspect_prints_json(tmp_path: Path) -> None:
    source = _make_image(tmp_path / "photo.jpg", (64, 32))

    result = runner.invoke(app, ["inspect", str(source), "--backend", "pillow"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert (payload["width"], payload["height"]) == (64, 32)
    assert payload["mime_type"] == "image/jpeg"
    assert payload["backend"] == "pillow"


def test_inspect_unreadable_file_exits_nonzero(tmp_path: Path) -> None:
    bogus = tmp_path / "bogus.png"
    bogus.write_bytes(b"nope")
    result = runner.invoke(app, ["inspect", str(bogus)])
    assert result.exit_code == 1


def test_init_config_writes_yaml(tmp_path: Path) -> None:
    result = runner.invoke(app, ["init-config"])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "config" / "Imagist" / "config.yaml").exists()
