"""Lossy size optimization.

GIF files are recompressed as GIF (``gifsicle -O3``); JPEG, PNG and BMP files
are recompressed to JPEG at quality 80 and downsampled when larger than
2816x2112. The optimized file may therefore change type regardless of the
destination's extension. When the result is not smaller than the source, the
source bytes are written instead.
"""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from imagist.backends.magick_backend import detect_toolchain
from imagist.constants import (
    ENGINE_AUTO,
    ENGINE_EXTERNAL,
    ENGINE_OPTIONS,
    ENGINE_PILLOW,
    FIT_INSIDE,
    OPTIMIZE_FORMATS,
    OPTIMIZE_MAX_HEIGHT,
    OPTIMIZE_MAX_WIDTH,
    OPTIMIZE_QUALITY,
    SCALE_ANY,
)
from imagist.errors import BackendFailureError, UnsupportedImageTypeError
from imagist.geometry.planner import plan_resize
from imagist.models import OptimizeResult
from imagist.subprocess_utils import run_command

LOGGER = logging.getLogger(__name__)
GIFSICLE_BIN = os.environ.get("GIFSICLE_BIN", "gifsicle")


def detect_image_format(path: Path) -> str:
    """Identify the image type from file content, as Pillow names it."""
    try:
        with Image.open(path) as image:
            image_format = (image.format or "").upper()
    except FileNotFoundError:
        raise
    except UnidentifiedImageError as exc:
        raise UnsupportedImageTypeError(f"unsupported image type: {path}") from exc
    if image_format not in OPTIMIZE_FORMATS:
        raise UnsupportedImageTypeError(f"unsupported image type {image_format or 'unknown'}: {path}")
    return image_format


def limit_geometry(width: int, height: int, max_width: int, max_height: int) -> str:
    """ImageMagick ``-resize`` geometry limiting only the exceeded dimensions."""
    geometry = ""
    if width > max_width:
        geometry += str(max_width)
    if height > max_height:
        geometry += f"x{max_height}"
    return geometry


def _is_tool_available(executable: str) -> bool:
    return shutil.which(executable) is not None


def _magick_available() -> bool:
    try:
        detect_toolchain()
    except BackendFailureError:
        return False
    return True


def _resolve_engine(engine: str, image_format: str) -> str:
    engine = engine.lower()
    if engine not in ENGINE_OPTIONS:
        raise ValueError(f"invalid optimizer engine: {engine}, expected one of {', '.join(ENGINE_OPTIONS)}")
    if engine != ENGINE_AUTO:
        return engine
    available = _is_tool_available(GIFSICLE_BIN) if image_format == "GIF" else _magick_available()
    if not available:
        LOGGER.debug("external optimizer for %s not found, using Pillow", image_format)
        return ENGINE_PILLOW
    return ENGINE_EXTERNAL


def _new_temp(suffix: str) -> Path:
    fd, name = tempfile.mkstemp(prefix="imagist-opt-", suffix=suffix)
    os.close(fd)
    return Path(name)


def _compress_gif_external(src: Path, tmp: Path) -> None:
    run_command([GIFSICLE_BIN, str(src), "-o", str(tmp), "-O3"], tool="gifsicle")


def _compress_gif_pillow(src: Path, tmp: Path) -> None:
    try:
        with Image.open(src) as image:
            image.save(tmp, format="GIF", save_all=True, optimize=True)
    except OSError as exc:
        raise BackendFailureError(f"Pillow could not optimize {src}", diagnostic=str(exc)) from exc


def _compress_general_external(src: Path, tmp: Path, max_width: int, max_height: int, quality: int) -> None:
    with Image.open(src) as image:
        width, height = image.size
    args = ["-strip", "-interlace", "Plane", "-quality", str(quality)]
    geometry = limit_geometry(width, height, max_width, max_height)
    if geometry:
        args += ["-resize", geometry]
    toolchain = detect_toolchain()
    run_command([*toolchain.convert, *args, f"{src}[0]", f"JPEG:{tmp}"], tool="ImageMagick")


def _compress_general_pillow(src: Path, tmp: Path, max_width: int, max_height: int, quality: int) -> None:
    try:
        with Image.open(src) as raw:
            image = ImageOps.exif_transpose(raw).convert("RGB")
    except OSError as exc:
        raise BackendFailureError(f"Pillow could not decode {src}", diagnostic=str(exc)) from exc

    width, height = image.size
    limit_w = max_width if width > max_width else None
    limit_h = max_height if height > max_height else None
    if limit_w is not None or limit_h is not None:
        target = plan_resize(limit_w, limit_h, width, height, fit=FIT_INSIDE, scale=SCALE_ANY)
        image = image.resize(target.as_tuple(), Image.Resampling.LANCZOS)
    try:
        image.save(tmp, format="JPEG", quality=quality, optimize=True, progressive=True)
    except OSError as exc:
        raise BackendFailureError(f"Pillow could not write {tmp}", diagnostic=str(exc)) from exc


def compress(
    src: str | Path,
    dest: str | Path | None = None,
    *,
    engine: str = ENGINE_AUTO,
    max_width: int = OPTIMIZE_MAX_WIDTH,
    max_height: int = OPTIMIZE_MAX_HEIGHT,
    quality: int = OPTIMIZE_QUALITY,
) -> OptimizeResult:
    """Optimize ``src`` into ``dest`` (``src`` itself when ``dest`` is empty)."""
    source = Path(src)
    target = Path(dest) if dest else source
    image_format = detect_image_format(source)
    resolved_engine = _resolve_engine(engine, image_format)
    original_bytes = source.stat().st_size

    tmp = _new_temp(".gif" if image_format == "GIF" else ".jpg")
    try:
        if image_format == "GIF":
            if resolved_engine == ENGINE_EXTERNAL:
                _compress_gif_external(source, tmp)
            else:
                _compress_gif_pillow(source, tmp)
        elif resolved_engine == ENGINE_EXTERNAL:
            _compress_general_external(source, tmp, max_width, max_height, quality)
        else:
            _compress_general_pillow(source, tmp, max_width, max_height, quality)

        kept_original = tmp.stat().st_size >= original_bytes
        if kept_original:
            shutil.copyfile(source, tmp)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(tmp), str(target))
    finally:
        tmp.unlink(missing_ok=True)

    final_bytes = target.stat().st_size
    LOGGER.debug(
        "optimized %s (%s, %s): %s -> %s bytes%s",
        source,
        image_format,
        resolved_engine,
        original_bytes,
        final_bytes,
        " (kept original)" if kept_original else "",
    )
    return OptimizeResult(
        source=source,
        output=target,
        image_format=image_format,
        original_bytes=original_bytes,
        final_bytes=final_bytes,
        kept_original=kept_original,
    )
