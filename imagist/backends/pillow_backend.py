from __future__ import annotations

import io
import logging
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from imagist.constants import BACKEND_PILLOW, GRAVITY_BY_EDGES, HEIF_EXTENSIONS, SUFFIX_TO_FORMAT
from imagist.errors import BackendFailureError, UnsupportedImageTypeError
from imagist.geometry.placement import overlay_position
from imagist.models import Rectangle, WatermarkPlacement

LOGGER = logging.getLogger(__name__)

_HEIF_REGISTERED = False
_EDGES_BY_GRAVITY = {gravity: edges for edges, gravity in GRAVITY_BY_EDGES.items()}


def _register_heif_opener() -> bool:
    global _HEIF_REGISTERED
    if _HEIF_REGISTERED:
        return True
    try:
        from pillow_heif import register_heif_opener
    except ImportError:
        return False
    register_heif_opener()
    _HEIF_REGISTERED = True
    return True


def _prepare_for_format(image: Image.Image, image_format: str) -> Image.Image:
    if image_format == "JPEG" and image.mode not in {"RGB", "L", "CMYK"}:
        return image.convert("RGB")
    if image_format == "BMP" and image.mode not in {"RGB", "L", "P", "1"}:
        return image.convert("RGB")
    return image


def _save(image: Image.Image, target: Path | io.BytesIO, image_format: str, quality: int) -> None:
    prepared = _prepare_for_format(image, image_format)
    quality = max(1, min(100, int(quality)))
    if image_format == "JPEG":
        prepared.save(target, format="JPEG", quality=quality, optimize=True)
    elif image_format == "PNG":
        prepared.save(target, format="PNG", optimize=True)
    elif image_format == "WEBP":
        prepared.save(target, format="WEBP", quality=quality)
    else:
        prepared.save(target, format=image_format)


class PillowBackend:
    """In-process backend holding a decoded Pillow image."""

    name = BACKEND_PILLOW

    def __init__(self) -> None:
        self._image: Image.Image | None = None
        self._format: str | None = None

    @property
    def source_format(self) -> str | None:
        return self._format

    def _require(self) -> Image.Image:
        if self._image is None:
            raise BackendFailureError("no image has been decoded")
        return self._image

    def decode(self, path: Path) -> tuple[int, int]:
        if path.suffix.lower() in HEIF_EXTENSIONS and not _register_heif_opener():
            raise BackendFailureError("pillow-heif is required to decode HEIF/HEIC/HIF")
        try:
            with Image.open(path) as image:
                self._format = image.format
                self._image = ImageOps.exif_transpose(image).copy()
        except FileNotFoundError:
            raise
        except UnidentifiedImageError as exc:
            raise UnsupportedImageTypeError(f"unsupported image type: {path}") from exc
        except OSError as exc:
            raise BackendFailureError(f"Pillow could not decode {path}", diagnostic=str(exc)) from exc
        LOGGER.debug("decoded %s (%s, %s)", path, self._format, self._image.size)
        return self._image.size

    def size(self) -> tuple[int, int]:
        return self._require().size

    def resize(self, width: int, height: int) -> None:
        image = self._require()
        if image.mode == "P":
            image = image.convert("RGBA")
        elif image.mode == "1":
            image = image.convert("L")
        try:
            self._image = image.resize((width, height), Image.Resampling.LANCZOS)
        except (OSError, ValueError) as exc:
            raise BackendFailureError(f"resize to {width}x{height} failed", diagnostic=str(exc)) from exc

    def crop(self, left: int, top: int, width: int, height: int) -> None:
        image = self._require()
        try:
            self._image = image.crop(Rectangle(left, top, width, height).to_box())
        except (OSError, ValueError) as exc:
            raise BackendFailureError(
                f"crop {width}x{height}+{left}+{top} failed", diagnostic=str(exc)
            ) from exc

    def composite(
        self,
        overlay_path: Path,
        gravity: str,
        x_offset: int,
        y_offset: int,
        opacity: float,
    ) -> None:
        image = self._require()
        edges = _EDGES_BY_GRAVITY.get(gravity)
        if edges is None:
            raise BackendFailureError(f"unsupported gravity: {gravity}")
        try:
            with Image.open(overlay_path) as raw_overlay:
                overlay = raw_overlay.convert("RGBA")
        except FileNotFoundError:
            raise
        except OSError as exc:
            raise BackendFailureError(f"cannot open overlay {overlay_path}", diagnostic=str(exc)) from exc

        if opacity < 100:
            alpha = overlay.getchannel("A").point(lambda p: int(round(p * opacity / 100.0)))
            overlay.putalpha(alpha)

        placement = WatermarkPlacement(edges[0], edges[1], x_offset, y_offset, opacity)
        position = overlay_position(placement, image.size, overlay.size)
        had_alpha = image.mode in {"RGBA", "LA"} or (image.mode == "P" and "transparency" in image.info)

        layer = Image.new("RGBA", image.size, (0, 0, 0, 0))
        layer.paste(overlay, position, overlay)
        result = Image.alpha_composite(image.convert("RGBA"), layer)
        self._image = result if had_alpha else result.convert("RGB")

    def _format_for(self, path: Path) -> str:
        return SUFFIX_TO_FORMAT.get(path.suffix.lower()) or self._format or "PNG"

    def encode(self, path: Path, quality: int) -> None:
        image = self._require()
        image_format = self._format_for(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            _save(image, path, image_format, quality)
        except (OSError, ValueError) as exc:
            raise BackendFailureError(f"cannot write {path} as {image_format}", diagnostic=str(exc)) from exc

    def to_bytes(self, image_format: str, quality: int) -> bytes:
        image = self._require()
        buffer = io.BytesIO()
        try:
            _save(image, buffer, image_format.upper(), quality)
        except (OSError, ValueError, KeyError) as exc:
            raise BackendFailureError(f"cannot encode image as {image_format}", diagnostic=str(exc)) from exc
        return buffer.getvalue()

    def close(self) -> None:
        self._image = None
