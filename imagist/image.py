from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from imagist.backends.base import ImageBackend
from imagist.backends.factory import create_backend
from imagist.constants import (
    BACKEND_AUTO,
    DEFAULT_QUALITY,
    FIT_INSIDE,
    FORMAT_INFO,
    SCALE_ANY,
    SUFFIX_TO_FORMAT,
)
from imagist.geometry.coordinate import Coordinate
from imagist.geometry.placement import plan_watermark
from imagist.geometry.planner import plan_crop, plan_resize
from imagist.models import UNKNOWN_SIZE, KnownSize, SizeState

LOGGER = logging.getLogger(__name__)


class Imagist:
    """A working image with a chainable resize/crop/watermark API.

    Example::

        with Imagist("photo.jpg") as image:
            image.resize(300, 300, "outside", "any").crop("center", "middle", 200, 200)
            image.save("output/photo.jpg")

    Width and height are smart coordinates: ``100``, ``"30%"``, ``"50% - 20"``,
    ``"center"``; ``None`` derives a dimension proportionally from the other.
    The handle owns its backend; it must not be shared between threads.
    """

    def __init__(
        self,
        path: str | Path,
        backend: str | ImageBackend | None = BACKEND_AUTO,
        quality: int = DEFAULT_QUALITY,
    ) -> None:
        self.path = Path(path)
        self.quality = int(quality)
        self._backend = create_backend(backend)
        self._size_state: SizeState = UNKNOWN_SIZE
        width, height = self._backend.decode(self.path)
        self._size_state = KnownSize(width, height)
        self._source_format = _detect_format(self._backend, self.path)
        LOGGER.debug("opened %s %sx%s with %s backend", self.path, width, height, self._backend.name)

    def __enter__(self) -> "Imagist":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Imagist({str(self.path)!r}, backend={self._backend.name!r}, size={self._size_state!r})"

    @property
    def backend(self) -> ImageBackend:
        return self._backend

    @property
    def size_state(self) -> SizeState:
        return self._size_state

    @property
    def size(self) -> tuple[int, int]:
        state = self._size_state
        if not isinstance(state, KnownSize):
            width, height = self._backend.size()
            state = KnownSize(width, height)
            self._size_state = state
        return (state.width, state.height)

    @property
    def width(self) -> int:
        return self.size[0]

    @property
    def height(self) -> int:
        return self.size[1]

    @property
    def mime_type(self) -> str:
        return FORMAT_INFO.get(self._source_format, (".png", "image/png"))[1]

    def _invalidate_size(self) -> None:
        self._size_state = UNKNOWN_SIZE

    def resize(
        self,
        width: Coordinate | None = None,
        height: Coordinate | None = None,
        fit: str | None = FIT_INSIDE,
        scale: str | None = SCALE_ANY,
    ) -> "Imagist":
        """Resize the image.

        ``fit`` is ``inside``, ``outside`` or ``fill``; ``scale`` is ``down``
        (only shrink), ``up`` (only enlarge) or ``any``. A request the scale
        policy rejects leaves the image as it is.
        """
        current_w, current_h = self.size
        target = plan_resize(width, height, current_w, current_h, fit=fit, scale=scale)
        if target.as_tuple() == (current_w, current_h):
            LOGGER.debug("resize %s: already %sx%s", self.path.name, current_w, current_h)
            return self
        self._backend.resize(target.width, target.height)
        self._invalidate_size()
        LOGGER.debug("resize %s: %sx%s -> %sx%s", self.path.name, current_w, current_h, target.width, target.height)
        return self

    def crop(
        self,
        left: Coordinate,
        top: Coordinate,
        width: Coordinate,
        height: Coordinate,
    ) -> "Imagist":
        """Crop to a box; parts of the box outside the image are cut off."""
        current_w, current_h = self.size
        rect = plan_crop(left, top, width, height, current_w, current_h)
        self._backend.crop(rect.left, rect.top, rect.width, rect.height)
        self._invalidate_size()
        LOGGER.debug("crop %s: %sx%s+%s+%s", self.path.name, rect.width, rect.height, rect.left, rect.top)
        return self

    def watermark(
        self,
        overlay_path: str | Path,
        horizontal: str = "right",
        vertical: str = "bottom",
        padding_x: int = 0,
        padding_y: int = 0,
        opacity: float = 100,
    ) -> "Imagist":
        placement = plan_watermark(horizontal, vertical, padding_x, padding_y, opacity)
        self._backend.composite(
            Path(overlay_path),
            placement.gravity,
            placement.padding_x,
            placement.padding_y,
            placement.opacity,
        )
        self._invalidate_size()
        LOGGER.debug("watermark %s: %s at %s", self.path.name, overlay_path, placement.gravity)
        return self

    def save(self, path: str | Path, quality: int | None = None) -> Path:
        target = Path(path)
        self._backend.encode(target, self.quality if quality is None else int(quality))
        LOGGER.debug("saved %s", target)
        return target

    def output(self, image_format: str | None = None, quality: int | None = None) -> bytes:
        """Return the encoded image, in the source format unless told otherwise."""
        fmt = (image_format or self._source_format or "PNG").upper()
        if fmt == "JPG":
            fmt = "JPEG"
        return self._backend.to_bytes(fmt, self.quality if quality is None else int(quality))

    def close(self) -> None:
        self._backend.close()
        self._invalidate_size()


def _detect_format(backend: ImageBackend, path: Path) -> str:
    source_format = getattr(backend, "source_format", None)
    if source_format:
        return str(source_format).upper()
    return SUFFIX_TO_FORMAT.get(path.suffix.lower(), "PNG")
