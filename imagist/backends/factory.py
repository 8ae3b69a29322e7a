from __future__ import annotations

from imagist.backends.base import ImageBackend
from imagist.constants import BACKEND_AUTO, BACKEND_MAGICK, BACKEND_OPTIONS, BACKEND_PILLOW


def create_backend(backend: str | ImageBackend | None = BACKEND_AUTO) -> ImageBackend:
    """Return a fresh backend for one image handle.

    ``auto`` picks the in-process Pillow backend; ``magick`` drives ImageMagick.
    """
    if backend is None:
        backend = BACKEND_AUTO
    if not isinstance(backend, str):
        return backend
    name = backend.strip().lower()
    if name in {BACKEND_AUTO, BACKEND_PILLOW}:
        from imagist.backends.pillow_backend import PillowBackend

        return PillowBackend()
    if name == BACKEND_MAGICK:
        from imagist.backends.magick_backend import MagickBackend

        return MagickBackend()
    raise ValueError(f"unknown image backend: {backend!r}, expected one of {', '.join(BACKEND_OPTIONS)}")
