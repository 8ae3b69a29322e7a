from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class ImageBackend(Protocol):
    """Pixel operations behind an image handle.

    A backend instance holds exactly one working image. Geometry arrives
    already resolved to integers; backends do no planning of their own.
    """

    name: str

    def decode(self, path: Path) -> tuple[int, int]: ...

    def size(self) -> tuple[int, int]: ...

    def resize(self, width: int, height: int) -> None: ...

    def crop(self, left: int, top: int, width: int, height: int) -> None: ...

    def composite(
        self,
        overlay_path: Path,
        gravity: str,
        x_offset: int,
        y_offset: int,
        opacity: float,
    ) -> None: ...

    def encode(self, path: Path, quality: int) -> None: ...

    def to_bytes(self, image_format: str, quality: int) -> bytes: ...

    def close(self) -> None: ...
