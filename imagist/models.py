from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

from imagist.constants import GRAVITY_BY_EDGES


@dataclass(frozen=True, slots=True)
class Dimensions:
    width: int
    height: int

    def as_tuple(self) -> tuple[int, int]:
        return (self.width, self.height)


@dataclass(frozen=True, slots=True)
class Rectangle:
    left: int
    top: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.left + self.width

    @property
    def bottom(self) -> int:
        return self.top + self.height

    def to_box(self) -> tuple[int, int, int, int]:
        """Return the (left, top, right, bottom) box Pillow expects."""
        return (self.left, self.top, self.right, self.bottom)


class UnknownSize:
    """Size state after a transform, before the backend was asked again."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "UnknownSize()"


UNKNOWN_SIZE = UnknownSize()


@dataclass(frozen=True, slots=True)
class KnownSize:
    width: int
    height: int


SizeState = Union[UnknownSize, KnownSize]


@dataclass(frozen=True, slots=True)
class WatermarkPlacement:
    horizontal: str
    vertical: str
    padding_x: int
    padding_y: int
    opacity: float

    @property
    def gravity(self) -> str:
        return GRAVITY_BY_EDGES[(self.horizontal, self.vertical)]


@dataclass(slots=True)
class OptimizeResult:
    source: Path
    output: Path
    image_format: str
    original_bytes: int
    final_bytes: int
    kept_original: bool = False

    @property
    def saved_bytes(self) -> int:
        return self.original_bytes - self.final_bytes

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": str(self.source),
            "output": str(self.output),
            "format": self.image_format,
            "original_bytes": self.original_bytes,
            "final_bytes": self.final_bytes,
            "kept_original": self.kept_original,
        }
