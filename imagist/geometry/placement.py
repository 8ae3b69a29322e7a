from __future__ import annotations

import math
from typing import Any

from imagist.constants import HORIZONTAL_EDGES, VERTICAL_EDGES
from imagist.errors import InvalidEdgeError, InvalidOpacityError
from imagist.models import WatermarkPlacement


def _normalize_edge(value: Any, allowed: tuple[str, ...], axis: str) -> str:
    text = str(value or "").strip().lower()
    if text not in allowed:
        raise InvalidEdgeError(f"{value!r} is not a {axis} edge, expected one of {', '.join(allowed)}")
    return text


def _normalize_opacity(value: Any) -> float:
    if isinstance(value, bool):
        raise InvalidOpacityError(f"opacity must be a number between 0 and 100, got {value!r}")
    try:
        opacity = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidOpacityError(f"opacity must be a number between 0 and 100, got {value!r}") from exc
    if not math.isfinite(opacity) or opacity < 0 or opacity > 100:
        raise InvalidOpacityError(f"opacity must be between 0 and 100, got {value!r}")
    return opacity


def plan_watermark(
    horizontal: str = "right",
    vertical: str = "bottom",
    padding_x: int = 0,
    padding_y: int = 0,
    opacity: float = 100,
) -> WatermarkPlacement:
    return WatermarkPlacement(
        horizontal=_normalize_edge(horizontal, HORIZONTAL_EDGES, "horizontal"),
        vertical=_normalize_edge(vertical, VERTICAL_EDGES, "vertical"),
        padding_x=int(padding_x),
        padding_y=int(padding_y),
        opacity=_normalize_opacity(opacity),
    )


def overlay_position(
    placement: WatermarkPlacement,
    canvas_size: tuple[int, int],
    overlay_size: tuple[int, int],
) -> tuple[int, int]:
    """Top-left pixel of an overlay anchored at the placement's edges.

    Paddings move the overlay away from its anchor edges, the same way
    ImageMagick applies ``-geometry +x+y`` under a corner gravity.
    """
    canvas_w, canvas_h = canvas_size
    overlay_w, overlay_h = overlay_size
    if placement.horizontal == "left":
        x = placement.padding_x
    else:
        x = canvas_w - overlay_w - placement.padding_x
    if placement.vertical == "top":
        y = placement.padding_y
    else:
        y = canvas_h - overlay_h - placement.padding_y
    return (x, y)
