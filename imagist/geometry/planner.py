# Resize and crop planning: smart coordinates in, integer pixel geometry out.
# Pure functions; no backend or I/O dependencies.
from __future__ import annotations

import logging
import math

from imagist.constants import (
    FIT_FILL,
    FIT_INSIDE,
    FIT_OPTIONS,
    FIT_OUTSIDE,
    SCALE_ANY,
    SCALE_DOWN,
    SCALE_OPTIONS,
    SCALE_UP,
)
from imagist.errors import (
    CropOutOfBoundsError,
    InvalidDimensionsError,
    InvalidFitPolicyError,
    InvalidScalePolicyError,
)
from imagist.geometry.coordinate import Coordinate, describe_coordinate, resolve, round_half_away
from imagist.models import Dimensions, Rectangle

LOGGER = logging.getLogger(__name__)


def normalize_fit(value: str | None) -> str:
    if value is None:
        return FIT_INSIDE
    text = str(value).strip().lower()
    if text not in FIT_OPTIONS:
        raise InvalidFitPolicyError(f"{value!r} is not a valid resize fit, expected one of {', '.join(FIT_OPTIONS)}")
    return text


def normalize_scale(value: str | None) -> str:
    if value is None:
        return SCALE_ANY
    text = str(value).strip().lower()
    if text not in SCALE_OPTIONS:
        raise InvalidScalePolicyError(
            f"{value!r} is not a valid resize scale, expected one of {', '.join(SCALE_OPTIONS)}"
        )
    return text


def _resolve_length(value: Coordinate, current: int, axis: str) -> int:
    length = resolve(value, current)
    if length < 0:
        raise InvalidDimensionsError(
            f"requested {axis} resolves to a negative length: "
            f"{describe_coordinate(value)} -> {describe_coordinate(length)}"
        )
    if length == 0:
        raise InvalidDimensionsError(f"requested {axis} resolves to zero: {describe_coordinate(value)}")
    return length


def _ratio(current: int, target: int, axis: str) -> float:
    ratio = current / target
    if ratio == 0 or not math.isfinite(ratio):
        raise InvalidDimensionsError(f"requested {axis} {describe_coordinate(target)} is out of range")
    return ratio


def _scaled(length: int, ratio: float, axis: str) -> int:
    value = length / ratio
    if not math.isfinite(value):
        raise InvalidDimensionsError(f"{axis} scaled by 1/{ratio!r} is out of range")
    return round_half_away(value)


def prepare_dimensions(
    width: Coordinate | None,
    height: Coordinate | None,
    current_width: int,
    current_height: int,
    fit: str | None = FIT_INSIDE,
) -> Dimensions:
    """Resolve requested lengths and apply the fit policy.

    A requested or proportionally derived length of zero raises
    ``InvalidDimensionsError``. The fit result itself may still contain a
    zero; ``plan_resize`` validates it after the scale policy.
    """
    fit = normalize_fit(fit)
    if width is None and height is None:
        return Dimensions(current_width, current_height)

    rx: float | None = None
    ry: float | None = None
    target_w = 0
    target_h = 0
    if width is not None:
        target_w = _resolve_length(width, current_width, "width")
        rx = _ratio(current_width, target_w, "width")
    if height is not None:
        target_h = _resolve_length(height, current_height, "height")
        ry = _ratio(current_height, target_h, "height")

    if rx is None and ry is not None:
        rx = ry
        target_w = _scaled(current_width, rx, "width")
    if ry is None and rx is not None:
        ry = rx
        target_h = _scaled(current_height, ry, "height")

    if target_w == 0 or target_h == 0:
        raise InvalidDimensionsError(
            f"resize to {describe_coordinate(width)} x {describe_coordinate(height)} "
            f"derives an empty side from {current_width}x{current_height}"
        )

    if fit == FIT_FILL:
        return Dimensions(target_w, target_h)

    ratios = (float(rx or 1.0), float(ry or 1.0))
    ratio = max(ratios) if fit == FIT_INSIDE else min(ratios)
    return Dimensions(
        _scaled(current_width, ratio, "width"),
        _scaled(current_height, ratio, "height"),
    )


def plan_resize(
    width: Coordinate | None,
    height: Coordinate | None,
    current_width: int,
    current_height: int,
    fit: str | None = FIT_INSIDE,
    scale: str | None = SCALE_ANY,
) -> Dimensions:
    """Compute the pixel size a resize request ends up at.

    ``fit`` is ``inside`` (largest size fitting in the box), ``outside``
    (smallest size covering the box) or ``fill`` (exactly the box). ``scale``
    ``down`` skips enlarging requests, ``up`` skips shrinking ones; a skipped
    request yields the current size.
    """
    fit = normalize_fit(fit)
    scale = normalize_scale(scale)
    dims = prepare_dimensions(width, height, current_width, current_height, fit)

    if (
        scale == SCALE_DOWN and dims.width >= current_width and dims.height >= current_height
    ) or (
        scale == SCALE_UP and dims.width <= current_width and dims.height <= current_height
    ):
        LOGGER.debug(
            "scale=%s keeps %sx%s (planned %sx%s)",
            scale,
            current_width,
            current_height,
            dims.width,
            dims.height,
        )
        dims = Dimensions(current_width, current_height)

    if dims.width <= 0 or dims.height <= 0:
        raise InvalidDimensionsError(
            "both dimensions must be larger than 0, got "
            f"{describe_coordinate(dims.width)}x{describe_coordinate(dims.height)}"
        )
    return dims


def plan_crop(
    left: Coordinate,
    top: Coordinate,
    width: Coordinate,
    height: Coordinate,
    current_width: int,
    current_height: int,
) -> Rectangle:
    """Resolve a crop request to a rectangle clipped to the image.

    ``left``/``top`` are resolved with the crop size as secondary length, so
    ``"center"`` or ``"right - 10"`` align the box. A box starting before the
    origin keeps its far edge; the far edge is then clipped to the image.
    """
    crop_w = resolve(width, current_width)
    crop_h = resolve(height, current_height)
    crop_left = resolve(left, current_width, crop_w)
    crop_top = resolve(top, current_height, crop_h)

    if crop_left < 0:
        crop_w = crop_left + crop_w
        crop_left = 0
    if crop_w > current_width - crop_left:
        crop_w = current_width - crop_left

    if crop_top < 0:
        crop_h = crop_top + crop_h
        crop_top = 0
    if crop_h > current_height - crop_top:
        crop_h = current_height - crop_top

    if crop_w <= 0 or crop_h <= 0:
        raise CropOutOfBoundsError(
            f"crop ({describe_coordinate(left)}, {describe_coordinate(top)}, "
            f"{describe_coordinate(width)}, {describe_coordinate(height)}) lies outside the "
            f"{current_width}x{current_height} image"
        )
    return Rectangle(crop_left, crop_top, crop_w, crop_h)
