import random

import pytest

from imagist.errors import (
    CropOutOfBoundsError,
    InvalidDimensionsError,
    MalformedCoordinateError,
)
from imagist.geometry.planner import plan_crop, plan_resize
from imagist.models import Dimensions, Rectangle

DOCUMENTED_ERRORS = (CropOutOfBoundsError, InvalidDimensionsError, MalformedCoordinateError)

_WORDS = ["left", "center", "right", "top", "middle", "bottom", "centre", "nope"]
_PIECES = ["+", "-", " ", "%", "%%", "x", "."]


def _random_term(rng: random.Random) -> str:
    roll = rng.random()
    if roll < 0.45:
        return str(rng.randint(-3000, 3000))
    if roll < 0.8:
        return f"{rng.randint(-200, 200)}%"
    if roll < 0.92:
        return rng.choice(_WORDS)
    if roll < 0.95:
        return "9" * rng.randint(300, 5000) + rng.choice(["", "%"])
    return rng.choice(_PIECES)


def _random_coordinate(rng: random.Random) -> object:
    roll = rng.random()
    if roll < 0.2:
        return rng.randint(-3000, 3000)
    terms = [_random_term(rng) for _ in range(rng.randint(1, 3))]
    joined = terms[0]
    for term in terms[1:]:
        joined += rng.choice([" + ", " - ", "+", "-", " "]) + term
    return joined


@pytest.mark.parametrize("seed", range(20))
def test_random_requests_raise_only_documented_errors(seed: int) -> None:
    rng = random.Random(seed)
    for _ in range(200):
        current_w = rng.randint(1, 4000)
        current_h = rng.randint(1, 4000)
        width = None if rng.random() < 0.2 else _random_coordinate(rng)
        height = None if rng.random() < 0.2 else _random_coordinate(rng)
        fit = rng.choice(["inside", "outside", "fill"])
        scale = rng.choice(["down", "up", "any"])
        try:
            dims = plan_resize(width, height, current_w, current_h, fit=fit, scale=scale)
        except DOCUMENTED_ERRORS:
            pass
        else:
            assert isinstance(dims, Dimensions)
            assert dims.width > 0 and dims.height > 0

        try:
            rect = plan_crop(
                _random_coordinate(rng),
                _random_coordinate(rng),
                _random_coordinate(rng),
                _random_coordinate(rng),
                current_w,
                current_h,
            )
        except DOCUMENTED_ERRORS:
            pass
        else:
            assert isinstance(rect, Rectangle)
            assert rect.width > 0 and rect.height > 0
            assert 0 <= rect.left and rect.right <= current_w
            assert 0 <= rect.top and rect.bottom <= current_h
