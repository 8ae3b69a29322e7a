"""Smart coordinates.

A smart coordinate is a length or position written relative to a reference
length: ``100``, ``-20``, ``"30%"``, ``"-15%"``, ``"50% - 20"``,
``"15 + 30%"`` or a named alignment such as ``"center"`` or ``"right - 10"``.
Strings are parsed once into a small expression tree and evaluated by
``resolve``; ``None`` is never resolved, callers derive it proportionally.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Union

from imagist.errors import MalformedCoordinateError

ALIGN_START = "start"
ALIGN_CENTER = "center"
ALIGN_END = "end"

ALIGN_WORDS = {
    "left": ALIGN_START,
    "top": ALIGN_START,
    "center": ALIGN_CENTER,
    "centre": ALIGN_CENTER,
    "middle": ALIGN_CENTER,
    "right": ALIGN_END,
    "bottom": ALIGN_END,
}

_TOKEN_RE = re.compile(r"\s*(?:(?P<number>\d+(?:\.\d+)?%?)|(?P<word>[A-Za-z]+)|(?P<op>[+-]))")


@dataclass(frozen=True, slots=True)
class Absolute:
    value: int


@dataclass(frozen=True, slots=True)
class Percent:
    value: float


@dataclass(frozen=True, slots=True)
class Align:
    position: str
    sign: int = 1


@dataclass(frozen=True, slots=True)
class Sum:
    left: "Expr"
    right: "Expr"


Expr = Union[Absolute, Percent, Align, Sum]
Coordinate = Union[int, float, str, Absolute, Percent, Align, Sum]


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    if not math.isfinite(value):
        raise MalformedCoordinateError(f"coordinate is out of range: {value!r}")
    magnitude = int(math.floor(abs(value) + 0.5))
    return magnitude if value >= 0 else -magnitude


def describe_coordinate(value: object) -> str:
    """repr() that stays printable for integers too long to convert to text."""
    if isinstance(value, int) and not isinstance(value, bool) and value.bit_length() > 64:
        return f"<{value.bit_length()}-bit integer>"
    return repr(value)


def _half(value: int) -> int:
    # exact for integers of any size
    return (value + 1) // 2 if value >= 0 else -((1 - value) // 2)


def _negate(expr: Expr) -> Expr:
    if isinstance(expr, Absolute):
        return Absolute(-expr.value)
    if isinstance(expr, Percent):
        return Percent(-expr.value)
    if isinstance(expr, Align):
        return Align(expr.position, -expr.sign)
    return Sum(_negate(expr.left), _negate(expr.right))


def _tokenize(text: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    stripped = text.rstrip()
    while pos < len(stripped):
        match = _TOKEN_RE.match(stripped, pos)
        if match is None:
            raise MalformedCoordinateError(f"cannot parse coordinate {text!r} at offset {pos}")
        kind = match.lastgroup or ""
        tokens.append((kind, match.group(kind)))
        pos = match.end()
    return tokens


def _operand(kind: str, token: str, text: str) -> Expr:
    if kind == "number":
        if token.endswith("%"):
            percent = float(token[:-1])
            if not math.isfinite(percent):
                raise MalformedCoordinateError(f"percentage is out of range in coordinate {text!r}")
            return Percent(percent)
        if "." in token:
            raise MalformedCoordinateError(f"absolute coordinate must be an integer: {text!r}")
        try:
            return Absolute(int(token))
        except ValueError as exc:
            raise MalformedCoordinateError(f"absolute coordinate has too many digits: {text[:32]!r}...") from exc
    if kind == "word":
        position = ALIGN_WORDS.get(token.lower())
        if position is None:
            raise MalformedCoordinateError(f"unknown alignment {token!r} in coordinate {text!r}")
        return Align(position)
    raise MalformedCoordinateError(f"expected a value in coordinate {text!r}, got {token!r}")


@lru_cache(maxsize=512)
def _parse_text(text: str) -> Expr:
    tokens = _tokenize(text)
    if not tokens:
        raise MalformedCoordinateError(f"empty coordinate: {text!r}")

    index = 0

    def term() -> Expr:
        nonlocal index
        sign = 1
        if index < len(tokens) and tokens[index][0] == "op":
            sign = -1 if tokens[index][1] == "-" else 1
            index += 1
        if index >= len(tokens):
            raise MalformedCoordinateError(f"coordinate ends with an operator: {text!r}")
        kind, token = tokens[index]
        index += 1
        expr = _operand(kind, token, text)
        return _negate(expr) if sign < 0 else expr

    result = term()
    while index < len(tokens):
        kind, token = tokens[index]
        if kind != "op":
            raise MalformedCoordinateError(f"missing operator before {token!r} in coordinate {text!r}")
        index += 1
        right = term()
        result = Sum(result, _negate(right) if token == "-" else right)
    return result


def parse_coordinate(value: Coordinate) -> Expr:
    """Parse ``value`` into an expression; expressions pass through unchanged."""
    if isinstance(value, (Absolute, Percent, Align, Sum)):
        return value
    if isinstance(value, bool):
        raise MalformedCoordinateError(f"boolean is not a coordinate: {value!r}")
    if isinstance(value, int):
        return Absolute(value)
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise MalformedCoordinateError(f"absolute coordinate must be an integer: {value!r}")
        return Absolute(int(value))
    if isinstance(value, str):
        return _parse_text(value.strip())
    raise MalformedCoordinateError(f"unsupported coordinate type: {type(value).__name__}")


def _evaluate(expr: Expr, reference: int, secondary: int) -> int:
    if isinstance(expr, Absolute):
        return expr.value
    if isinstance(expr, Percent):
        try:
            share = reference * expr.value / 100.0
        except OverflowError as exc:
            raise MalformedCoordinateError(f"percentage of {describe_coordinate(reference)} is out of range") from exc
        return round_half_away(share)
    if isinstance(expr, Align):
        if expr.position == ALIGN_START:
            offset = 0
        elif expr.position == ALIGN_CENTER:
            offset = _half(reference - secondary)
        else:
            offset = reference - secondary
        return expr.sign * offset
    return _evaluate(expr.left, reference, secondary) + _evaluate(expr.right, reference, secondary)


def resolve(coordinate: Coordinate, reference: int, secondary: int | None = None) -> int:
    """Resolve ``coordinate`` to a signed pixel value.

    ``reference`` is the length percentages are taken of; ``secondary`` is the
    length of the box being placed, used by named alignments (``"right"`` is
    ``reference - secondary``). Negative results are returned as-is; reading
    them as "from the far edge" is up to the caller.
    """
    expr = parse_coordinate(coordinate)
    return _evaluate(expr, int(reference), int(secondary or 0))
