"""Parse free-form coordinate text into validated annotation points."""

from __future__ import annotations

import re
from typing import Iterable, List

from .errors import FormatError, RangeError
from .types import Bounds, Coordinate

GRID_COLUMNS = 5

# (x,y) | x,y | x y, optionally followed by a comma-free label
_TOKEN_RE = re.compile(r"^\(?([0-9]{1,9})[,\s]+([0-9]{1,9})\)?(?:[,\s]+([^,]+))?$")


def grid_label(index: int) -> str:
    """Label for the ``index``-th point when laid out on a 5-column grid."""
    row = index // GRID_COLUMNS + 1
    col = index % GRID_COLUMNS + 1
    return f"{row}-{col}"


def tokenize(text: str) -> List[str]:
    """Split input into coordinate tokens.

    Every non-empty line is one token, except lines that contain a space and
    no parenthesis: those hold several space-separated tokens.
    """
    tokens: List[str] = []
    for raw_line in text.strip().split("\n"):
        line = raw_line.strip()
        if not line:
            continue
        if " " in line and "(" not in line and ")" not in line:
            tokens.extend(line.split())
        else:
            tokens.append(line)
    return tokens


def in_bounds(x: int, y: int, bounds: Bounds) -> bool:
    return 0 <= x <= bounds["width"] and 0 <= y <= bounds["height"]


def parse_coordinates(text: str, bounds: Bounds) -> List[Coordinate]:
    """Parse ``text`` into coordinates, all-or-nothing.

    Raises :class:`FormatError` for the first token that does not match the
    grammar and :class:`RangeError` for the first point outside ``bounds``.
    """
    parsed: List[Coordinate] = []
    for index, token in enumerate(tokenize(text)):
        position = index + 1
        match = _TOKEN_RE.match(token)
        if match is None:
            raise FormatError(position, token)
        x = int(match.group(1))
        y = int(match.group(2))
        label = (match.group(3) or "").strip() or grid_label(index)
        if not in_bounds(x, y, bounds):
            raise RangeError(position, (x, y), bounds["width"], bounds["height"])
        parsed.append({"x": x, "y": y, "label": label, "visible": True})
    return parsed


def clean_label(label: str) -> str:
    """Make ``label`` safe for the token grammar: no commas, single spaces."""
    return " ".join(label.replace(",", " ").split())


def format_coordinate(coord: Coordinate) -> str:
    label = clean_label(coord["label"])
    if not label:
        return f"{coord['x']},{coord['y']}"
    if " " in label:
        # parenthesized lines are not split on spaces
        return f"({coord['x']},{coord['y']}) {label}"
    return f"{coord['x']},{coord['y']},{label}"


def format_coordinates(coordinates: Iterable[Coordinate]) -> str:
    """Render coordinates as lines the parser reads back unchanged."""
    return "\n".join(format_coordinate(c) for c in coordinates)


__all__ = [
    "GRID_COLUMNS",
    "grid_label",
    "tokenize",
    "in_bounds",
    "parse_coordinates",
    "clean_label",
    "format_coordinate",
    "format_coordinates",
]
