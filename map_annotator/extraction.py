"""Extract ``[坐标]label(x,y)`` tagged coordinates from noisy text."""

from __future__ import annotations

import re
from typing import List

from .types import ExtractedCoordinate

COORDINATE_TAG = "[坐标]"

# The label may not run into the next tag, so a malformed pair such as
# "(abc,def)" is skipped instead of swallowing the following entry.
_TAGGED_RE = re.compile(
    re.escape(COORDINATE_TAG) + r"((?:(?!" + re.escape(COORDINATE_TAG) + r").)*?)\(([0-9]{1,9}),([0-9]{1,9})\)"
)


def extract_tagged_coordinates(text: str) -> List[ExtractedCoordinate]:
    """Return every tagged coordinate in ``text``, left to right.

    Never raises; text without a well-formed tag yields an empty list.
    """
    results: List[ExtractedCoordinate] = []
    for match in _TAGGED_RE.finditer(text or ""):
        results.append(
            {
                "location": match.group(1).strip(),
                "x": int(match.group(2)),
                "y": int(match.group(3)),
            }
        )
    return results


__all__ = ["COORDINATE_TAG", "extract_tagged_coordinates"]
