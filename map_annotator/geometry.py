"""Conversions between map coordinates and the letterboxed on-screen image.

The map's logical origin is its bottom-left corner with y growing upward;
the render surface has its origin top-left with y growing downward. The
image is scaled to fit ("contain") inside a container whose aspect ratio may
differ, so it is centered with empty bands on one axis.
"""

from __future__ import annotations

from typing import Optional, Tuple

from .types import Container, Coordinate, DisplayRect, MapDefinition, MarkerPosition

# absorbs float error when a pointer sits exactly on the image edge
_EDGE_TOLERANCE = 1e-9


def display_rect(container_width: float, container_height: float, map_def: MapDefinition) -> DisplayRect:
    """Return where the map image is drawn inside a container of the given size."""
    if container_width <= 0 or container_height <= 0:
        raise ValueError("container dimensions must be positive")
    image_ratio = map_def["width"] / map_def["height"]
    container_ratio = container_width / container_height

    if container_ratio > image_ratio:
        # container is wider: fill height, pillarbox left/right
        height = float(container_height)
        width = height * image_ratio
        offset_x = (container_width - width) / 2.0
        offset_y = 0.0
    else:
        width = float(container_width)
        height = width / image_ratio
        offset_x = 0.0
        offset_y = (container_height - height) / 2.0

    return {"offset_x": offset_x, "offset_y": offset_y, "width": width, "height": height}


def map_fraction(coord: Coordinate, map_def: MapDefinition) -> Tuple[float, float]:
    """Fractional position of ``coord`` within the image, top-left origin."""
    left = coord["x"] / map_def["width"]
    top = (map_def["height"] - coord["y"]) / map_def["height"]
    return left, top


def map_to_display_pixel(coord: Coordinate, map_def: MapDefinition, container: Container) -> Tuple[float, float]:
    """Container-relative pixel position of ``coord``."""
    rect = display_rect(container["width"], container["height"], map_def)
    left, top = map_fraction(coord, map_def)
    return rect["offset_x"] + rect["width"] * left, rect["offset_y"] + rect["height"] * top


def map_to_display(coord: Coordinate, map_def: MapDefinition, container: Container) -> MarkerPosition:
    """Marker placement as percentages of the full container extent."""
    abs_x, abs_y = map_to_display_pixel(coord, map_def, container)
    return {
        "left_percent": abs_x / container["width"] * 100.0,
        "top_percent": abs_y / container["height"] * 100.0,
    }


def display_to_map(
    pointer_x: float, pointer_y: float, container: Container, map_def: MapDefinition
) -> Optional[Tuple[int, int]]:
    """Map a client-space pointer position to map coordinates.

    Returns ``None`` when the pointer is outside the drawn image, including
    the letterbox bands.
    """
    rect = display_rect(container["width"], container["height"], map_def)
    relative_x = pointer_x - container["left"] - rect["offset_x"]
    relative_y = pointer_y - container["top"] - rect["offset_y"]
    if not (-_EDGE_TOLERANCE <= relative_x <= rect["width"] + _EDGE_TOLERANCE
            and -_EDGE_TOLERANCE <= relative_y <= rect["height"] + _EDGE_TOLERANCE):
        return None

    scale_x = map_def["width"] / rect["width"]
    scale_y = map_def["height"] / rect["height"]
    map_x = _round_half_up(relative_x * scale_x)
    map_y = _round_half_up((rect["height"] - relative_y) * scale_y)
    return map_x, map_y


def _round_half_up(value: float) -> int:
    # builtin round() is banker's rounding; pointer mapping rounds .5 upward
    return int(value + 0.5)


__all__ = ["display_rect", "map_fraction", "map_to_display_pixel", "map_to_display", "display_to_map"]
