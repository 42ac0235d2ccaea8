"""Typed structures shared by the annotator modules."""

from __future__ import annotations

from typing import TypedDict


class Bounds(TypedDict):
    """Logical extent of a map, in map units."""

    width: int
    height: int


class MapDefinitionRequired(TypedDict):
    """Fields that every catalog entry must expose."""

    id: str
    name: str
    image: str
    width: int
    height: int


class MapDefinition(MapDefinitionRequired, total=False):
    """Catalog entry with optional human-readable description."""

    description: str


class Coordinate(TypedDict):
    """Annotated point in the map's bottom-left origin coordinate system."""

    x: int
    y: int
    label: str
    visible: bool


class ExtractedCoordinate(TypedDict):
    """Location/coordinate pair pulled out of tagged free text."""

    location: str
    x: int
    y: int


class DisplayRect(TypedDict):
    """Area the map image occupies inside its container, in container pixels."""

    offset_x: float
    offset_y: float
    width: float
    height: float


class Container(TypedDict):
    """Client-space rectangle of the element that hosts the map image."""

    left: float
    top: float
    width: float
    height: float


class MarkerPosition(TypedDict):
    left_percent: float
    top_percent: float


class BoundingQuad(TypedDict):
    x: int
    y: int
    width: int
    height: int


class OCRDetectionRequired(TypedDict):
    text: str


class OCRDetection(OCRDetectionRequired, total=False):
    """Recognized text fragment with optional placement metadata."""

    bounding_quad: BoundingQuad
    confidence: float


__all__ = [
    "Bounds",
    "MapDefinition",
    "Coordinate",
    "ExtractedCoordinate",
    "DisplayRect",
    "Container",
    "MarkerPosition",
    "BoundingQuad",
    "OCRDetection",
]
