"""Registry of the game maps available for annotation."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Iterable, List, Optional, Tuple, cast

from .types import Bounds, MapDefinition

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ("png", "jpg", "jpeg", "svg")

_DIMENSIONS_RE = re.compile(
    r"^(.+)_([0-9]{1,9})_([0-9]{1,9})\.(" + "|".join(IMAGE_EXTENSIONS) + r")$",
    re.IGNORECASE,
)

DEFAULT_MAPS: Tuple[MapDefinition, ...] = (
    {
        "id": "jian_ye_cheng",
        "name": "建业城",
        "image": "/maps/jian_ye_cheng_287_143.png",
        "width": 287,
        "height": 143,
        "description": "茂密的森林区域，包含多个资源点和隐藏路径",
    },
    {
        "id": "zhu_zi_guo",
        "name": "朱紫国",
        "image": "/maps/zhu_zi_guo_191_119.png",
        "width": 191,
        "height": 119,
        "description": "广阔的沙漠地带，视野开阔但资源稀少",
    },
    {
        "id": "map3",
        "name": "城市地图",
        "image": "/maps/city-map.jpg.svg",
        "width": 1200,
        "height": 900,
        "description": "现代化城市区域，建筑密集，适合巷战",
    },
    {
        "id": "map4",
        "name": "雪山地图",
        "image": "/maps/snow-mountain-map.jpg.svg",
        "width": 960,
        "height": 720,
        "description": "冰雪覆盖的山脉，地形复杂，视野受限",
    },
)


def resolve_dimensions_from_ref(image_ref: str) -> Optional[Bounds]:
    """Decode ``name_WIDTH_HEIGHT.ext`` from the file name of ``image_ref``."""
    filename = PurePosixPath(image_ref.replace("\\", "/")).name
    match = _DIMENSIONS_RE.match(filename)
    if match is None:
        return None
    width = int(match.group(2))
    height = int(match.group(3))
    if width <= 0 or height <= 0:
        return None
    return {"width": width, "height": height}


def _positive_int(value: Any) -> bool:
    # bool is an int subclass; JSON true must not read as 1
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _validate(entry: Any) -> MapDefinition:
    if not isinstance(entry, dict):
        raise ValueError("map entry must be an object")
    raw = cast(Dict[str, Any], entry)
    for key in ("id", "name", "image"):
        if not isinstance(raw.get(key), str) or not raw[key]:
            raise ValueError(f"map entry is missing '{key}'")
    width, height = raw.get("width"), raw.get("height")
    if not _positive_int(width) or not _positive_int(height):
        raise ValueError(f"map '{raw['id']}' needs positive integer width and height")
    definition: MapDefinition = {
        "id": raw["id"],
        "name": raw["name"],
        "image": raw["image"],
        "width": width,
        "height": height,
    }
    description = raw.get("description")
    if isinstance(description, str):
        definition["description"] = description
    return definition


class MapCatalog:
    """Immutable, ordered set of map definitions built once at startup."""

    def __init__(self, maps: Iterable[MapDefinition]) -> None:
        entries = tuple(_validate(m) for m in maps)
        ids = [m["id"] for m in entries]
        if len(set(ids)) != len(ids):
            raise ValueError("map ids must be unique")
        self._maps = entries
        self._by_id = {m["id"]: m for m in entries}

    @classmethod
    def default(cls) -> "MapCatalog":
        return cls(DEFAULT_MAPS)

    @classmethod
    def from_json(cls, path: Path) -> "MapCatalog":
        with path.open("r", encoding="utf-8") as fh:
            raw: Any = json.load(fh)
        if not isinstance(raw, list):
            raise ValueError(f"{path} must contain a list of maps")
        catalog = cls(cast(List[Any], raw))
        logger.info("Loaded %d maps from %s", len(catalog), path)
        return catalog

    def __len__(self) -> int:
        return len(self._maps)

    def list_maps(self) -> List[MapDefinition]:
        return [cast(MapDefinition, dict(m)) for m in self._maps]

    def get(self, map_id: str) -> Optional[MapDefinition]:
        entry = self._by_id.get(map_id)
        return cast(MapDefinition, dict(entry)) if entry is not None else None

    def select(self, map_id: str) -> Optional[MapDefinition]:
        """Return the map ready for use, preferring dimensions encoded in its file name."""
        definition = self.get(map_id)
        if definition is None:
            return None
        decoded = resolve_dimensions_from_ref(definition["image"])
        if decoded is not None:
            if (decoded["width"], decoded["height"]) != (definition["width"], definition["height"]):
                logger.debug(
                    "Map %s: file name dimensions %dx%d override declared %dx%d",
                    map_id,
                    decoded["width"],
                    decoded["height"],
                    definition["width"],
                    definition["height"],
                )
            definition["width"] = decoded["width"]
            definition["height"] = decoded["height"]
        return definition


__all__ = ["IMAGE_EXTENSIONS", "DEFAULT_MAPS", "MapCatalog", "resolve_dimensions_from_ref"]
