"""In-memory annotation sessions holding the marked coordinates for one map."""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Dict, List, Optional, Sequence, Tuple, cast

from .parsing import clean_label, format_coordinates, grid_label
from .types import Coordinate, MapDefinition

MAX_COORDINATES = 20
MAX_SESSIONS = 500

logger = logging.getLogger(__name__)


class AnnotationSession:
    """Ordered set of at most :data:`MAX_COORDINATES` points on one map."""

    def __init__(self, map_def: MapDefinition, session_id: str | None = None, capacity: int = MAX_COORDINATES) -> None:
        self.id = session_id or uuid.uuid4().hex
        self.map = map_def
        self.capacity = capacity
        # held by request handlers around each transition
        self.lock = threading.Lock()
        self._coordinates: List[Coordinate] = []

    @property
    def coordinates(self) -> List[Coordinate]:
        return [cast(Coordinate, dict(c)) for c in self._coordinates]

    def __len__(self) -> int:
        return len(self._coordinates)

    @property
    def is_full(self) -> bool:
        return len(self._coordinates) >= self.capacity

    def _take(self, incoming: Sequence[Coordinate], room: int, start: int) -> Tuple[List[Coordinate], int]:
        accepted: List[Coordinate] = []
        for slot, coord in enumerate(incoming[: max(0, room)], start):
            entry = cast(Coordinate, dict(coord))
            # missing labels fall back to the grid slot the point lands in
            entry["label"] = clean_label(entry.get("label") or "") or grid_label(slot)
            accepted.append(entry)
        return accepted, len(incoming) - len(accepted)

    def apply_parsed_coordinates(self, coordinates: Sequence[Coordinate]) -> int:
        """Replace the set with ``coordinates``; returns how many were dropped."""
        accepted, dropped = self._take(coordinates, self.capacity, 0)
        self._coordinates = accepted
        if dropped:
            logger.info("Session %s: dropped %d coordinates over the limit", self.id, dropped)
        return dropped

    def extend(self, coordinates: Sequence[Coordinate]) -> int:
        """Append ``coordinates`` up to the remaining capacity; returns how many were dropped."""
        accepted, dropped = self._take(coordinates, self.capacity - len(self._coordinates), len(self._coordinates))
        self._coordinates.extend(accepted)
        if dropped:
            logger.info("Session %s: dropped %d coordinates over the limit", self.id, dropped)
        return dropped

    def add_point(self, x: int, y: int) -> Optional[Coordinate]:
        """Append a clicked point labelled by its grid slot, or None when full."""
        if self.is_full:
            return None
        coord: Coordinate = {"x": x, "y": y, "label": grid_label(len(self._coordinates)), "visible": True}
        self._coordinates.append(coord)
        return cast(Coordinate, dict(coord))

    def toggle_visibility(self, index: int) -> Coordinate:
        if not 0 <= index < len(self._coordinates):
            raise IndexError(f"no coordinate at index {index}")
        coord = self._coordinates[index]
        coord["visible"] = not coord["visible"]
        return cast(Coordinate, dict(coord))

    def clear(self) -> None:
        self._coordinates = []

    def change_map(self, map_def: MapDefinition) -> None:
        self.map = map_def
        self.clear()

    def to_text(self) -> str:
        return format_coordinates(self._coordinates)


class SessionStore:
    """Lock-guarded sessions keyed by id; the oldest are evicted past ``max_sessions``."""

    def __init__(self, max_sessions: int = MAX_SESSIONS) -> None:
        self._max_sessions = max_sessions
        self._lock = threading.Lock()
        self._sessions: Dict[str, AnnotationSession] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def create(self, map_def: MapDefinition) -> AnnotationSession:
        session = AnnotationSession(map_def)
        with self._lock:
            self._sessions[session.id] = session
            # dicts keep insertion order, so the first keys are the oldest
            while len(self._sessions) > self._max_sessions:
                evicted = next(iter(self._sessions))
                del self._sessions[evicted]
                logger.info("Evicted session %s", evicted)
        logger.info("Created session %s on map %s", session.id, map_def["id"])
        return session

    def get(self, session_id: str) -> Optional[AnnotationSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def discard(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None


__all__ = ["MAX_COORDINATES", "MAX_SESSIONS", "AnnotationSession", "SessionStore"]
