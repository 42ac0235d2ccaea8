"""FastAPI server exposing coordinate parsing, map geometry and OCR capture."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from .catalog import MapCatalog
from .errors import CoordinateError, OCRBatchError, OCRError
from .extraction import extract_tagged_coordinates
from .geometry import display_to_map, map_to_display
from .ocr import decode_image_payload, detections_text, fetch_image, image_size, recognize_batch, recognize_text
from .parsing import in_bounds, parse_coordinates
from .session import MAX_SESSIONS, AnnotationSession, SessionStore
from .types import Container, Coordinate, MapDefinition

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE_HINT = os.getenv("ANNOTATOR_OCR_LANGUAGE", "zh")


class ContainerModel(BaseModel):
    left: float = 0.0
    top: float = 0.0
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)

    def as_container(self) -> Container:
        return {"left": self.left, "top": self.top, "width": self.width, "height": self.height}


class CoordinateModel(BaseModel):
    x: int
    y: int
    label: str = ""
    visible: bool = True


class ParseRequest(BaseModel):
    text: str
    map_id: str


class ExtractRequest(BaseModel):
    text: str


class MarkerRequest(BaseModel):
    map_id: str
    coordinate: CoordinateModel
    container: ContainerModel


class PointerRequest(BaseModel):
    map_id: str
    x: float
    y: float
    container: ContainerModel


class CreateSessionRequest(BaseModel):
    map_id: str


class ApplyTextRequest(BaseModel):
    text: str


class ClickRequest(BaseModel):
    x: float
    y: float
    container: ContainerModel


class BatchOCRRequest(BaseModel):
    images: List[str] = Field(..., min_length=1, description="Data URLs or base64 image payloads")
    language_hint: Optional[str] = Field(default=None, description="Language hint for OCR")


class OCRRequest(BaseModel):
    image_url: Optional[str] = None
    image_b64: Optional[str] = None
    language_hint: Optional[str] = Field(default=None, description="Language hint for OCR")

    def load_bytes(self) -> bytes:
        if self.image_b64:
            return decode_image_payload(self.image_b64)
        if self.image_url:
            return fetch_image(self.image_url)
        raise HTTPException(status_code=400, detail="Provide image_url or image_b64")


def _load_catalog() -> MapCatalog:
    catalog_path = os.getenv("ANNOTATOR_MAP_CATALOG")
    if catalog_path:
        return MapCatalog.from_json(Path(catalog_path))
    return MapCatalog.default()


def _catalog(request: Request) -> MapCatalog:
    return request.app.state.catalog


def _select_map(request: Request, map_id: str) -> MapDefinition:
    map_def = _catalog(request).select(map_id)
    if map_def is None:
        raise HTTPException(status_code=404, detail=f"Unknown map '{map_id}'")
    return map_def


def _session(request: Request, session_id: str) -> AnnotationSession:
    session = request.app.state.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session '{session_id}'")
    return session


def _session_payload(session: AnnotationSession, message: str | None = None, **extra: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": session.id,
        "map": session.map,
        "coordinates": session.coordinates,
        "text": session.to_text(),
        "capacity": session.capacity,
    }
    if message:
        payload["message"] = message
    payload.update(extra)
    return payload


def _dropped_message(dropped: int, capacity: int) -> str | None:
    if not dropped:
        return None
    return f"At most {capacity} locations can be marked; {dropped} were not added"


def create_app(catalog: MapCatalog | None = None, max_sessions: int | None = None) -> FastAPI:
    app = FastAPI(title="Map Annotator API", version="0.1.0")
    app.state.catalog = catalog if catalog is not None else _load_catalog()
    if max_sessions is None:
        max_sessions = int(os.getenv("ANNOTATOR_MAX_SESSIONS", str(MAX_SESSIONS)))
    app.state.sessions = SessionStore(max_sessions=max_sessions)

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/maps")
    def list_maps(request: Request) -> Dict[str, Any]:
        return {"maps": _catalog(request).list_maps()}

    @app.get("/maps/{map_id}")
    def get_map(map_id: str, request: Request) -> Dict[str, Any]:
        return dict(_select_map(request, map_id))

    @app.post("/coordinates/parse")
    def parse(req: ParseRequest, request: Request) -> Dict[str, Any]:
        map_def = _select_map(request, req.map_id)
        try:
            coordinates = parse_coordinates(req.text, map_def)
        except CoordinateError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return {"coordinates": coordinates}

    @app.post("/coordinates/extract")
    def extract(req: ExtractRequest) -> Dict[str, Any]:
        return {"coordinates": extract_tagged_coordinates(req.text)}

    @app.post("/geometry/marker")
    def marker(req: MarkerRequest, request: Request) -> Dict[str, float]:
        map_def = _select_map(request, req.map_id)
        coord: Coordinate = {
            "x": req.coordinate.x,
            "y": req.coordinate.y,
            "label": req.coordinate.label,
            "visible": req.coordinate.visible,
        }
        return dict(map_to_display(coord, map_def, req.container.as_container()))

    @app.post("/geometry/pointer")
    def pointer(req: PointerRequest, request: Request) -> Dict[str, Any]:
        map_def = _select_map(request, req.map_id)
        mapped = display_to_map(req.x, req.y, req.container.as_container(), map_def)
        if mapped is None:
            return {"coordinate": None}
        return {"coordinate": {"x": mapped[0], "y": mapped[1]}}

    @app.post("/sessions", status_code=201)
    def create_session(req: CreateSessionRequest, request: Request) -> Dict[str, Any]:
        map_def = _select_map(request, req.map_id)
        return _session_payload(request.app.state.sessions.create(map_def))

    @app.get("/sessions/{session_id}")
    def get_session(session_id: str, request: Request) -> Dict[str, Any]:
        session = _session(request, session_id)
        with session.lock:
            return _session_payload(session)

    @app.delete("/sessions/{session_id}", status_code=204)
    def delete_session(session_id: str, request: Request) -> None:
        if not request.app.state.sessions.discard(session_id):
            raise HTTPException(status_code=404, detail=f"Unknown session '{session_id}'")

    @app.put("/sessions/{session_id}/map")
    def change_map(session_id: str, req: CreateSessionRequest, request: Request) -> Dict[str, Any]:
        session = _session(request, session_id)
        map_def = _select_map(request, req.map_id)
        with session.lock:
            session.change_map(map_def)
            return _session_payload(session)

    @app.post("/sessions/{session_id}/coordinates")
    def apply_text(session_id: str, req: ApplyTextRequest, request: Request) -> Dict[str, Any]:
        session = _session(request, session_id)
        if not req.text.strip():
            raise HTTPException(status_code=422, detail="Enter coordinate data first")
        with session.lock:
            try:
                coordinates = parse_coordinates(req.text, session.map)
            except CoordinateError as exc:
                raise HTTPException(status_code=422, detail=str(exc)) from exc
            dropped = session.apply_parsed_coordinates(coordinates)
            return _session_payload(session, _dropped_message(dropped, session.capacity), dropped=dropped)

    @app.post("/sessions/{session_id}/click")
    def click(session_id: str, req: ClickRequest, request: Request) -> Dict[str, Any]:
        session = _session(request, session_id)
        with session.lock:
            mapped = display_to_map(req.x, req.y, req.container.as_container(), session.map)
            if mapped is None:
                return _session_payload(session, added=None)
            added = session.add_point(*mapped)
            if added is None:
                message = f"At most {session.capacity} locations can be marked"
                return _session_payload(session, message, added=None)
            return _session_payload(session, added=added)

    @app.post("/sessions/{session_id}/coordinates/{index}/toggle")
    def toggle(session_id: str, index: int, request: Request) -> Dict[str, Any]:
        session = _session(request, session_id)
        with session.lock:
            try:
                session.toggle_visibility(index)
            except IndexError as exc:
                raise HTTPException(status_code=404, detail=str(exc)) from exc
            return _session_payload(session)

    @app.delete("/sessions/{session_id}/coordinates")
    def clear(session_id: str, request: Request) -> Dict[str, Any]:
        session = _session(request, session_id)
        with session.lock:
            session.clear()
            return _session_payload(session)

    @app.post("/sessions/{session_id}/ocr")
    def session_ocr(session_id: str, req: BatchOCRRequest, request: Request) -> Dict[str, Any]:
        session = _session(request, session_id)
        hint = req.language_hint or DEFAULT_LANGUAGE_HINT
        try:
            results = recognize_batch(req.images, language_hint=hint)
        except OCRBatchError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc

        extracted = []
        for detections in results:
            extracted.extend(extract_tagged_coordinates(detections_text(detections)))

        with session.lock:
            accepted: List[Coordinate] = []
            rejected: List[Dict[str, Any]] = []
            for entry in extracted:
                if in_bounds(entry["x"], entry["y"], session.map):
                    accepted.append({"x": entry["x"], "y": entry["y"], "label": entry["location"], "visible": True})
                else:
                    rejected.append(dict(entry))
            dropped = session.extend(accepted)
            if not extracted:
                message: str | None = "No tagged coordinates found in the images"
            else:
                message = _dropped_message(dropped, session.capacity)
            logger.info(
                "Session %s: OCR over %d images found %d coordinates (%d out of bounds, %d over the limit)",
                session.id,
                len(req.images),
                len(extracted),
                len(rejected),
                dropped,
            )
            return _session_payload(session, message, extracted=extracted, rejected=rejected, dropped=dropped)

    @app.post("/ocr")
    def ocr(req: OCRRequest) -> Dict[str, Any]:
        hint = req.language_hint or DEFAULT_LANGUAGE_HINT
        try:
            image_bytes = req.load_bytes()
            width, height = image_size(image_bytes)
            detections = recognize_text(image_bytes, language_hint=hint)
        except OCRError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        text = detections_text(detections)
        return {
            "ocr_image_size": {"w": width, "h": height},
            "detections": detections,
            "text": text,
            "coordinates": extract_tagged_coordinates(text),
        }

    return app


app: FastAPI = create_app()


__all__ = ["app", "create_app"]
