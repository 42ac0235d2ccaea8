"""OCR helpers for reading tagged coordinates off screenshots."""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from typing import Any, Iterable, List, Sequence, Tuple, cast

import requests
from PIL import Image, UnidentifiedImageError

from .errors import OCRBatchError, OCRError
from .types import BoundingQuad, OCRDetection

try:  # pragma: no cover - optional dependency
    from google.cloud import vision as _vision  # type: ignore[import]
except ImportError:  # pragma: no cover - optional dependency
    _vision = None

vision = cast(Any | None, _vision)

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:image/[^;]+;base64,", re.IGNORECASE)

# google.cloud.vision TextAnnotation.DetectedBreak.BreakType values
_SPACE_BREAKS = {1, 2}
_LINE_BREAKS = {3, 5}


def decode_image_payload(payload: str) -> bytes:
    """Decode a ``data:image/...;base64,`` URL or bare base64 string."""
    data = _DATA_URL_RE.sub("", payload.strip(), count=1)
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise OCRError("image payload is not valid base64") from exc


def fetch_image(url: str, timeout: float = 20) -> bytes:
    logger.info("Fetching image from %s", url)
    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as exc:
        raise OCRError(f"failed to fetch image URL: {exc}") from exc
    if not response.ok:
        raise OCRError(f"failed to fetch image URL: HTTP {response.status_code}")
    return response.content


def image_size(image_bytes: bytes) -> Tuple[int, int]:
    try:
        with Image.open(io.BytesIO(image_bytes)) as im:
            return im.size
    except UnidentifiedImageError as exc:
        raise OCRError("payload is not a recognizable image") from exc


def _quad_from_vertices(vertices: Iterable[Any]) -> BoundingQuad | None:
    points = [(int(getattr(v, "x", 0)), int(getattr(v, "y", 0))) for v in vertices]
    if not points:
        return None
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return {"x": min(xs), "y": min(ys), "width": max(xs) - min(xs), "height": max(ys) - min(ys)}


def _paragraph_text(paragraph: Any) -> str:
    parts: List[str] = []
    for word in getattr(paragraph, "words", []):
        for symbol in getattr(word, "symbols", []):
            parts.append(str(getattr(symbol, "text", "")))
            detected_break = getattr(getattr(symbol, "property", None), "detected_break", None)
            break_type = int(getattr(detected_break, "type_", 0) or 0)
            if break_type in _SPACE_BREAKS:
                parts.append(" ")
            elif break_type in _LINE_BREAKS:
                parts.append("\n")
    return "".join(parts).strip()


def recognize_text(image_bytes: bytes, language_hint: str | None = "zh") -> List[OCRDetection]:
    """Run Google Cloud Vision document OCR on one image.

    Returns one detection per recognized paragraph, each with the paragraph
    text, its axis-aligned bounding box in image pixels and the confidence
    reported by Vision.
    """
    if vision is None:
        raise OCRError("google-cloud-vision is not installed")

    try:
        client = vision.ImageAnnotatorClient()
        image = vision.Image(content=image_bytes)
        image_context: Any | None = None
        if language_hint:
            image_context = vision.ImageContext(language_hints=[language_hint])
        response: Any = client.document_text_detection(image=image, image_context=image_context)
    except Exception as exc:
        logger.exception("Vision OCR request failed")
        raise OCRError(str(exc) or exc.__class__.__name__) from exc

    error_message = str(getattr(getattr(response, "error", None), "message", "") or "")
    if error_message:
        raise OCRError(error_message)

    detections: List[OCRDetection] = []
    annotation: Any = getattr(response, "full_text_annotation", None)
    for page in getattr(annotation, "pages", []):
        for block in getattr(page, "blocks", []):
            for paragraph in getattr(block, "paragraphs", []):
                text = _paragraph_text(paragraph)
                if not text:
                    continue
                detection: OCRDetection = {"text": text}
                bounding_box: Any = getattr(paragraph, "bounding_box", None)
                quad = _quad_from_vertices(getattr(bounding_box, "vertices", []))
                if quad is not None:
                    detection["bounding_quad"] = quad
                confidence = getattr(paragraph, "confidence", None)
                if isinstance(confidence, (int, float)):
                    detection["confidence"] = float(confidence)
                detections.append(detection)
    logger.info("Vision OCR returned %d text fragments", len(detections))
    return detections


def detections_text(detections: Sequence[OCRDetection]) -> str:
    """Concatenate detected text in reading order, one fragment per line."""
    return "\n".join(d["text"] for d in detections)


def recognize_batch(payloads: Sequence[str], language_hint: str | None = "zh") -> List[List[OCRDetection]]:
    """OCR each image payload in order, stopping at the first failure.

    Results of images processed before the failing one are discarded; the
    raised :class:`OCRBatchError` names the failing image.
    """
    results: List[List[OCRDetection]] = []
    for index, payload in enumerate(payloads):
        try:
            image_bytes = decode_image_payload(payload)
            image_size(image_bytes)
            results.append(recognize_text(image_bytes, language_hint=language_hint))
        except OCRError as exc:
            logger.warning("OCR batch aborted at image %d of %d: %s", index + 1, len(payloads), exc)
            raise OCRBatchError(index, str(exc)) from exc
    return results


__all__ = [
    "decode_image_payload",
    "fetch_image",
    "image_size",
    "recognize_text",
    "detections_text",
    "recognize_batch",
]
