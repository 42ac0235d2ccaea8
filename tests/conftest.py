"""
Pytest configuration and fixtures
"""
import base64
import io
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from map_annotator import ocr
from map_annotator.catalog import MapCatalog
from map_annotator.main import create_app


@pytest.fixture
def catalog():
    """Default map catalog."""
    return MapCatalog.default()


@pytest.fixture
def client(catalog):
    """API client backed by a fresh app and session store."""
    return TestClient(create_app(catalog))


@pytest.fixture
def png_data_url():
    """Small PNG screenshot encoded as a data URL."""
    buffer = io.BytesIO()
    Image.new("RGB", (40, 20), "white").save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def _symbol(text, break_type=0):
    return SimpleNamespace(
        text=text,
        property=SimpleNamespace(detected_break=SimpleNamespace(type_=break_type)),
    )


def _paragraph(text, x=0, y=0, width=100, height=20, confidence=0.9):
    symbols = [_symbol(ch) for ch in text]
    vertices = [
        SimpleNamespace(x=x, y=y),
        SimpleNamespace(x=x + width, y=y),
        SimpleNamespace(x=x + width, y=y + height),
        SimpleNamespace(x=x, y=y + height),
    ]
    return SimpleNamespace(
        words=[SimpleNamespace(symbols=symbols)],
        bounding_box=SimpleNamespace(vertices=vertices),
        confidence=confidence,
    )


class FakeVision:
    """Stand-in for the google.cloud.vision module returning scripted paragraphs."""

    def __init__(self, pages_text=None, error=""):
        self.pages_text = list(pages_text or [])
        self.error = error
        self.calls = []

    def ImageAnnotatorClient(self):
        return self

    def Image(self, content):
        return SimpleNamespace(content=content)

    def ImageContext(self, language_hints):
        return SimpleNamespace(language_hints=language_hints)

    def document_text_detection(self, image, image_context=None):
        self.calls.append((image, image_context))
        texts = self.pages_text.pop(0) if self.pages_text else []
        if isinstance(texts, Exception):
            raise texts
        paragraphs = [_paragraph(t, y=i * 30) for i, t in enumerate(texts)]
        page = SimpleNamespace(blocks=[SimpleNamespace(paragraphs=paragraphs)])
        return SimpleNamespace(
            error=SimpleNamespace(message=self.error),
            full_text_annotation=SimpleNamespace(pages=[page]),
        )


@pytest.fixture
def fake_vision(monkeypatch):
    """Install a scripted Vision module; set ``pages_text`` per call."""
    fake = FakeVision()
    monkeypatch.setattr(ocr, "vision", fake)
    return fake
