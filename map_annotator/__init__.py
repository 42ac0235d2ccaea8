"""Game map annotation backend package."""

from fastapi import FastAPI

from .main import app as _app
from .main import create_app

app: FastAPI = _app

__all__ = ["app", "create_app"]
