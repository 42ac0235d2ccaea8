"""Run the annotator API under uvicorn."""

from __future__ import annotations

import os

import uvicorn

from .logging_config import configure_logging


def run() -> None:
    configure_logging()
    uvicorn.run(
        "map_annotator.main:app",
        host=os.getenv("ANNOTATOR_HOST", "127.0.0.1"),
        port=int(os.getenv("ANNOTATOR_PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    run()
