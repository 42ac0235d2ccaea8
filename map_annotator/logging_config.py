"""Logging configuration for the annotator service."""

from __future__ import annotations

import logging.config
import os
from pathlib import Path
from typing import Any, Dict

_logging_configured = False

_ROTATION = {"maxBytes": 5 * 1024 * 1024, "backupCount": 5, "encoding": "utf-8", "delay": True}


def build_logging_config() -> Dict[str, Any]:
    """Return a dictConfig mapping driven by ``ANNOTATOR_LOG_*`` variables."""
    log_dir = Path(os.getenv("ANNOTATOR_LOG_DIR", "logs"))
    log_level = os.getenv("ANNOTATOR_LOG_LEVEL", "INFO").upper()
    log_path = log_dir / os.getenv("ANNOTATOR_LOG_FILE", "map-annotator.log")
    access_log_path = log_dir / os.getenv("ANNOTATOR_ACCESS_LOG_FILE", "map-annotator-access.log")

    app_handlers = ["console", "file"]
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "()": "uvicorn.logging.DefaultFormatter",
                "fmt": "%(levelprefix)s %(asctime)s %(name)s: %(message)s",
                "use_colors": None,
            },
            "access": {
                "()": "uvicorn.logging.AccessFormatter",
                "fmt": "%(levelprefix)s %(client_addr)s - \"%(request_line)s\" %(status_code)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stderr",
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "default",
                "filename": str(log_path),
                **_ROTATION,
            },
            "access_file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "access",
                "filename": str(access_log_path),
                **_ROTATION,
            },
        },
        "loggers": {
            "map_annotator": {"handlers": app_handlers, "level": log_level, "propagate": False},
            "uvicorn.error": {"handlers": app_handlers, "level": log_level, "propagate": False},
            "uvicorn.access": {"handlers": ["access_file"], "level": log_level, "propagate": False},
        },
        "root": {"handlers": ["console"], "level": "WARNING"},
    }


def configure_logging() -> None:
    """Install the logging configuration once per process."""
    global _logging_configured
    if _logging_configured:
        return

    config = build_logging_config()
    Path(config["handlers"]["file"]["filename"]).parent.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(config)
    _logging_configured = True


__all__ = ["build_logging_config", "configure_logging"]
