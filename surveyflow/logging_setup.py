"""Logging configuration for the survey service.

Routes every `surveyflow.*` module logger (event-style `key=value` lines such
as `autosave_failed` or `session_expired`) to one stdout handler. SQL echo
from the engine stays at WARNING so autosave ticks do not flood the output.
The level can be raised or lowered with the `LOG_LEVEL` environment
variable.
"""
from __future__ import annotations
import logging
import os
from logging.config import dictConfig

DEFAULT_LEVEL = "INFO"


def _dict_config(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s:%(name)s:%(message)s",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "default",
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": level, "handlers": ["console"]},
        "loggers": {
            "surveyflow": {"level": level},
            "uvicorn.access": {"level": "WARNING"},
            "sqlalchemy.engine": {"level": "WARNING"},
        },
    }


def configure_logging(level: str | None = None) -> None:
    """Install the console handler once per process.

    A root logger that already has handlers (pytest capture, an embedding
    server) is left untouched.
    """
    root = logging.getLogger()
    if root.handlers:
        return
    resolved = (level or os.environ.get("LOG_LEVEL") or DEFAULT_LEVEL).upper()
    dictConfig(_dict_config(resolved))
