"""Centralized logging configuration for the backend.

Call ``setup_logging()`` once at process start (``run_server.main`` does)
to configure the root logger. Modules obtain their own logger with::

    import logging
    log = logging.getLogger(__name__)

Env vars
--------
LOG_LEVEL : str
    Root level name (default ``INFO``; unknown names fall back to INFO).
LOG_FORMAT : str
    ``json`` (default) for one JSON object per line, ``text`` for a
    human-readable format during local development.
"""
from __future__ import annotations

import json
import logging
import os
import sys
from typing import Iterable

TEXT_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("httpcore", "httpx", "uvicorn.access")


class JsonFormatter(logging.Formatter):
    """Render records as single-line JSON.

    Messages can carry visitor input (contact form fields), so values are
    serialized with ``json.dumps`` rather than interpolated into a template.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _formatter(log_format: str) -> logging.Formatter:
    if log_format == "text":
        return logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)
    return JsonFormatter()


def setup_logging(quiet: Iterable[str] = QUIET_LOGGERS) -> None:
    """Configure the root logger from ``LOG_LEVEL`` and ``LOG_FORMAT``."""
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_formatter(os.getenv("LOG_FORMAT", "json").lower()))

    root = logging.getLogger()
    # Remove any existing handlers to avoid duplicates on reload
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
