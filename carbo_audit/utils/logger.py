"""Centralized logging configuration.
Call setup_logging() once at process start (CLI run or API server).
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(funcName)s:%(lineno)d │ %(message)s"

# Third-party loggers pinned regardless of the service level
_LIBRARY_LEVELS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "openai": logging.WARNING,
    "pymongo": logging.WARNING,
    "urllib3": logging.WARNING,
    "multipart": logging.WARNING,
    "uvicorn": logging.INFO,
    "fastapi": logging.INFO,
}


def setup_logging(level: str = "INFO") -> None:
    """Attach one stdout handler to the root logger. Later calls are no-ops."""
    root = logging.getLogger()
    if root.handlers:
        return

    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    root.setLevel(numeric_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%H:%M:%S"))
    root.addHandler(handler)

    for name, library_level in _LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(library_level)
