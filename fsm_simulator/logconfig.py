"""Logging configuration helpers."""

from __future__ import annotations

import logging
from typing import Optional, TextIO

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "WARNING", stream: Optional[TextIO] = None) -> None:
    """Route the package's log records to one stream handler."""

    log_level = getattr(logging, level.upper(), logging.WARNING)
    logging.captureWarnings(True)

    handler = logging.StreamHandler(stream)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))

    logging.basicConfig(level=log_level, handlers=[handler], force=True)
