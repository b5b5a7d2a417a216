"""Logging setup for the builder backend.

Every module logs through a named stdlib logger under the ``figma_builder``
namespace. ``configure_logging()`` attaches file + console handlers once to
the namespace roots so child loggers (figma_builder.pipeline.session,
figma_builder.routes.builder, ...) inherit them.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path

# Log directory: configurable via LOG_DIR env var for Docker
LOG_DIR = Path(os.getenv("LOG_DIR", str(Path(__file__).parent.parent / "logs")))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

FILE_FORMAT = "%(asctime)s [%(name)s] [%(levelname)s] %(message)s"
CONSOLE_FORMAT = "%(asctime)s [%(name)s] %(message)s"

# Prevent duplicate handlers
_configured_loggers: set[str] = set()


def setup_logger(name: str, filename: str, level: str = LOG_LEVEL) -> logging.Logger:
    """Attach a file handler (LOG_DIR/filename) and a console handler to ``name``.

    Idempotent per logger name.
    """
    logger = logging.getLogger(name)
    if name in _configured_loggers:
        return logger

    logger.setLevel(level)
    logger.propagate = False

    LOG_DIR.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(LOG_DIR / filename, encoding="utf-8")
    fh.setFormatter(logging.Formatter(FILE_FORMAT))

    sh = logging.StreamHandler()
    sh.setFormatter(logging.Formatter(CONSOLE_FORMAT))

    logger.addHandler(fh)
    logger.addHandler(sh)

    _configured_loggers.add(name)
    return logger


def configure_logging() -> None:
    """Configure the builder namespace; called once by the API entry point."""
    setup_logger("figma_builder", "builder.log")


def get_events_logger() -> logging.Logger:
    """Logger for SSE status events."""
    return setup_logger("events", "events.log")
