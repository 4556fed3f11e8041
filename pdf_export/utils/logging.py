"""Console logging for the pdf_export package.

Every module logs through ``logging.getLogger(__name__)``, so all pipeline
messages (launch, attempt, retry, emitted size) are children of the
``pdf_export`` logger. :func:`configure_logging` attaches one console handler
there; applications embedding the library and never calling it keep full
control through their own logging setup.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

PACKAGE_LOGGER = "pdf_export"
HANDLER_NAME = "pdf_export.console"

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    levels = logging.getLevelNamesMapping()
    try:
        return levels[level.strip().upper()]
    except KeyError:
        raise ValueError(f"Unknown log level: {level!r}") from None


def _console_handler(logger: logging.Logger) -> logging.Handler | None:
    for handler in logger.handlers:
        if handler.get_name() == HANDLER_NAME:
            return handler
    return None


def configure_logging(
    level: str | int = "INFO",
    stream: TextIO | None = None,
) -> logging.Logger:
    """Send ``pdf_export.*`` records at ``level`` and above to the console.

    Safe to call repeatedly: the first call installs the handler, later calls
    only change its level (and its stream, when one is given).

    Args:
        level: Level name (``"DEBUG"``, ``"info"``, ...) or number.
        stream: Destination stream. Defaults to stderr.

    Returns:
        The ``pdf_export`` package logger.

    Raises:
        ValueError: If ``level`` is not a known level name.
    """
    numeric_level = _resolve_level(level)
    logger = logging.getLogger(PACKAGE_LOGGER)

    handler = _console_handler(logger)
    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.set_name(HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
        # pdf_export records go to this handler only.
        logger.propagate = False
    elif stream is not None:
        handler.setStream(stream)

    handler.setLevel(numeric_level)
    logger.setLevel(numeric_level)
    return logger


def reset_logging() -> None:
    """Remove the console handler and hand records back to the root logger."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    handler = _console_handler(logger)
    if handler is not None:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
