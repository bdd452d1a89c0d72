"""Logger helpers shared by the engine and the tool adapters."""

from __future__ import annotations

import logging
from typing import Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logger(name: str, level: Union[str, int] = "INFO") -> logging.Logger:
    """Return a named logger with a single stream handler attached."""
    logger = logging.getLogger(name)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    # Avoid duplicate handlers if setup_logger() is called multiple times.
    if not any(getattr(h, "_edit_engine_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._edit_engine_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
