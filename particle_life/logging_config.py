"""Logging setup for the particle life application."""
from __future__ import annotations

import logging
import logging.handlers
import os
from typing import Optional

LOGGER_NAME = "particle_life"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    fmt: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """
    Configure the application logger (not the root logger).

    Logs go to the console and, when ``log_file`` is given, to a rotating
    file (1MB per file, 5 backups). Calling this again replaces the handlers
    instead of stacking them.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())
    logger.propagate = False

    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()

    formatter = logging.Formatter(fmt)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=1024 * 1024, backupCount=5
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging initialized at level %s (file: %s)", level.upper(), log_file)
    return logger
