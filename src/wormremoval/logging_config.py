# src/wormremoval/logging_config.py
"""
Console logging for the worm removal tool.

Every module logs to a child of the "WormRemoval" logger; the script entry
point attaches one console handler to that root once per host session.
"""
from __future__ import annotations

import logging
import sys
import time
from contextlib import contextmanager
from typing import Optional, TextIO

APP_LOGGER = "WormRemoval"
LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


class ColoredFormatter(logging.Formatter):
    """Colors the level name for terminal output."""

    COLORS = {
        logging.DEBUG: '\033[36m',
        logging.INFO: '\033[32m',
        logging.WARNING: '\033[33m',
        logging.ERROR: '\033[31m',
        logging.CRITICAL: '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record):
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelno, self.RESET)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logging(
    app_name: str = APP_LOGGER,
    level: int = logging.INFO,
    stream: Optional[TextIO] = None,
    enable_colors: bool = True,
) -> logging.Logger:
    """
    Attach a console handler to the tool's root logger.

    Calling it again returns the same logger without adding a second handler,
    so a script that is run repeatedly does not duplicate its output.
    """
    logger = logging.getLogger(app_name)
    if logger.handlers:
        return logger

    stream = stream or sys.stdout
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    isatty = getattr(stream, "isatty", lambda: False)
    if enable_colors and isatty():
        handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt='%H:%M:%S'))
    else:
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S'))

    logger.setLevel(logging.DEBUG)
    logger.addHandler(handler)
    return logger


def get_logger(name: str = APP_LOGGER) -> logging.Logger:
    """Child logger, e.g. "WormRemoval.pipeline"."""
    return logging.getLogger(name)


@contextmanager
def log_timing(operation_name: str, logger: Optional[logging.Logger] = None,
               level: int = logging.DEBUG):
    """Log when a block starts and how long it took, including on failure."""
    _logger = logger or get_logger()
    _logger.log(level, "Starting: %s", operation_name)
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        _logger.error("Failed: %s after %.2fms: %s", operation_name,
                      (time.perf_counter() - start) * 1000, e)
        raise
    _logger.log(level, "Completed: %s in %.2fms", operation_name,
                (time.perf_counter() - start) * 1000)
