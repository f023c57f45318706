"""
bootstrap/logging_setup.py - Logging configuration

The engine modules only create named loggers; the hosting editor calls
setup_logging() once at start-up.
"""

from __future__ import annotations
from typing import Optional
import logging
import sys

from .config import LoggingConfig

logger = logging.getLogger("bootstrap.logging")

_HANDLER_MARK = "_pdsd_handler"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    fmt: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
) -> None:
    """
    Configure engine logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
        fmt: Record format string
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(fmt)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Repeated calls replace our handlers instead of stacking them
    for handler in list(root_logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            root_logger.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)
    setattr(console_handler, _HANDLER_MARK, True)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        setattr(file_handler, _HANDLER_MARK, True)
        root_logger.addHandler(file_handler)

    logger.debug(f"Logging configured at {logging.getLevelName(log_level)}")


def configure_logging(config: LoggingConfig) -> None:
    """Apply a LoggingConfig section."""
    setup_logging(level=config.level, log_file=config.log_file, fmt=config.format)
