"""Centralized logging configuration for the recipe parser.

Usage:
    from config.logging_setup import get_logger
    logger = get_logger(__name__)

The level comes from the LOG_LEVEL setting unless passed explicitly.
"""

import logging
import sys
from typing import Optional

from config.settings import settings

# Namespace all project loggers live under
ROOT_LOGGER_NAME = "recipe_parser"

LOG_FORMAT = "%(levelname)s [%(name)s] %(message)s"
LOG_FORMAT_DEBUG = "%(levelname)s [%(name)s:%(lineno)d] %(message)s"

LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}

_logging_configured = False


def configure_logging(level: Optional[int] = None) -> None:
    """Configure the project logger namespace once.

    Args:
        level: Log level to use. If None, reads settings.log_level.
    """
    global _logging_configured

    if _logging_configured:
        return

    if level is None:
        level = LEVEL_MAP.get(settings.log_level.upper(), logging.INFO)

    log_format = LOG_FORMAT_DEBUG if level == logging.DEBUG else LOG_FORMAT

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(log_format))

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    root_logger.addHandler(handler)
    root_logger.propagate = False

    _logging_configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the given module name.

    Args:
        name: Module name, typically __name__

    Returns:
        Logger under the project namespace
    """
    configure_logging()
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def set_log_level(level: int) -> None:
    """Change the log level at runtime."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    for handler in logger.handlers:
        if level == logging.DEBUG:
            handler.setFormatter(logging.Formatter(LOG_FORMAT_DEBUG))
        else:
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
