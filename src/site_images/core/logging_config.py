"""Centralized logging configuration for site images."""

import os
import sys
import logging
from typing import Optional

ROOT_LOGGER_NAME = "site-images"
HANDLER_NAME = "site-images-stdout"

_FORMATS = {
    "structured": (
        "%(asctime)s | %(name)s | %(levelname)-8s | "
        "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s"
    ),
    "simple": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}


def _resolve_level(level: Optional[str]) -> int:
    name = level or os.getenv("LOG_LEVEL", "INFO")
    return getattr(logging, name.upper(), logging.INFO)


def _build_formatter(format_type: str) -> logging.Formatter:
    fmt = os.getenv("LOG_FORMAT", format_type).lower()
    if fmt == "structured":
        return logging.Formatter(_FORMATS["structured"], datefmt="%Y-%m-%d %H:%M:%S")
    return logging.Formatter(_FORMATS["simple"])


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: Optional[str] = None,
    format_type: str = "structured",
) -> logging.Logger:
    """
    Setup centralized logging with environment variable configuration.

    Args:
        name: Logger name (defaults to "site-images")
        level: Log level override (defaults to env var or INFO)
        format_type: Logging format ("structured" or "simple")

    Returns:
        Configured logger instance

    Environment Variables:
        LOG_LEVEL: Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_FORMAT: Set format type ("structured" or "simple")
    """
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))

    # Avoid duplicate handlers
    if not any(h.get_name() == HANDLER_NAME for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(HANDLER_NAME)
        handler.setFormatter(_build_formatter(format_type))
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def get_logger(component: Optional[str] = None) -> logging.Logger:
    """
    Get a logger for a package component ("cache", "renderer", ...).

    Component loggers are named ``site-images.<component>``.
    """
    if component and component != ROOT_LOGGER_NAME:
        return setup_logger(f"{ROOT_LOGGER_NAME}.{component}")
    return setup_logger(ROOT_LOGGER_NAME)


def configure_debug_logging() -> None:
    """Switch every site images logger created so far to DEBUG."""
    manager = logging.Logger.manager
    for name, existing in list(manager.loggerDict.items()):
        if isinstance(existing, logging.Logger) and name.startswith(ROOT_LOGGER_NAME):
            existing.setLevel(logging.DEBUG)
    setup_logger(level="DEBUG")


# Create default logger instance
logger = setup_logger()
