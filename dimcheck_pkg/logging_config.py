"""Logging setup shared by all dimcheck modules."""

from __future__ import annotations

import logging

from .config import LOG_LEVEL

ROOT_LOGGER_NAME = "dimcheck"

# Created up front so module loggers nest under it
logging.getLogger(ROOT_LOGGER_NAME)

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under ``dimcheck``.

    Example:
        >>> get_logger("units").name
        'dimcheck.units'
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logging(level: str | int | None = None) -> logging.Logger:
    """Attach a stream handler to the package root logger (idempotent)."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level if level is not None else LOG_LEVEL)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)
    return root
