"""Logging helpers shared by every privat_fx module."""

from __future__ import annotations

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_ROOT_LOGGER: Optional[logging.Logger] = None


def get_logger(name: str = "privat_fx") -> logging.Logger:
    """Return a named logger, configuring the root handler on first use."""
    global _ROOT_LOGGER
    if _ROOT_LOGGER is None:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
        _ROOT_LOGGER = logging.getLogger("privat_fx")
    return logging.getLogger(name)


def set_verbosity(verbose: bool) -> None:
    """Switch the package loggers between INFO and DEBUG output."""

    get_logger().setLevel(logging.DEBUG if verbose else logging.INFO)


__all__ = ["LOG_FORMAT", "get_logger", "set_verbosity"]
