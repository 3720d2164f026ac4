"""Logging helpers for the Kafka harness.

Logging stays on the standard library; the console script calls
`configure_logging` once and modules obtain loggers via `get_logger`.
"""

from __future__ import annotations

import logging
import os
from typing import Optional, Union

LOG_LEVEL_ENV = "KAFKA_HARNESS_LOG_LEVEL"
ROOT_LOGGER_NAME = "kafka_harness"

_VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def configure_logging(level: Union[str, int, None] = None, *, force: bool = False) -> logging.Logger:
    """Configure the root logger and return the harness logger.

    Order of precedence for level:
    1. Explicit `level` argument if given
    2. Environment variable `KAFKA_HARNESS_LOG_LEVEL`
    3. Fallback to `INFO`
    """
    invalid_level = None
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV) or "INFO"

    if isinstance(level, str):
        level_name = level.strip().upper()
        if level_name in _VALID_LEVELS:
            level = getattr(logging, level_name)
        else:
            invalid_level = level
            level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=force,
    )
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if invalid_level is not None:
        logger.warning(
            "Invalid %s %r; falling back to INFO. Valid values: %s.",
            LOG_LEVEL_ENV,
            invalid_level,
            ", ".join(sorted(_VALID_LEVELS)),
        )
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a harness logger (``kafka_harness`` or a child of it)."""
    return logging.getLogger(name or ROOT_LOGGER_NAME)


__all__ = ["LOG_LEVEL_ENV", "configure_logging", "get_logger"]
