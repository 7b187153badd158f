"""Console logging setup for applications embedding the client."""
from __future__ import annotations

import logging
import sys

LOGGER_NAME = "market_client"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Attach one stdout handler to the package logger; repeated calls only change the level."""

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper() if isinstance(level, str) else level)

    if not any(getattr(handler, "_market_client", False) for handler in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        handler._market_client = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return logger


__all__ = ["configure_logging"]
