"""Logging helpers."""

import logging
import os

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a module logger; configures the root handler once (level from LOG_LEVEL, default INFO)."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=_LOG_FORMAT, level=os.environ.get("LOG_LEVEL", "INFO").upper())
    return logging.getLogger(name)
