"""Logging setup for the mogfs command line."""
from __future__ import annotations

import logging
import os
import sys
from typing import Optional

__all__ = ["setup_logging"]


def setup_logging(log_level: Optional[str] = None) -> logging.Logger:
    """
    Attach a stderr handler to the ``mogfs`` logger.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR. Defaults to MOGFS_LOG_LEVEL or WARNING

    Returns:
        The configured ``mogfs`` logger
    """
    if log_level is None:
        log_level = os.getenv("MOGFS_LOG_LEVEL", "WARNING")
    level = getattr(logging, log_level.upper(), logging.WARNING)

    logger = logging.getLogger("mogfs")
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    logger.addHandler(handler)
    logger.propagate = False

    return logger
