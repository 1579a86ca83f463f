"""
Logging configuration for wipsync.

Every module logs through get_logger() so sync runs, CLI commands and the
web server share one line format. Set WIPSYNC_LOG_LEVEL (DEBUG, INFO, ...)
to change the default level without touching code.
"""

import logging
import os
import sys
from typing import Dict, Optional

_loggers: Dict[str, logging.Logger] = {}

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def _default_level() -> int:
    raw = os.environ.get("WIPSYNC_LOG_LEVEL", "INFO").upper()
    return getattr(logging, raw, logging.INFO)


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Get a configured logger for a module.

    Args:
        name: Logger name (e.g., 'wipsync.scheduling.sync')
        level: Logging level (default: WIPSYNC_LOG_LEVEL or INFO)

    Returns:
        Configured logger
    """
    if name in _loggers:
        return _loggers[name]

    if level is None:
        level = _default_level()

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)

    _loggers[name] = logger
    return logger
