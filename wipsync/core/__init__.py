"""
wipsync Core - Shared services for all modules.

Usage:
    from wipsync.core import get_db, get_config, get_logger, WIPSYNC_PATHS
"""

from wipsync.core.config import get_config, get_config_value, WIPSYNC_PATHS
from wipsync.core.db import get_db, execute_query, migrate_all
from wipsync.core.logging import get_logger

__all__ = [
    "get_config",
    "get_config_value",
    "WIPSYNC_PATHS",
    "get_db",
    "execute_query",
    "migrate_all",
    "get_logger",
]
