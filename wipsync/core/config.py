"""
Configuration management for wipsync.

Loads config.yaml and provides type-safe access to settings.
"""

import yaml
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

# Config file location: lives alongside the wipsync package
_PACKAGE_DIR = Path(__file__).parent.parent.resolve()
CONFIG_PATH = _PACKAGE_DIR / "config.yaml"

# Cache for loaded config
_config_cache: Optional[Dict[str, Any]] = None

# Run after each reload
_reload_callbacks: List[Callable[[], None]] = []


def on_reload(callback: Callable[[], None]) -> Callable[[], None]:
    """Register *callback* to run whenever get_config(reload=True) re-reads the file."""
    _reload_callbacks.append(callback)
    return callback


def get_config(reload: bool = False) -> Dict[str, Any]:
    """
    Load configuration from config.yaml.

    Args:
        reload: Force reload even if cached

    Returns:
        Configuration dictionary
    """
    global _config_cache

    if _config_cache is not None and not reload:
        return _config_cache

    if not CONFIG_PATH.exists():
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as f:
        _config_cache = yaml.safe_load(f) or {}

    if reload:
        for callback in _reload_callbacks:
            callback()

    return _config_cache


def get_config_value(*keys: str, default: Any = None) -> Any:
    """
    Get a nested config value safely.

    Args:
        *keys: Path of keys to traverse (e.g., 'scheduling', 'hours_per_worker')
        default: Value to return if key not found

    Example:
        rate = get_config_value('scheduling', 'hours_per_worker', default=10)
    """
    config = get_config()

    for key in keys:
        if isinstance(config, dict) and key in config:
            config = config[key]
        else:
            return default

    return config


def get_status_set(name: str) -> List[str]:
    """Return a configured status list ('qualifying' or 'priority')."""
    defaults = {
        "qualifying": ["Accepted", "In Progress"],
        "priority": ["Accepted", "In Progress", "Complete"],
    }
    return list(get_config_value("statuses", name, default=defaults.get(name, [])))


class WipsyncPaths:
    """
    Centralized path access for wipsync.

    All paths are loaded from config.yaml with sensible fallbacks.

    Usage:
        from wipsync.core.config import WIPSYNC_PATHS
        db = WIPSYNC_PATHS.database
    """

    def __init__(self):
        self._config = None

    def _ensure_config(self):
        if self._config is None:
            self._config = get_config()

    def _resolve(self, raw: str) -> Path:
        """Resolve a path: if relative, resolve against _PACKAGE_DIR."""
        p = Path(raw)
        if not p.is_absolute():
            p = _PACKAGE_DIR / p
        return p

    @property
    def database(self) -> Path:
        self._ensure_config()
        raw = self._config.get("destinations", {}).get("database", "data/wipsync.db")
        return self._resolve(raw)

    @property
    def exports(self) -> Path:
        self._ensure_config()
        raw = self._config.get("destinations", {}).get("exports", "data/exports")
        return self._resolve(raw)

    @property
    def config_dir(self) -> Path:
        return _PACKAGE_DIR

    @property
    def root(self) -> Path:
        return _PACKAGE_DIR


# Singleton instance
WIPSYNC_PATHS = WipsyncPaths()
