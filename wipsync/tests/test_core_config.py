"""Tests for config loading and WIPSYNC_PATHS path resolution."""

from wipsync.core.config import (
    WIPSYNC_PATHS,
    _PACKAGE_DIR,
    get_config,
    get_config_value,
    get_status_set,
)


def test_get_config_returns_dict():
    config = get_config(reload=True)
    assert isinstance(config, dict)
    assert "scheduling" in config


def test_get_config_caching():
    c1 = get_config()
    c2 = get_config()
    assert c1 is c2


def test_get_config_reload_returns_fresh():
    get_config()
    c2 = get_config(reload=True)
    assert get_config() is c2


def test_hours_per_worker_default():
    assert get_config_value("scheduling", "hours_per_worker") == 10


def test_get_config_value_missing_returns_default():
    assert get_config_value("nonexistent", "deep", default="fallback") == "fallback"


def test_status_sets():
    assert get_status_set("qualifying") == ["Accepted", "In Progress"]
    assert get_status_set("priority") == ["Accepted", "In Progress", "Complete"]


def test_unknown_status_set_is_empty():
    assert get_status_set("nope") == []


def test_exclusion_lists_present():
    exclusions = get_config_value("exclusions")
    assert "sop inc" in exclusions["customer_substrings"]
    assert "701 poplar church rd" in exclusions["project_numbers"]


def test_paths_resolve_under_package_dir():
    for prop in ["database", "exports"]:
        path = getattr(WIPSYNC_PATHS, prop)
        assert path.is_absolute()
        assert str(path).startswith(str(_PACKAGE_DIR))


def test_database_filename():
    assert WIPSYNC_PATHS.database.name == "wipsync.db"


def test_reload_runs_callbacks(monkeypatch):
    from wipsync.core import config

    calls = []
    monkeypatch.setattr(config, "_reload_callbacks", [])
    config.on_reload(lambda: calls.append("cleared"))

    get_config()
    assert calls == []
    get_config(reload=True)
    assert calls == ["cleared"]
