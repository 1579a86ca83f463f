"""Tests for logging configuration."""

import logging

from wipsync.core.logging import LOG_FORMAT, get_logger


def test_get_logger_returns_logger():
    assert isinstance(get_logger("test.module"), logging.Logger)


def test_get_logger_cached():
    assert get_logger("test.cached") is get_logger("test.cached")


def test_get_logger_has_handler():
    assert len(get_logger("test.handler").handlers) >= 1


def test_get_logger_format_includes_name():
    logger = get_logger("test.format")
    assert logger.handlers[0].formatter._fmt == LOG_FORMAT
    assert "%(name)s" in LOG_FORMAT


def test_explicit_level():
    logger = get_logger("test.level.debug", level=logging.DEBUG)
    assert logger.level == logging.DEBUG


def test_env_level(monkeypatch):
    monkeypatch.setenv("WIPSYNC_LOG_LEVEL", "warning")
    logger = get_logger("test.level.env")
    assert logger.level == logging.WARNING
