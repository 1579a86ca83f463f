"""
Shared test fixtures for wipsync.

Provides an in-memory database with all schemas, a patched get_db, a CLI
runner and a Flask test client for isolated testing.
"""

import sqlite3
from contextlib import contextmanager
from unittest.mock import patch

import pytest

from wipsync.core.db import apply_schemas


@pytest.fixture
def memory_db():
    """Provide an in-memory SQLite database with ALL schemas applied in order."""
    conn = sqlite3.connect(":memory:")
    conn.execute("PRAGMA foreign_keys = ON")
    conn.row_factory = sqlite3.Row
    apply_schemas(conn)

    yield conn
    conn.close()


@pytest.fixture
def mock_db(memory_db):
    """Patch get_db everywhere to return the in-memory database."""

    @contextmanager
    def _get_db(readonly=False):
        yield memory_db

    with patch("wipsync.core.db.get_db", _get_db), \
         patch("wipsync.core.get_db", _get_db), \
         patch("wipsync.api.scheduling.get_db", _get_db):
        yield memory_db


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()


@pytest.fixture
def client(mock_db):
    """Flask test client over the in-memory database."""
    from wipsync.api import create_app

    with patch("wipsync.api._get_or_create_secret", return_value="test-secret"):
        app = create_app()
    app.config["TESTING"] = True
    return app.test_client()
