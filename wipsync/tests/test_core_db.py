"""Tests for database connection management and schema application."""

from unittest.mock import patch

from wipsync.core.db import SCHEMA_ORDER, chunked, execute_query, fetch_capped, max_rows
from wipsync.scheduling.repository import ScheduleRepository


def test_get_db_sets_row_factory(mock_db):
    row = mock_db.execute("SELECT 1 AS val").fetchone()
    assert row["val"] == 1


def test_execute_query_returns_rows(mock_db):
    rows = execute_query("SELECT 42 AS n")
    assert rows[0]["n"] == 42


def test_schema_order():
    assert SCHEMA_ORDER == ["projects", "scheduling"]


def test_all_tables_created(memory_db):
    names = {
        r["name"] for r in memory_db.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ).fetchall()
    }
    for table in ["projects", "project_scopes", "short_term_schedule",
                  "long_term_schedule", "schedules", "active_schedule",
                  "scope_tracking"]:
        assert table in names


def test_schemas_idempotent(memory_db):
    from wipsync.core.db import apply_schemas

    apply_schemas(memory_db)
    apply_schemas(memory_db)


def test_active_schedule_rejects_unknown_source(memory_db):
    import sqlite3

    import pytest

    with pytest.raises(sqlite3.IntegrityError):
        memory_db.execute(
            "INSERT INTO active_schedule (doc_id, job_key, date, hours, source) "
            "VALUES ('x', 'A~1~Foo', '2026-01-05', 1, 'manual')"
        )


def test_max_rows_from_config():
    assert max_rows() == 5000


def test_chunked():
    assert list(chunked(range(5), 2)) == [[0, 1], [2, 3], [4]]
    assert list(chunked([], 3)) == []


class TestFetchCapped:
    def _seed(self, conn, n):
        conn.executemany(
            "INSERT INTO active_schedule (doc_id, job_key, date, hours, source) "
            "VALUES ('x', 'A~1~Foo', ?, 1, 'gantt')",
            [(f"2026-01-{d:02d}",) for d in range(1, n + 1)],
        )

    def test_under_cap_is_quiet(self, memory_db, caplog):
        self._seed(memory_db, 2)
        with patch("wipsync.core.db.max_rows", return_value=5):
            rows = fetch_capped(memory_db, "SELECT * FROM active_schedule ORDER BY date")
        assert len(rows) == 2
        assert "max_rows" not in caplog.text

    def test_cap_reached_logs_warning(self, memory_db, caplog):
        self._seed(memory_db, 4)
        with patch("wipsync.core.db.max_rows", return_value=3):
            rows = ScheduleRepository(memory_db).active_schedule(job_key="A~1~Foo")
        assert [r["date"] for r in rows] == ["2026-01-01", "2026-01-02", "2026-01-03"]
        assert "active_schedule returned 3 rows" in caplog.text
        assert any(r.levelname == "WARNING" for r in caplog.records)
