"""
Database access for wipsync.

Provides connection management, query execution, and schema migration.
All collections (projects, scopes, schedules, overrides, caches) live in one
SQLite file; every read/merge/write goes through the repositories that sit on
top of these connections.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Iterable, List

from wipsync.core.config import WIPSYNC_PATHS, get_config_value


def get_db_path() -> Path:
    """Get database path from config."""
    return WIPSYNC_PATHS.database


@contextmanager
def get_db(readonly: bool = False) -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for database connections.

    Enables foreign keys and Row factory automatically.

    Args:
        readonly: Open in read-only mode (useful for queries)

    Yields:
        sqlite3.Connection with Row factory enabled
    """
    db_path = get_db_path()

    if readonly:
        uri = f"file:{db_path}?mode=ro"
        conn = sqlite3.connect(uri, uri=True)
    else:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(db_path))

    try:
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        conn.row_factory = sqlite3.Row
        yield conn
    finally:
        conn.close()


def execute_query(query: str, params: tuple = (), readonly: bool = True) -> list:
    """
    Execute a query and return results as list of Row objects.

    Args:
        query: SQL query
        params: Query parameters
        readonly: Use read-only connection

    Returns:
        List of sqlite3.Row objects
    """
    with get_db(readonly=readonly) as conn:
        cursor = conn.execute(query, params)
        return cursor.fetchall()


def max_rows() -> int:
    """Client-side cap applied to every collection read."""
    return int(get_config_value("limits", "max_rows", default=5000))


def fetch_capped(
    conn: sqlite3.Connection, sql: str, params: Iterable = (), label: str = "query"
) -> List[sqlite3.Row]:
    """
    Run *sql* with a trailing LIMIT of max_rows().

    Logs a warning when the cap is reached, since the result may be cut off.
    """
    from wipsync.core.logging import get_logger

    limit = max_rows()
    rows = conn.execute(f"{sql} LIMIT ?", tuple(params) + (limit,)).fetchall()
    if len(rows) >= limit:
        get_logger("wipsync.db").warning(
            f"{label} returned {len(rows)} rows; limits.max_rows={limit} reached, "
            f"results may be truncated"
        )
    return rows


def batch_size() -> int:
    """Upper bound on rows written per executemany() call."""
    return int(get_config_value("limits", "batch_size", default=400))


def chunked(rows: Iterable, size: int) -> Generator[List, None, None]:
    """Yield lists of at most *size* rows."""
    chunk: List = []
    for row in rows:
        chunk.append(row)
        if len(chunk) >= size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


# Schema dependency order: foreign keys flow downhill through this list.
SCHEMA_ORDER = [
    "projects",
    "scheduling",
]


def apply_schemas(conn: sqlite3.Connection) -> None:
    """Apply every package schema.sql to *conn* in SCHEMA_ORDER."""
    from wipsync.core.logging import get_logger

    logger = get_logger("wipsync.migrate")
    package_dir = Path(__file__).parent.parent

    for module_name in SCHEMA_ORDER:
        schema_file = package_dir / module_name / "schema.sql"
        if schema_file.exists():
            logger.debug(f"Applying schema: {module_name}/schema.sql")
            conn.executescript(schema_file.read_text(encoding="utf-8"))
        else:
            logger.debug(f"No schema for module: {module_name}")


def migrate_all():
    """
    Run all module schemas in dependency order.

    Each module's schema.sql uses CREATE TABLE IF NOT EXISTS,
    making this safe to run repeatedly (idempotent).
    """
    from wipsync.core.logging import get_logger

    logger = get_logger("wipsync.migrate")

    with get_db() as conn:
        apply_schemas(conn)
        conn.commit()
    logger.info("All schemas applied successfully")
