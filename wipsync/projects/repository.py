"""
Project & Scope Repositories

All reads and writes of estimate line items and Gantt scopes go through
these two classes.  Reads are capped at ``limits.max_rows``.  Writes are
not committed here; the caller owns the transaction.
"""

import sqlite3
from datetime import date, datetime
from typing import Any, Iterable, List, Optional

from wipsync.core.db import fetch_capped
from wipsync.core.logging import get_logger
from wipsync.projects.records import ProjectLine, Scope, parse_date_value

logger = get_logger("wipsync.projects.repository")


def _date_text(value: Any) -> Optional[str]:
    """Store any DateLike as ISO text so it survives a round trip."""
    if value is None or value == "":
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    parsed = parse_date_value(value)
    return parsed.isoformat() if parsed else str(value)


class ProjectRepository:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def list_lines(
        self,
        include_archived: bool = True,
        statuses: Optional[Iterable[str]] = None,
    ) -> List[ProjectLine]:
        """Every line item, oldest first."""
        sql = "SELECT * FROM projects WHERE 1=1"
        params: List[Any] = []
        if not include_archived:
            sql += " AND project_archived = 0"
        if statuses:
            statuses = list(statuses)
            sql += f" AND status IN ({','.join('?' * len(statuses))})"
            params.extend(statuses)
        sql += " ORDER BY id"
        rows = fetch_capped(self.conn, sql, params, "projects")
        return [ProjectLine.from_row(r) for r in rows]

    def lines_for_job(self, job_key: str) -> List[ProjectLine]:
        rows = fetch_capped(
            self.conn, "SELECT * FROM projects WHERE job_key = ? ORDER BY id",
            (job_key,), "projects",
        )
        return [ProjectLine.from_row(r) for r in rows]

    def status_for_job(self, job_key: str) -> Optional[str]:
        """Status of the most recently inserted line item of a project."""
        row = self.conn.execute(
            "SELECT status FROM projects WHERE job_key = ? ORDER BY id DESC LIMIT 1",
            (job_key,),
        ).fetchone()
        return row["status"] if row else None

    def add_line(self, line: ProjectLine) -> int:
        cursor = self.conn.execute(
            """INSERT INTO projects
                   (job_key, customer, project_number, project_name, status,
                    sales, cost, hours, estimator, scope_of_work, cost_type,
                    date_created, date_updated, project_archived)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                line.job_key, line.customer, line.project_number, line.project_name,
                line.status, line.sales, line.cost, line.hours, line.estimator,
                line.scope_of_work, line.cost_type,
                _date_text(line.date_created), _date_text(line.date_updated),
                1 if line.archived else 0,
            ),
        )
        line.id = cursor.lastrowid
        return line.id

    def add_lines(self, lines: Iterable[ProjectLine]) -> int:
        return sum(1 for line in lines if self.add_line(line))


class ScopeRepository:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def list_for_job(self, job_key: str) -> List[Scope]:
        rows = fetch_capped(
            self.conn, "SELECT * FROM project_scopes WHERE job_key = ? ORDER BY id",
            (job_key,), "project_scopes",
        )
        return [Scope.from_row(r) for r in rows]

    def list_all(self) -> List[Scope]:
        rows = fetch_capped(
            self.conn, "SELECT * FROM project_scopes ORDER BY job_key, id",
            label="project_scopes",
        )
        return [Scope.from_row(r) for r in rows]

    def get(self, scope_id: int) -> Optional[Scope]:
        row = self.conn.execute(
            "SELECT * FROM project_scopes WHERE id = ?", (scope_id,)
        ).fetchone()
        return Scope.from_row(row) if row else None

    def find_by_title(self, job_key: str, title: str) -> Optional[Scope]:
        """Case-insensitive, whitespace-trimmed title match within a project."""
        wanted = title.strip().lower()
        for scope in self.list_for_job(job_key):
            if scope.title.strip().lower() == wanted:
                return scope
        return None

    def add_scope(self, scope: Scope) -> int:
        cursor = self.conn.execute(
            """INSERT INTO project_scopes
                   (job_key, title, start_date, end_date, manpower, hours, description)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (scope.job_key, scope.title, scope.start_date, scope.end_date,
             scope.manpower, scope.hours, scope.description),
        )
        scope.id = cursor.lastrowid
        return scope.id

    def update_dates(self, scope_id: int, start_date: str, end_date: str) -> bool:
        cursor = self.conn.execute(
            "UPDATE project_scopes SET start_date = ?, end_date = ?, "
            "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (start_date, end_date, scope_id),
        )
        return cursor.rowcount > 0
