"""
Schedule Repository

Single data-access seam for the scheduling tables:

    short_term_schedule   day overrides (jobKey, month, week, day)
    long_term_schedule    weekly buckets (jobKey, month, week)
    schedules             reconciled WIP aggregate, one row per jobKey
    active_schedule       per-date cache written by the sync writer
    scope_tracking        per-scope scheduled/unscheduled cache

Repositories never commit.  The caller owns the transaction so that one
sync can write the aggregate and both caches atomically.

Single-writer-per-request is assumed.  ``save_schedule`` can additionally
compare-and-set on ``schedules.version``; without ``expected_version`` the
write is last-write-wins and the version still increments.
"""

import json
import sqlite3
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from wipsync.core.db import batch_size, chunked, fetch_capped
from wipsync.core.logging import get_logger
from wipsync.projects.records import (
    ScheduleValidationError,
    sanitize_doc_id,
    split_job_key,
    to_float,
)
from wipsync.scheduling.workdays import (
    date_for_position,
    is_month_key,
    parse_month_key,
    week_starts_of_month,
)

logger = get_logger("wipsync.scheduling.repository")

__all__ = [
    "HourMap",
    "PercentList",
    "Allocations",
    "parse_allocations",
    "merge_allocations",
    "ScheduleRecord",
    "ShortTermDay",
    "LongTermWeek",
    "ScheduleRepository",
    "ScheduleValidationError",
    "StaleScheduleError",
]


class StaleScheduleError(RuntimeError):
    """The stored schedule version moved on since the caller read it."""

    def __init__(self, job_key: str, expected: int, actual: Optional[int]):
        self.job_key = job_key
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Schedule {job_key!r} is at version {actual}, expected {expected}"
        )


# ---------------------------------------------------------------------------
# Allocations: HourMap | PercentList
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HourMap:
    """Current format: {month: hours}."""

    hours: Dict[str, float] = field(default_factory=dict)
    kind: str = "hours"

    def to_hours(self, total_hours: float = 0.0) -> Dict[str, float]:
        return dict(self.hours)

    def to_json(self) -> Any:
        return dict(self.hours)


@dataclass(frozen=True)
class PercentList:
    """Legacy format: [{month, percent}], read-only."""

    entries: Tuple[Tuple[str, float], ...] = ()
    kind: str = "percent"

    def to_hours(self, total_hours: float = 0.0) -> Dict[str, float]:
        hours: Dict[str, float] = {}
        for month, percent in self.entries:
            hours[month] = hours.get(month, 0.0) + total_hours * percent / 100
        return hours

    def to_json(self) -> Any:
        return [{"month": m, "percent": p} for m, p in self.entries]


Allocations = Union[HourMap, PercentList]


def parse_allocations(raw: Any) -> Allocations:
    """
    Normalise any stored allocations value.

    Accepts a JSON string, a {month: hours} mapping, a legacy
    [{month, percent}] list, or a [{month, hours}] list.  Entries with an
    invalid month key are dropped.
    """
    if isinstance(raw, (HourMap, PercentList)):
        return raw
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw) if raw else {}
        except ValueError:
            logger.warning(f"Unreadable allocations payload: {raw!r}")
            return HourMap()
    if raw is None:
        return HourMap()

    if isinstance(raw, dict):
        return HourMap({m: to_float(h) for m, h in raw.items() if is_month_key(m)})

    if isinstance(raw, (list, tuple)):
        items = [i for i in raw if isinstance(i, dict) and is_month_key(i.get("month"))]
        if any("percent" in i for i in items):
            return PercentList(tuple((i["month"], to_float(i.get("percent"))) for i in items))
        hours: Dict[str, float] = {}
        for i in items:
            hours[i["month"]] = hours.get(i["month"], 0.0) + to_float(i.get("hours"))
        return HourMap(hours)

    logger.warning(f"Unsupported allocations type: {type(raw).__name__}")
    return HourMap()


def merge_allocations(
    existing: Allocations,
    incoming: Allocations,
    existing_total: float,
    incoming_total: float,
) -> HourMap:
    """Merge *incoming* over *existing* as hour maps; incoming months win."""
    merged = existing.to_hours(existing_total)
    merged.update(incoming.to_hours(incoming_total))
    return HourMap(merged)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass
class ScheduleRecord:
    job_key: str
    customer: str = ""
    project_number: str = ""
    project_name: str = ""
    status: Optional[str] = None
    total_hours: float = 0.0
    allocations: Allocations = field(default_factory=HourMap)
    version: int = 0
    sync_source: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def doc_id(self) -> str:
        return sanitize_doc_id(self.job_key)

    @property
    def hours_by_month(self) -> Dict[str, float]:
        return self.allocations.to_hours(self.total_hours)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "ScheduleRecord":
        d = dict(row)
        return cls(
            job_key=d["job_key"],
            customer=d.get("customer") or "",
            project_number=d.get("project_number") or "",
            project_name=d.get("project_name") or "",
            status=d.get("status"),
            total_hours=to_float(d.get("total_hours")),
            allocations=parse_allocations(d.get("allocations")),
            version=int(d.get("version") or 0),
            sync_source=d.get("sync_source"),
            updated_at=d.get("updated_at"),
        )

    @classmethod
    def for_job(cls, job_key: str, **kwargs) -> "ScheduleRecord":
        customer, number, name = split_job_key(job_key)
        kwargs.setdefault("customer", customer)
        kwargs.setdefault("project_number", number)
        kwargs.setdefault("project_name", name)
        return cls(job_key=job_key, **kwargs)

    def to_payload(self) -> Dict[str, Any]:
        """Wire shape used by the HTTP boundary."""
        return {
            "id": self.doc_id,
            "jobKey": self.job_key,
            "customer": self.customer,
            "projectNumber": self.project_number,
            "projectName": self.project_name,
            "status": self.status,
            "totalHours": self.total_hours,
            "allocations": self.hours_by_month,
            "allocationFormat": self.allocations.kind,
            "version": self.version,
            "syncSource": self.sync_source,
            "updatedAt": self.updated_at,
        }


@dataclass
class ShortTermDay:
    job_key: str
    month: str
    week_number: int
    day_number: int
    hours: float = 0.0
    foreman: str = ""
    employees: List[str] = field(default_factory=list)

    @property
    def doc_id(self) -> str:
        return sanitize_doc_id(f"{self.job_key}_{self.month}")

    @property
    def date(self) -> Optional[date]:
        return date_for_position(self.month, self.week_number, self.day_number)

    @property
    def is_cleared(self) -> bool:
        """Stored zero with no foreman: the day was explicitly emptied."""
        return self.hours <= 0 and not self.foreman

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "ShortTermDay":
        d = dict(row)
        try:
            employees = json.loads(d.get("employees") or "[]")
        except ValueError:
            employees = []
        return cls(
            job_key=d["job_key"],
            month=d["month"],
            week_number=int(d["week_number"]),
            day_number=int(d["day_number"]),
            hours=to_float(d.get("hours")),
            foreman=d.get("foreman") or "",
            employees=[str(e) for e in employees] if isinstance(employees, list) else [],
        )


@dataclass
class LongTermWeek:
    job_key: str
    month: str
    week_number: int
    hours: float = 0.0

    @property
    def week_start(self) -> Optional[date]:
        return date_for_position(self.month, self.week_number, 1)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "LongTermWeek":
        return cls(
            job_key=row["job_key"],
            month=row["month"],
            week_number=int(row["week_number"]),
            hours=to_float(row["hours"]),
        )


def _validate_position(month: str, week_number: int, day_number: Optional[int] = None):
    parse_month_key(month)
    if not 1 <= int(week_number) <= 5:
        raise ScheduleValidationError(f"Week number out of range: {week_number}")
    if day_number is not None and not 1 <= int(day_number) <= 5:
        raise ScheduleValidationError(f"Day number out of range: {day_number}")


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ScheduleRepository:
    """Read/merge/write access to every scheduling table over one connection."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    # -- short term ---------------------------------------------------------

    def short_term_days(
        self,
        job_key: Optional[str] = None,
        months: Optional[Sequence[str]] = None,
    ) -> List[ShortTermDay]:
        sql = "SELECT * FROM short_term_schedule WHERE 1=1"
        params: List[Any] = []
        if job_key is not None:
            sql += " AND job_key = ?"
            params.append(job_key)
        if months:
            sql += f" AND month IN ({','.join('?' * len(months))})"
            params.extend(months)
        sql += " ORDER BY job_key, month, week_number, day_number"
        rows = fetch_capped(self.conn, sql, params, "short_term_schedule")
        return [ShortTermDay.from_row(r) for r in rows]

    def short_term_document(self, job_key: str, month: str) -> Optional[Dict[str, Any]]:
        """One (jobKey, month) board document in its nested weeks/days shape."""
        days = self.short_term_days(job_key, [month])
        if not days:
            return None
        customer, number, name = split_job_key(job_key)
        weeks: Dict[int, List[Dict[str, Any]]] = {}
        for d in days:
            weeks.setdefault(d.week_number, []).append({
                "dayNumber": d.day_number,
                "hours": d.hours,
                "foreman": d.foreman,
                "employees": d.employees,
            })
        return {
            "id": days[0].doc_id,
            "jobKey": job_key,
            "customer": customer,
            "projectNumber": number,
            "projectName": name,
            "month": month,
            "weeks": [{"weekNumber": w, "days": weeks[w]} for w in sorted(weeks)],
        }

    def upsert_short_term_day(
        self,
        job_key: str,
        month: str,
        week_number: int,
        day_number: int,
        hours: float,
        foreman: Optional[str] = None,
        employees: Optional[Iterable[str]] = None,
    ) -> ShortTermDay:
        """Write one board day, keeping foreman/employees when not supplied."""
        _validate_position(month, week_number, day_number)
        existing = self.conn.execute(
            "SELECT * FROM short_term_schedule "
            "WHERE job_key = ? AND month = ? AND week_number = ? AND day_number = ?",
            (job_key, month, week_number, day_number),
        ).fetchone()

        day = ShortTermDay.from_row(existing) if existing else ShortTermDay(
            job_key=job_key, month=month, week_number=week_number, day_number=day_number
        )
        day.hours = to_float(hours)
        if foreman is not None:
            day.foreman = foreman
        if employees is not None:
            day.employees = list(employees)

        self.conn.execute(
            """INSERT INTO short_term_schedule
                   (doc_id, job_key, month, week_number, day_number,
                    hours, foreman, employees, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(job_key, month, week_number, day_number) DO UPDATE SET
                   hours = excluded.hours,
                   foreman = excluded.foreman,
                   employees = excluded.employees,
                   updated_at = excluded.updated_at""",
            (day.doc_id, job_key, month, week_number, day_number,
             day.hours, day.foreman, json.dumps(day.employees), _now()),
        )
        return day

    def prune_invalid_weeks(self, job_key: str, month: str) -> int:
        """Drop board weeks that do not exist for *month*. Returns rows removed."""
        valid = len(week_starts_of_month(month))
        if valid == 0:
            return 0
        cursor = self.conn.execute(
            "DELETE FROM short_term_schedule "
            "WHERE job_key = ? AND month = ? AND week_number > ?",
            (job_key, month, valid),
        )
        return cursor.rowcount

    # -- long term ----------------------------------------------------------

    def long_term_weeks(self, job_key: Optional[str] = None) -> List[LongTermWeek]:
        sql = "SELECT * FROM long_term_schedule"
        params: List[Any] = []
        if job_key is not None:
            sql += " WHERE job_key = ?"
            params.append(job_key)
        sql += " ORDER BY job_key, month, week_number"
        rows = fetch_capped(self.conn, sql, params, "long_term_schedule")
        return [LongTermWeek.from_row(r) for r in rows]

    def upsert_long_term_week(
        self, job_key: str, month: str, week_number: int, hours: float
    ) -> LongTermWeek:
        _validate_position(month, week_number)
        week = LongTermWeek(job_key, month, int(week_number), to_float(hours))
        self.conn.execute(
            """INSERT INTO long_term_schedule
                   (doc_id, job_key, month, week_number, hours, updated_at)
               VALUES (?, ?, ?, ?, ?, ?)
               ON CONFLICT(job_key, month, week_number) DO UPDATE SET
                   hours = excluded.hours,
                   updated_at = excluded.updated_at""",
            (sanitize_doc_id(f"{job_key}_{month}"), job_key, month,
             week.week_number, week.hours, _now()),
        )
        return week

    # -- schedules aggregate ------------------------------------------------

    def get_schedule(self, job_key: str) -> Optional[ScheduleRecord]:
        row = self.conn.execute(
            "SELECT * FROM schedules WHERE job_key = ?", (job_key,)
        ).fetchone()
        return ScheduleRecord.from_row(row) if row else None

    def list_schedules(self) -> List[ScheduleRecord]:
        rows = fetch_capped(
            self.conn, "SELECT * FROM schedules ORDER BY project_name, job_key",
            label="schedules",
        )
        return [ScheduleRecord.from_row(r) for r in rows]

    def save_schedule(
        self, record: ScheduleRecord, expected_version: Optional[int] = None
    ) -> ScheduleRecord:
        """
        Upsert a schedule aggregate and bump its version.

        Args:
            record: Values to store; allocations are stored in their own format.
            expected_version: When given, the stored version must match
                (0 means "must not exist yet").

        Raises:
            StaleScheduleError: the stored version differs from expected_version.
        """
        if not record.job_key:
            raise ScheduleValidationError("jobKey is required")

        current = self.conn.execute(
            "SELECT version FROM schedules WHERE job_key = ?", (record.job_key,)
        ).fetchone()
        actual = int(current["version"]) if current else 0
        if expected_version is not None and actual != int(expected_version):
            raise StaleScheduleError(record.job_key, int(expected_version), actual)

        record.version = actual + 1
        record.updated_at = _now()
        values = (
            record.doc_id, record.customer, record.project_number,
            record.project_name, record.status, record.total_hours,
            json.dumps(record.allocations.to_json()), record.version,
            record.sync_source, record.updated_at,
        )

        if current:
            cursor = self.conn.execute(
                """UPDATE schedules SET
                       doc_id = ?, customer = ?, project_number = ?, project_name = ?,
                       status = ?, total_hours = ?, allocations = ?, version = ?,
                       sync_source = ?, updated_at = ?
                   WHERE job_key = ? AND version = ?""",
                values + (record.job_key, actual),
            )
            if cursor.rowcount == 0:
                raise StaleScheduleError(record.job_key, actual, None)
        else:
            self.conn.execute(
                """INSERT INTO schedules
                       (doc_id, customer, project_number, project_name, status,
                        total_hours, allocations, version, sync_source, updated_at,
                        job_key)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                values + (record.job_key,),
            )
        return record

    # -- derived caches -----------------------------------------------------

    def replace_active_schedule(
        self, job_key: str, entries: Iterable[Dict[str, Any]]
    ) -> int:
        """Swap every active_schedule row of *job_key* for *entries*."""
        self.conn.execute("DELETE FROM active_schedule WHERE job_key = ?", (job_key,))
        rows = [
            (
                sanitize_doc_id(f"{job_key}_{e.get('scope_of_work', '')}_{e['date']}"),
                job_key,
                e.get("scope_of_work", ""),
                e["date"],
                to_float(e.get("hours")),
                e.get("foreman") or "",
                e["source"],
                _now(),
            )
            for e in entries
        ]
        for chunk in chunked(rows, batch_size()):
            self.conn.executemany(
                """INSERT INTO active_schedule
                       (doc_id, job_key, scope_of_work, date, hours, foreman,
                        source, last_modified)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                chunk,
            )
        return len(rows)

    def active_schedule(
        self,
        start: Optional[str] = None,
        end: Optional[str] = None,
        job_key: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        sql = "SELECT * FROM active_schedule WHERE 1=1"
        params: List[Any] = []
        if start:
            sql += " AND date >= ?"
            params.append(start)
        if end:
            sql += " AND date <= ?"
            params.append(end)
        if job_key is not None:
            sql += " AND job_key = ?"
            params.append(job_key)
        sql += " ORDER BY date, job_key, scope_of_work"
        return [dict(r) for r in fetch_capped(self.conn, sql, params, "active_schedule")]

    def replace_scope_tracking(
        self, job_key: str, rows: Iterable[Dict[str, Any]]
    ) -> int:
        self.conn.execute("DELETE FROM scope_tracking WHERE job_key = ?", (job_key,))
        values = [
            (
                sanitize_doc_id(f"{job_key}_{r['scope_of_work']}"),
                job_key,
                r["scope_of_work"],
                r["total_hours"],
                r["scheduled_hours"],
                r["unscheduled_hours"],
                _now(),
            )
            for r in rows
        ]
        for chunk in chunked(values, batch_size()):
            self.conn.executemany(
                """INSERT INTO scope_tracking
                       (doc_id, job_key, scope_of_work, total_hours,
                        scheduled_hours, unscheduled_hours, last_updated)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                chunk,
            )
        return len(values)

    def scope_tracking(self, job_key: str) -> List[Dict[str, Any]]:
        rows = self.conn.execute(
            "SELECT * FROM scope_tracking WHERE job_key = ? ORDER BY scope_of_work",
            (job_key,),
        ).fetchall()
        return [dict(r) for r in rows]

    def job_keys(self) -> List[str]:
        """Every jobKey with scheduling data of any kind."""
        rows = self.conn.execute(
            """SELECT job_key FROM short_term_schedule
               UNION SELECT job_key FROM long_term_schedule
               UNION SELECT job_key FROM schedules
               ORDER BY job_key"""
        ).fetchall()
        return [r["job_key"] for r in rows]
