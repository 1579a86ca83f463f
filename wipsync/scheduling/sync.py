"""
Schedule Sync

The only writer of the derived scheduling records.  After any scheduling
edit, one project is recomputed from its stored scopes and overrides and
three things are rewritten together in one sqlite transaction:

    schedules         monthly hour map, totalHours, syncSource
    active_schedule   one row per (scope, date) with the winning source
    scope_tracking    per-scope total / scheduled / unscheduled hours

Day-level board edits also fan out to the Gantt: the scope titled
"Scheduled Work" is stretched to the first and last board day with hours.

No Flask imports — used by both CLI and API layers.
"""

import sqlite3
from collections import defaultdict
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

from wipsync.core.config import get_config_value
from wipsync.core.logging import get_logger
from wipsync.projects.records import (
    ScheduleValidationError,
    Scope,
    make_job_key,
    parse_iso_date,
    to_float,
)
from wipsync.projects.repository import ProjectRepository, ScopeRepository
from wipsync.scheduling.allocator import allocate_scope, scope_total_hours
from wipsync.scheduling.overrides import (
    SOURCE_GANTT,
    SOURCE_LONG_TERM,
    OverrideResolver,
    ResolvedDay,
)
from wipsync.scheduling.repository import (
    HourMap,
    ScheduleRecord,
    ScheduleRepository,
    StaleScheduleError,
    merge_allocations,
    parse_allocations,
)
from wipsync.scheduling.workdays import (
    day_position_for_date,
    month_key,
    monday_of_week,
    parse_month_key,
    split_by_week,
)

logger = get_logger("wipsync.scheduling.sync")

SYNC_SOURCE = "auto-bi-lateral"
MANUAL_SOURCE = "manual"
LONG_TERM_SCOPE = "Long Term Schedule"
DEFAULT_STATUS = "In Progress"


def scheduled_work_title() -> str:
    return str(get_config_value("scheduling", "scheduled_work_title", default="Scheduled Work"))


# ---------------------------------------------------------------------------
# Pure views
# ---------------------------------------------------------------------------


def hours_by_month(days: Iterable[ResolvedDay]) -> Dict[str, float]:
    totals: Dict[str, float] = defaultdict(float)
    for day in days:
        totals[month_key(day.date)] += day.hours
    return dict(sorted(totals.items()))


def hours_by_week(days: Iterable[ResolvedDay]) -> Dict[date, float]:
    """Resolved hours bucketed by the Monday of each day's week."""
    totals: Dict[date, float] = defaultdict(float)
    for day in days:
        totals[monday_of_week(day.date)] += day.hours
    return dict(sorted(totals.items()))


def _scope_breakdown(
    scopes: List[Scope], days: List[ResolvedDay]
) -> tuple:
    """
    Split resolved days into active-schedule rows and per-scope totals.

    Gantt days are attributed to the scopes that produced them; board days
    go under the scheduled-work title and long-term days under their own.
    """
    gantt_days = {d.date: d for d in days if d.source == SOURCE_GANTT}
    active: Dict[tuple, Dict[str, Any]] = {}
    tracking: Dict[str, Dict[str, float]] = {}

    for scope in scopes:
        title = scope.title or scheduled_work_title()
        track = tracking.setdefault(title, {"total_hours": 0.0, "scheduled_hours": 0.0})
        track["total_hours"] += scope_total_hours(scope)
        for d, hours in allocate_scope(scope).items():
            if d not in gantt_days:
                continue
            track["scheduled_hours"] += hours
            row = active.setdefault((title, d), {
                "scope_of_work": title,
                "date": d.isoformat(),
                "hours": 0.0,
                "foreman": "",
                "source": SOURCE_GANTT,
            })
            row["hours"] += hours

    for day in days:
        if day.source == SOURCE_GANTT:
            continue
        title = LONG_TERM_SCOPE if day.source == SOURCE_LONG_TERM else scheduled_work_title()
        active[(title, day.date)] = {
            "scope_of_work": title,
            "date": day.date.isoformat(),
            "hours": day.hours,
            "foreman": day.foreman,
            "source": day.source,
        }

    tracking_rows = [
        {
            "scope_of_work": title,
            "total_hours": round(t["total_hours"], 2),
            "scheduled_hours": round(t["scheduled_hours"], 2),
            "unscheduled_hours": round(max(0.0, t["total_hours"] - t["scheduled_hours"]), 2),
        }
        for title, t in sorted(tracking.items())
    ]
    active_rows = [active[k] for k in sorted(active, key=lambda k: (k[1], k[0]))]
    return active_rows, tracking_rows


# ---------------------------------------------------------------------------
# Aggregate rebuild
# ---------------------------------------------------------------------------


def _rebuild(conn: sqlite3.Connection, job_key: str) -> Dict[str, Any]:
    """Recompute and write one project's aggregate and caches (no commit)."""
    resolver = OverrideResolver.load(conn, job_key)
    days = resolver.resolve_job(job_key)
    monthly = hours_by_month(days)

    repo = ScheduleRepository(conn)
    existing = repo.get_schedule(job_key)
    if existing:
        record = existing
    else:
        record = ScheduleRecord.for_job(job_key)
        record.status = ProjectRepository(conn).status_for_job(job_key)
    record.allocations = HourMap(monthly)
    record.total_hours = sum(monthly.values())
    record.sync_source = SYNC_SOURCE
    repo.save_schedule(record)

    active_rows, tracking_rows = _scope_breakdown(resolver.scopes.get(job_key, []), days)
    repo.replace_active_schedule(job_key, active_rows)
    repo.replace_scope_tracking(job_key, tracking_rows)

    return {
        "job_key": job_key,
        "total_hours": record.total_hours,
        "allocations": monthly,
        "version": record.version,
        "days": len(days),
        "scopes": len(tracking_rows),
    }


def sync_project_wip(conn: sqlite3.Connection, job_key: str) -> Dict[str, Any]:
    """
    Rebuild a project's monthly WIP from its resolved days.

    The schedules row, active_schedule rows and scope_tracking rows are
    written in one transaction; on failure nothing is committed.
    """
    if not job_key:
        return {"error": "jobKey is required"}
    try:
        result = _rebuild(conn, job_key)
        conn.commit()
    except Exception:
        conn.rollback()
        logger.exception(f"Error syncing WIP for {job_key}")
        raise
    logger.info(f"Synced WIP for {job_key}: {result['total_hours']:.2f} total hours")
    return result


def sync_all(conn: sqlite3.Connection) -> Dict[str, Any]:
    """Rebuild every project that has scopes or schedule data. Continues past failures."""
    job_keys = set(ScheduleRepository(conn).job_keys())
    job_keys.update(s.job_key for s in ScopeRepository(conn).list_all())

    synced, errors = 0, []
    for job_key in sorted(k for k in job_keys if k):
        try:
            sync_project_wip(conn, job_key)
            synced += 1
        except Exception as e:
            errors.append({"job_key": job_key, "error": str(e)})

    logger.info(f"Sync complete: {synced} synced, {len(errors)} failed")
    return {"synced": synced, "failed": len(errors), "errors": errors}


# ---------------------------------------------------------------------------
# Board <-> Gantt fan-out
# ---------------------------------------------------------------------------


def _stretch_scheduled_scope(conn: sqlite3.Connection, job_key: str) -> Optional[Dict[str, Any]]:
    days = [
        d.date for d in ScheduleRepository(conn).short_term_days(job_key)
        if d.hours > 0 and d.date is not None
    ]
    if not days:
        return None

    scope = ScopeRepository(conn).find_by_title(job_key, scheduled_work_title())
    if scope is None:
        return None

    start, end = min(days).isoformat(), max(days).isoformat()
    ScopeRepository(conn).update_dates(scope.id, start, end)
    return {"scope_id": scope.id, "start_date": start, "end_date": end}


def sync_gantt_with_short_term(
    conn: sqlite3.Connection, job_key: str
) -> Optional[Dict[str, Any]]:
    """
    Move the "Scheduled Work" scope to span the project's board days.

    Returns:
        {scope_id, start_date, end_date}, or None when there are no board
        days with hours or no such scope.
    """
    result = _stretch_scheduled_scope(conn, job_key)
    conn.commit()
    if result:
        logger.info(
            f"Gantt for {job_key} now {result['start_date']}..{result['end_date']}"
        )
    return result


def update_short_term_from_scope(
    conn: sqlite3.Connection,
    job_key: str,
    start_date: str,
    end_date: str,
    daily_hours: float,
    foreman: Optional[str] = None,
) -> Dict[str, int]:
    """
    Write a board day for every workday of a scope's range.

    Existing days keep their foreman unless one is given.  Weeks that do not
    exist for a touched month are pruned.

    Returns:
        {month: days_written}; empty when the input is unusable.
    """
    start = parse_iso_date(start_date)
    end = parse_iso_date(end_date)
    daily_hours = to_float(daily_hours)
    if not job_key or start is None or end is None or daily_hours <= 0:
        return {}

    repo = ScheduleRepository(conn)
    written: Dict[str, int] = defaultdict(int)
    for monday, days in split_by_week(start, end).items():
        # every day of a board week belongs to its Monday's month
        month, week_number, _ = day_position_for_date(monday)
        if month not in written:
            repo.prune_invalid_weeks(job_key, month)
        for d in days:
            repo.upsert_short_term_day(
                job_key, month, week_number, d.weekday() + 1, daily_hours,
                foreman=foreman,
            )
        written[month] += len(days)
    conn.commit()
    return dict(written)


def record_day_edit(
    conn: sqlite3.Connection,
    job_key: str,
    day: Any,
    hours: Any,
    foreman: Optional[str] = None,
    employees: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """
    Store a day-level board edit, then fan it out.

    hours = 0 is an explicit clear.  The Gantt "Scheduled Work" range is
    re-fitted and the project's WIP rebuilt.
    """
    if not job_key:
        return {"error": "jobKey is required"}
    d = parse_iso_date(day)
    if d is None:
        return {"error": f"Invalid date: {day!r}"}
    position = day_position_for_date(d)
    if position is None:
        return {"error": f"{d.isoformat()} is a weekend day"}
    try:
        value = float(hours)
    except (TypeError, ValueError):
        return {"error": f"Invalid hours: {hours!r}"}
    if value < 0:
        return {"error": "hours must be >= 0"}

    month, week_number, day_number = position
    try:
        ScheduleRepository(conn).upsert_short_term_day(
            job_key, month, week_number, day_number, value,
            foreman=foreman, employees=employees,
        )
        gantt = _stretch_scheduled_scope(conn, job_key)
        wip = _rebuild(conn, job_key)
        conn.commit()
    except Exception:
        conn.rollback()
        logger.exception(f"Day edit failed for {job_key} on {d.isoformat()}")
        raise

    logger.info(f"Board {job_key} {d.isoformat()} set to {value:g}h")
    return {
        "job_key": job_key,
        "date": d.isoformat(),
        "month": month,
        "week_number": week_number,
        "day_number": day_number,
        "hours": value,
        "gantt": gantt,
        "wip": wip,
    }


# ---------------------------------------------------------------------------
# Manual reschedule
# ---------------------------------------------------------------------------


def _check_allocations(raw: Any) -> None:
    """Reject payload allocations with bad month keys or negative values."""
    if raw is None:
        return
    if isinstance(raw, dict):
        items = [{"month": m, "hours": v} for m, v in raw.items()]
    elif isinstance(raw, list):
        items = raw
    else:
        raise ScheduleValidationError("allocations must be a map or a list")

    for item in items:
        if not isinstance(item, dict):
            raise ScheduleValidationError("allocation entries must be objects")
        parse_month_key(item.get("month"))
        for field_name in ("hours", "percent"):
            value = item.get(field_name)
            if value is None:
                continue
            try:
                number = float(value)
            except (TypeError, ValueError):
                raise ScheduleValidationError(f"Invalid {field_name} for {item.get('month')}")
            if number < 0:
                raise ScheduleValidationError(f"Negative {field_name} for {item.get('month')}")


def _payload_text(payload: Dict[str, Any], key: str) -> str:
    value = payload.get(key)
    return "" if value is None else str(value).strip()


def save_manual_reschedule(
    conn: sqlite3.Connection, payload: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Persist a reschedule posted from the scheduling view.

    Incoming allocations (hour map or legacy percent list) are merged over
    the stored ones, month by month.  Status falls back to the stored
    status, then "In Progress".

    Raises:
        StaleScheduleError: payload carried a ``version`` that is out of date.
    """
    project_name = _payload_text(payload, "projectName")
    if not project_name:
        return {"error": "projectName is required"}

    customer = _payload_text(payload, "customer")
    number = _payload_text(payload, "projectNumber")
    job_key = _payload_text(payload, "jobKey") or make_job_key(
        customer, number, project_name
    )

    try:
        _check_allocations(payload.get("allocations"))
    except ScheduleValidationError as e:
        return {"error": str(e)}
    incoming = parse_allocations(payload.get("allocations"))

    repo = ScheduleRepository(conn)
    existing = repo.get_schedule(job_key)
    incoming_total = to_float(payload.get("totalHours"))
    if not incoming_total and existing:
        incoming_total = existing.total_hours

    if existing:
        allocations = merge_allocations(
            existing.allocations, incoming, existing.total_hours, incoming_total
        )
    else:
        allocations = HourMap(incoming.to_hours(incoming_total))

    record = ScheduleRecord(
        job_key=job_key,
        customer=customer or (existing.customer if existing else ""),
        project_number=number or (existing.project_number if existing else ""),
        project_name=project_name,
        status=payload.get("status") or (existing.status if existing else None) or DEFAULT_STATUS,
        total_hours=incoming_total,
        allocations=allocations,
        sync_source=MANUAL_SOURCE,
    )

    expected = payload.get("version")
    if expected is not None:
        try:
            expected = int(expected)
        except (TypeError, ValueError):
            return {"error": f"Invalid version: {expected!r}"}
    try:
        repo.save_schedule(record, expected_version=expected)
        conn.commit()
    except StaleScheduleError:
        conn.rollback()
        raise
    logger.info(f"Saved manual reschedule for {job_key} (v{record.version})")
    return record.to_payload()


# ---------------------------------------------------------------------------
# Outlook
# ---------------------------------------------------------------------------


def weekly_outlook(
    conn: sqlite3.Connection,
    job_key: Optional[str] = None,
    weeks: Optional[int] = None,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Hours per week for the next *weeks* weeks, starting this Monday."""
    weeks = int(weeks or get_config_value("scheduling", "sync_weeks_ahead", default=15))
    start = monday_of_week(today or date.today())
    end = start + timedelta(days=7 * weeks - 1)

    resolver = OverrideResolver.load(conn, job_key)
    days = resolver.resolve_job(job_key, start, end) if job_key else resolver.resolve(start, end)
    totals = hours_by_week(days)

    return [
        {
            "week_start": (start + timedelta(days=7 * i)).isoformat(),
            "hours": totals.get(start + timedelta(days=7 * i), 0.0),
        }
        for i in range(weeks)
    ]
