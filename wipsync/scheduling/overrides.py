"""
Override Resolution

Reconciles the three scheduling sources into one hours-per-day view.
Precedence per (jobKey, day):

    1. short-term board day, when one was written for that day
       (a stored zero counts; a zero with no foreman is a clear that
       yields back to the Gantt figure when one exists)
    2. Gantt scopes via the allocator
    3. long-term week bucket split evenly over its five workdays, only
       for projects with no valid scope anywhere

Zero-hour results are dropped from the output.  Everything here is a
pure function of the stored rows, so resolving twice gives the same view.
"""

import sqlite3
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from wipsync.core.logging import get_logger
from wipsync.projects.records import Scope
from wipsync.projects.repository import ScopeRepository
from wipsync.scheduling.allocator import allocate_project, has_valid_scope
from wipsync.scheduling.repository import LongTermWeek, ScheduleRepository, ShortTermDay
from wipsync.scheduling.workdays import WORKDAYS_PER_WEEK, week_dates

logger = get_logger("wipsync.scheduling.overrides")

UNASSIGNED_FOREMAN = "__unassigned__"

SOURCE_SHORT_TERM = "short-term"
SOURCE_GANTT = "gantt"
SOURCE_LONG_TERM = "long-term"


@dataclass
class ResolvedDay:
    job_key: str
    date: date
    hours: float
    foreman: str = ""
    employees: List[str] = field(default_factory=list)
    source: str = SOURCE_GANTT

    def to_dict(self) -> Dict:
        d = asdict(self)
        d["date"] = self.date.isoformat()
        return d


def long_term_daily(weeks: Iterable[LongTermWeek]) -> Dict[date, float]:
    """Spread each weekly bucket over Mon-Fri of its board week."""
    daily: Dict[date, float] = defaultdict(float)
    for week in weeks:
        start = week.week_start
        if start is None:
            logger.warning(
                f"Ignoring long-term week {week.week_number} of {week.month} "
                f"for {week.job_key}: month has no such week"
            )
            continue
        for d in week_dates(start):
            daily[d] += week.hours / WORKDAYS_PER_WEEK
    return dict(daily)


def resolve_job(
    job_key: str,
    scopes: Sequence[Scope],
    short_term: Iterable[ShortTermDay],
    long_term: Iterable[LongTermWeek],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[ResolvedDay]:
    """
    Resolve one project's days.

    Args:
        job_key: Project key the rows belong to.
        scopes: The project's Gantt scopes (invalid ones are ignored).
        short_term: Board days written for the project.
        long_term: Weekly buckets for the project.
        start, end: Optional inclusive date window for the output.

    Returns:
        Non-zero ResolvedDay entries sorted by date.
    """
    gantt = allocate_project(scopes)
    fallback = {} if has_valid_scope(scopes) else long_term_daily(long_term)

    board: Dict[date, ShortTermDay] = {}
    for day in short_term:
        d = day.date
        if d is None:
            logger.warning(
                f"Ignoring board day {day.month} W{day.week_number}D{day.day_number} "
                f"for {job_key}: no such date"
            )
            continue
        board[d] = day

    resolved: List[ResolvedDay] = []
    for d in sorted(set(gantt) | set(fallback) | set(board)):
        if start and d < start or end and d > end:
            continue

        entry = board.get(d)
        if entry is not None and not (entry.is_cleared and d in gantt):
            result = ResolvedDay(
                job_key, d, entry.hours, entry.foreman, list(entry.employees),
                SOURCE_SHORT_TERM,
            )
        elif d in gantt:
            result = ResolvedDay(job_key, d, gantt[d], source=SOURCE_GANTT)
        elif entry is None and d in fallback:
            result = ResolvedDay(job_key, d, fallback[d], source=SOURCE_LONG_TERM)
        else:
            continue

        if result.hours > 0:
            resolved.append(result)
    return resolved


def group_by_foreman(days: Iterable[ResolvedDay]) -> Dict[str, Dict[str, List[Dict]]]:
    """{foreman: {iso_date: [entries]}}; blank foremen go to UNASSIGNED_FOREMAN."""
    grouped: Dict[str, Dict[str, List[Dict]]] = defaultdict(lambda: defaultdict(list))
    for day in days:
        foreman = day.foreman or UNASSIGNED_FOREMAN
        grouped[foreman][day.date.isoformat()].append({
            "jobKey": day.job_key,
            "hours": day.hours,
            "foreman": day.foreman,
            "employees": list(day.employees),
            "source": day.source,
        })
    return {f: dict(dates) for f, dates in grouped.items()}


class OverrideResolver:
    """Loads stored rows through the repositories and resolves them per project."""

    def __init__(
        self,
        scopes: Iterable[Scope],
        short_term: Iterable[ShortTermDay],
        long_term: Iterable[LongTermWeek],
    ):
        self.scopes: Dict[str, List[Scope]] = defaultdict(list)
        self.short_term: Dict[str, List[ShortTermDay]] = defaultdict(list)
        self.long_term: Dict[str, List[LongTermWeek]] = defaultdict(list)
        for s in scopes:
            self.scopes[s.job_key].append(s)
        for d in short_term:
            self.short_term[d.job_key].append(d)
        for w in long_term:
            self.long_term[w.job_key].append(w)

    @classmethod
    def load(cls, conn: sqlite3.Connection, job_key: Optional[str] = None) -> "OverrideResolver":
        """Read the latest stored rows (all projects, or one)."""
        scope_repo = ScopeRepository(conn)
        schedule_repo = ScheduleRepository(conn)
        scopes = scope_repo.list_for_job(job_key) if job_key else scope_repo.list_all()
        return cls(
            scopes,
            schedule_repo.short_term_days(job_key),
            schedule_repo.long_term_weeks(job_key),
        )

    @property
    def job_keys(self) -> List[str]:
        return sorted(set(self.scopes) | set(self.short_term) | set(self.long_term))

    def resolve_job(
        self, job_key: str, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[ResolvedDay]:
        return resolve_job(
            job_key,
            self.scopes.get(job_key, []),
            self.short_term.get(job_key, []),
            self.long_term.get(job_key, []),
            start,
            end,
        )

    def resolve(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[ResolvedDay]:
        """Every project's days, sorted by date then jobKey."""
        days: List[ResolvedDay] = []
        for job_key in self.job_keys:
            days.extend(self.resolve_job(job_key, start, end))
        days.sort(key=lambda r: (r.date, r.job_key))
        return days
