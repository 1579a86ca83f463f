"""
Calendar math for scheduling.

Two counting modes live here and are not interchangeable:

    workdays      Mon-Fri days in a range (optionally minus holidays).
                  Drives scope daily rates and pay-period spreading.
    calendar days inclusive day count of a range intersection.
                  Drives proportional sales spreading across months.

Board positions: week N of a month starts on the Nth Monday on or after
the 1st; day 1..5 is Mon..Fri of that week.  Days before the first Monday
belong to the last week of the previous month.
"""

from calendar import monthrange
from datetime import date, timedelta
from functools import lru_cache
from typing import Dict, FrozenSet, Iterator, List, Optional, Tuple

from wipsync.core.config import get_config_value, on_reload
from wipsync.projects.records import (
    ScheduleValidationError,
    parse_date_value,
    parse_iso_date,
)

WORKDAYS_PER_WEEK = 5

# US federal holidays, used when config has no list for the year
HOLIDAYS_2026 = (
    "2026-01-01",
    "2026-01-19",
    "2026-02-16",
    "2026-05-25",
    "2026-07-03",
    "2026-09-07",
    "2026-10-12",
    "2026-11-11",
    "2026-11-26",
    "2026-11-27",
    "2026-12-25",
)


# ---------------------------------------------------------------------------
# Day classification
# ---------------------------------------------------------------------------


def is_weekend(d: date) -> bool:
    return d.weekday() >= 5


@lru_cache(maxsize=None)
def holidays_for(year: int) -> FrozenSet[date]:
    """Static holiday table for *year* (config first, then built-in)."""
    configured = get_config_value("scheduling", "holidays", default={}) or {}
    raw = configured.get(year, configured.get(str(year)))
    if raw is None:
        raw = HOLIDAYS_2026 if year == 2026 else ()
    parsed = (parse_iso_date(str(h)) for h in raw)
    return frozenset(h for h in parsed if h is not None and h.year == year)


on_reload(holidays_for.cache_clear)


def is_holiday(d: date) -> bool:
    return d in holidays_for(d.year)


def iter_days(start: date, end: date) -> Iterator[date]:
    """Every calendar day from start to end inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def iter_workdays(
    start: date, end: date, skip_holidays: bool = False
) -> Iterator[date]:
    for d in iter_days(start, end):
        if is_weekend(d):
            continue
        if skip_holidays and is_holiday(d):
            continue
        yield d


def workdays_between(start: date, end: date, skip_holidays: bool = False) -> int:
    """Count Mon-Fri days in [start, end]; 0 when end < start."""
    return sum(1 for _ in iter_workdays(start, end, skip_holidays))


def overlap_days(
    range_start: date, range_end: date, period_start: date, period_end: date
) -> int:
    """Calendar days in the intersection of two inclusive ranges."""
    lo = max(range_start, period_start)
    hi = min(range_end, period_end)
    if lo > hi:
        return 0
    return (hi - lo).days + 1


# ---------------------------------------------------------------------------
# Months
# ---------------------------------------------------------------------------


def month_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def parse_month_key(key: str) -> Tuple[int, int]:
    """'YYYY-MM' -> (year, month). Raises ScheduleValidationError."""
    try:
        year_s, month_s = str(key).split("-")
        year, month = int(year_s), int(month_s)
    except (AttributeError, ValueError):
        raise ScheduleValidationError(f"Invalid month key: {key!r}")
    if len(year_s) != 4 or not 1 <= month <= 12:
        raise ScheduleValidationError(f"Invalid month key: {key!r}")
    return year, month


def is_month_key(key: str) -> bool:
    try:
        parse_month_key(key)
    except ScheduleValidationError:
        return False
    return True


def month_range(key: str) -> Tuple[date, date]:
    """First and last calendar day of a 'YYYY-MM' month."""
    year, month = parse_month_key(key)
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])


def months_in_range(start: date, end: date) -> List[str]:
    """Month keys touched by [start, end], in order."""
    months: List[str] = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        months.append(f"{year:04d}-{month:02d}")
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return months


def split_by_month(start: date, end: date) -> List[Tuple[str, date, date]]:
    """Cut [start, end] into per-month (key, segment_start, segment_end)."""
    segments = []
    for key in months_in_range(start, end):
        first, last = month_range(key)
        segments.append((key, max(start, first), min(end, last)))
    return segments


# ---------------------------------------------------------------------------
# Weeks & board positions
# ---------------------------------------------------------------------------


def monday_of_week(d: date) -> date:
    return d - timedelta(days=d.weekday())


def week_starts_of_month(key: str) -> List[date]:
    """Mondays that start a week of the month (first one is >= the 1st)."""
    first, last = month_range(key)
    monday = first + timedelta(days=(7 - first.weekday()) % 7)
    starts = []
    while monday <= last:
        starts.append(monday)
        monday += timedelta(days=7)
    return starts


def week_dates(week_start: date) -> List[date]:
    """The five workdays of a week starting on *week_start*."""
    return [week_start + timedelta(days=i) for i in range(WORKDAYS_PER_WEEK)]


def date_for_position(key: str, week_number: int, day_number: int) -> Optional[date]:
    """Concrete date of (month, week, day), or None if the week does not exist."""
    if not 1 <= day_number <= WORKDAYS_PER_WEEK:
        return None
    starts = week_starts_of_month(key)
    if not 1 <= week_number <= len(starts):
        return None
    return starts[week_number - 1] + timedelta(days=day_number - 1)


def day_position_for_date(d: date) -> Optional[Tuple[str, int, int]]:
    """(month, week_number, day_number) owning a workday; None on weekends."""
    if is_weekend(d):
        return None
    monday = monday_of_week(d)
    key = month_key(monday)
    week_number = week_starts_of_month(key).index(monday) + 1
    return key, week_number, d.weekday() + 1


def split_by_week(start: date, end: date) -> Dict[date, List[date]]:
    """Workdays of [start, end] grouped by their Monday."""
    weeks: Dict[date, List[date]] = {}
    for d in iter_workdays(start, end):
        weeks.setdefault(monday_of_week(d), []).append(d)
    return weeks


# ---------------------------------------------------------------------------
# Pay periods
# ---------------------------------------------------------------------------


def distribute_pay_period_hours(
    begin, end, total_hours: float
) -> Dict[str, float]:
    """
    Spread a pay period's hours over the months it spans.

    Each month gets a share proportional to its weekdays-excluding-holidays
    inside the period, rounded to 2 decimals.  Dates may be ``date`` objects,
    ISO strings, or M/D/YYYY strings.

    Returns:
        {month_key: hours}; empty when the period has no workdays.
    """
    start_d = _coerce_date(begin)
    end_d = _coerce_date(end)
    if start_d is None or end_d is None:
        return {}

    total_days = workdays_between(start_d, end_d, skip_holidays=True)
    if total_days == 0:
        return {}

    distribution: Dict[str, float] = {}
    for key, seg_start, seg_end in split_by_month(start_d, end_d):
        in_month = workdays_between(seg_start, seg_end, skip_holidays=True)
        distribution[key] = round(total_hours * in_month / total_days, 2)
    return distribution


def _coerce_date(value) -> Optional[date]:
    parsed = parse_iso_date(value)
    if parsed is not None:
        return parsed
    dt = parse_date_value(value)
    return dt.date() if dt else None
