"""
Scope Allocation

Turns Gantt scopes into per-day hour figures.

    manpower > 0  -> manpower * hours_per_worker on every workday in range
    hours > 0     -> hours / workdays_between(start, end) on every workday
    otherwise     -> nothing

Weekends never receive hours.  Scopes of the same jobKey are summed into one
figure per day.  Sales follow hours per scope, but are spread across months
by calendar-day overlap rather than by workdays.
"""

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable

from wipsync.core.config import get_config_value
from wipsync.core.logging import get_logger
from wipsync.projects.records import Scope
from wipsync.scheduling.workdays import (
    iter_workdays,
    overlap_days,
    split_by_month,
    workdays_between,
)

logger = get_logger("wipsync.scheduling.allocator")

DailyHours = Dict[date, float]


def hours_per_worker() -> float:
    return float(get_config_value("scheduling", "hours_per_worker", default=10))


def daily_rate(scope: Scope) -> float:
    """Hours per workday for a scope with valid dates; 0.0 when none apply."""
    span = scope.date_range
    if span is None:
        return 0.0
    if scope.manpower and scope.manpower > 0:
        return scope.manpower * hours_per_worker()
    if scope.hours and scope.hours > 0:
        workdays = workdays_between(*span)
        if workdays == 0:
            return 0.0
        return scope.hours / workdays
    return 0.0


def allocate_scope(scope: Scope) -> DailyHours:
    """Per-workday hours for one scope. Empty when dates are missing/invalid."""
    span = scope.date_range
    if span is None:
        if scope.start_date or scope.end_date:
            logger.warning(
                f"Skipping scope {scope.title!r} on {scope.job_key}: "
                f"invalid date range {scope.start_date!r}..{scope.end_date!r}"
            )
        return {}

    rate = daily_rate(scope)
    if rate <= 0:
        return {}
    return {d: rate for d in iter_workdays(*span)}


def allocate_project(scopes: Iterable[Scope]) -> DailyHours:
    """Sum every scope's daily hours into one figure per day."""
    totals: DailyHours = defaultdict(float)
    for scope in scopes:
        for d, hours in allocate_scope(scope).items():
            totals[d] += hours
    return dict(totals)


def has_valid_scope(scopes: Iterable[Scope]) -> bool:
    """True if any scope carries a parseable start/end pair."""
    return any(s.has_valid_dates for s in scopes)


def scope_total_hours(scope: Scope) -> float:
    """Total hours a scope represents (manpower-derived when staffed)."""
    if scope.manpower and scope.manpower > 0:
        span = scope.date_range
        if span is None:
            return 0.0
        return scope.manpower * hours_per_worker() * workdays_between(*span)
    return scope.hours if scope.hours and scope.hours > 0 else 0.0


def distribute_scope_sales(
    scopes: Iterable[Scope], total_sales: float
) -> Dict[str, float]:
    """
    Spread a project's sales across months following its scopes.

    Each scope takes ``scope_hours / total_scope_hours * total_sales`` and
    spreads it over months by calendar-day overlap with the scope range.

    Returns:
        {month_key: sales}
    """
    dated = [s for s in scopes if s.has_valid_dates]
    total_hours = sum(scope_total_hours(s) for s in dated)
    if total_hours <= 0 or not total_sales:
        return {}

    by_month: Dict[str, float] = defaultdict(float)
    for scope in dated:
        share = scope_total_hours(scope) / total_hours * total_sales
        start, end = scope.date_range
        span_days = overlap_days(start, end, start, end)
        if span_days == 0 or share == 0:
            continue
        for key, seg_start, seg_end in split_by_month(start, end):
            by_month[key] += share * overlap_days(start, end, seg_start, seg_end) / span_days
    return dict(by_month)
