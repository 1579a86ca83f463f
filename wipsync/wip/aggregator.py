"""
WIP Aggregation

Rolls resolved days into month/year buckets and compares them against the
hour budget of qualifying (Accepted / In Progress) canonical projects:

    unscheduled = max(0, qualifying budget - hours placed for qualifying projects)

With a year filter, each qualifying project's budget is first reduced by
the hours it already has placed in other years.  The forecast is a display
trendline only and never feeds the budget.
"""

import sqlite3
from collections import defaultdict
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

import numpy as np

from wipsync.core.config import get_status_set
from wipsync.core.logging import get_logger
from wipsync.projects.dedupe import CanonicalProject, ExclusionRules, deduplicate_projects
from wipsync.projects.repository import ProjectRepository
from wipsync.scheduling.overrides import OverrideResolver, ResolvedDay
from wipsync.scheduling.workdays import month_key, parse_month_key

logger = get_logger("wipsync.wip.aggregator")

FORECAST_HISTORY = 6
FORECAST_HORIZON = 3


# ---------------------------------------------------------------------------
# Buckets
# ---------------------------------------------------------------------------


def scheduled_hours_by_month(
    days: Iterable[ResolvedDay], job_keys: Optional[Iterable[str]] = None
) -> Dict[str, float]:
    """{YYYY-MM: hours}, optionally restricted to *job_keys*."""
    keys = set(job_keys) if job_keys is not None else None
    totals: Dict[str, float] = defaultdict(float)
    for day in days:
        if keys is not None and day.job_key not in keys:
            continue
        totals[month_key(day.date)] += day.hours
    return dict(sorted(totals.items()))


def scheduled_hours(monthly: Dict[str, float], year: Optional[int] = None) -> float:
    """Total placed hours, optionally only for one calendar year."""
    return sum(
        hours for month, hours in monthly.items()
        if year is None or parse_month_key(month)[0] == year
    )


def year_month_matrix(monthly: Dict[str, float]) -> Dict[int, Dict[int, float]]:
    """{year: {month_number: hours}} for the Year x Month grid."""
    matrix: Dict[int, Dict[int, float]] = defaultdict(dict)
    for key, hours in monthly.items():
        year, month = parse_month_key(key)
        matrix[year][month] = matrix[year].get(month, 0.0) + hours
    return {y: dict(sorted(m.items())) for y, m in sorted(matrix.items())}


# ---------------------------------------------------------------------------
# Budget
# ---------------------------------------------------------------------------


def qualifying_hour_budget(
    projects: Iterable[CanonicalProject],
    monthly_by_job: Optional[Dict[str, Dict[str, float]]] = None,
    year: Optional[int] = None,
) -> float:
    """
    Sum of qualifying project hours.

    With *year*, each project's hours are reduced by what it already has
    placed in other years (never below zero per project).
    """
    monthly_by_job = monthly_by_job or {}
    budget = 0.0
    for project in projects:
        hours = project.hours
        if year is not None:
            placed_elsewhere = sum(
                h for m, h in monthly_by_job.get(project.job_key, {}).items()
                if parse_month_key(m)[0] != year
            )
            hours = max(0.0, hours - placed_elsewhere)
        budget += hours
    return budget


def unscheduled_hours(budget: float, scheduled: float) -> float:
    return max(0.0, budget - scheduled)


# ---------------------------------------------------------------------------
# Forecast
# ---------------------------------------------------------------------------


def _next_month(key: str) -> str:
    year, month = parse_month_key(key)
    return f"{year + 1:04d}-01" if month == 12 else f"{year:04d}-{month + 1:02d}"


def forecast(
    monthly: Dict[str, float],
    history: int = FORECAST_HISTORY,
    horizon: int = FORECAST_HORIZON,
) -> List[Dict[str, Any]]:
    """
    Linear trend over the last *history* months with data, projected
    *horizon* months past the latest one.  Negative projections clamp to 0.
    """
    recent = sorted(monthly)[-history:]
    if not recent:
        return []

    y = np.array([monthly[m] for m in recent], dtype=float)
    if len(recent) == 1:
        slope, intercept = 0.0, float(y[0])
    else:
        x = np.arange(len(recent), dtype=float)
        slope, intercept = (float(v) for v in np.polyfit(x, y, 1))

    points = []
    key = recent[-1]
    for step in range(horizon):
        key = _next_month(key)
        value = intercept + slope * (len(recent) + step)
        points.append({"month": key, "hours": round(max(0.0, value), 2)})
    return points


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


def wip_summary(
    conn: sqlite3.Connection,
    year: Optional[int] = None,
    rules: Optional[ExclusionRules] = None,
) -> Dict[str, Any]:
    """
    Scheduled vs. unscheduled hours for the WIP view.

    Returns:
        Dict with scheduled_hours, qualifying_budget, scheduled_qualifying,
        unscheduled_hours, monthly, matrix, forecast, project_count.
    """
    # Status filter applies per line item, before grouping.
    qualifying = deduplicate_projects(
        ProjectRepository(conn).list_lines(), rules,
        statuses=get_status_set("qualifying"),
    )
    qualifying_keys = {p.job_key for p in qualifying}

    days = OverrideResolver.load(conn).resolve()
    monthly = scheduled_hours_by_month(days)

    monthly_by_job: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
    for day in days:
        if day.job_key in qualifying_keys:
            monthly_by_job[day.job_key][month_key(day.date)] += day.hours

    qualifying_monthly = scheduled_hours_by_month(days, qualifying_keys)
    budget = qualifying_hour_budget(qualifying, monthly_by_job, year)
    placed = scheduled_hours(qualifying_monthly, year)

    shown = {m: h for m, h in monthly.items() if year is None or parse_month_key(m)[0] == year}

    return {
        "year": year,
        "scheduled_hours": round(scheduled_hours(monthly, year), 2),
        "qualifying_budget": round(budget, 2),
        "scheduled_qualifying": round(placed, 2),
        "unscheduled_hours": round(unscheduled_hours(budget, placed), 2),
        "project_count": len(qualifying),
        "monthly": {m: round(h, 2) for m, h in shown.items()},
        "matrix": year_month_matrix(monthly),
        "forecast": forecast(shown),
        "generated": date.today().isoformat(),
    }
