"""
Project & Scope Records

Identity helpers (jobKey, storage doc ids), the single date normaliser used
for every date-like field, and the two record types the allocation core reads:

    ProjectLine  - one estimate line item (one per cost category)
    Scope        - one Gantt bar with a date range and hours or manpower

No Flask imports — used by both CLI and API layers.
"""

import re
import sqlite3
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple, Union

JOB_KEY_SEPARATOR = "~"

_DOC_ID_UNSAFE = re.compile(r"[^a-zA-Z0-9_-]")
_WHITESPACE = re.compile(r"\s+")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_SLASH_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")

# Accepted shapes for a stored date:
#   epoch milliseconds, ISO string, M/D/YYYY string,
#   {"seconds": ..} / {"_seconds": ..} timestamp objects, date/datetime
DateLike = Union[int, float, str, Mapping[str, Any], date, datetime, None]


class ScheduleValidationError(ValueError):
    """A schedule payload, month key or week/day position failed validation."""


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


def _normalize_part(value: Any) -> str:
    if value is None:
        return ""
    return _WHITESPACE.sub(" ", str(value)).strip()


def make_job_key(customer: Any, project_number: Any, project_name: Any) -> str:
    """Build the ``customer~number~name`` key shared by every collection."""
    return JOB_KEY_SEPARATOR.join(
        _normalize_part(p) for p in (customer, project_number, project_name)
    )


def split_job_key(job_key: str) -> Tuple[str, str, str]:
    """Inverse of make_job_key(); missing parts come back as ''."""
    parts = (job_key or "").split(JOB_KEY_SEPARATOR)
    parts += [""] * (3 - len(parts))
    return parts[0], parts[1], JOB_KEY_SEPARATOR.join(parts[2:])


def sanitize_doc_id(value: str) -> str:
    """Replace every character outside [A-Za-z0-9_-] with '_'."""
    return _DOC_ID_UNSAFE.sub("_", value or "")


# ---------------------------------------------------------------------------
# Value normalisation
# ---------------------------------------------------------------------------


def to_float(value: Any) -> float:
    """Lenient numeric parse: None, '' and garbage become 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    if result != result or result in (float("inf"), float("-inf")):
        return 0.0
    return result


def _naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def parse_date_value(value: DateLike) -> Optional[datetime]:
    """Normalise any stored date shape to a naive datetime, or None.

    Invalid or unparsable input is treated as absent rather than raised,
    so callers can skip the record from date-dependent calculations.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return _naive_utc(datetime.fromtimestamp(value / 1000, tz=timezone.utc))
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, Mapping):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is None:
            return None
        nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
        return parse_date_value(to_float(seconds) * 1000 + to_float(nanos) / 1e6)
    if isinstance(value, str):
        text = value.strip()
        m = _SLASH_DATE.match(text)
        if m:
            month, day, year = (int(g) for g in m.groups())
            try:
                return datetime(year, month, day)
            except ValueError:
                return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return _naive_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def parse_iso_date(value: Any) -> Optional[date]:
    """Parse a YYYY-MM-DD calendar date with no timezone shift."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    m = _ISO_DATE.match(value.strip())
    if not m:
        return None
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass
class ProjectLine:
    """One estimate line item. hours/sales/cost are additive within a jobKey."""

    customer: str = ""
    project_number: str = ""
    project_name: str = ""
    status: str = ""
    sales: float = 0.0
    cost: float = 0.0
    hours: float = 0.0
    estimator: str = ""
    scope_of_work: str = ""
    cost_type: str = ""
    date_created: DateLike = None
    date_updated: DateLike = None
    archived: bool = False
    id: Optional[int] = None

    @property
    def job_key(self) -> str:
        return make_job_key(self.customer, self.project_number, self.project_name)

    @property
    def identifier(self) -> str:
        """Project number, falling back to project name."""
        number = _normalize_part(self.project_number)
        return number or _normalize_part(self.project_name)

    @property
    def created(self) -> Optional[datetime]:
        return parse_date_value(self.date_created)

    @classmethod
    def from_row(cls, row: Union[sqlite3.Row, Mapping[str, Any]]) -> "ProjectLine":
        d = dict(row)
        return cls(
            id=d.get("id"),
            customer=_normalize_part(d.get("customer")),
            project_number=_normalize_part(d.get("project_number")),
            project_name=_normalize_part(d.get("project_name")),
            status=(d.get("status") or "").strip(),
            sales=to_float(d.get("sales")),
            cost=to_float(d.get("cost")),
            hours=to_float(d.get("hours")),
            estimator=(d.get("estimator") or "").strip(),
            scope_of_work=(d.get("scope_of_work") or "").strip(),
            cost_type=(d.get("cost_type") or "").strip(),
            date_created=d.get("date_created"),
            date_updated=d.get("date_updated"),
            archived=bool(d.get("project_archived") or d.get("archived")),
        )

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["job_key"] = self.job_key
        return d


@dataclass
class Scope:
    """A Gantt-chart work item owned by exactly one jobKey."""

    job_key: str
    title: str = ""
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    manpower: Optional[float] = None
    hours: Optional[float] = None
    description: str = ""
    id: Optional[int] = None

    @property
    def date_range(self) -> Optional[Tuple[date, date]]:
        """(start, end) when both dates parse, else None."""
        start = parse_iso_date(self.start_date)
        end = parse_iso_date(self.end_date)
        if start is None or end is None:
            return None
        return start, end

    @property
    def has_valid_dates(self) -> bool:
        return self.date_range is not None

    @classmethod
    def from_row(cls, row: Union[sqlite3.Row, Mapping[str, Any]]) -> "Scope":
        d = dict(row)
        return cls(
            id=d.get("id"),
            job_key=d.get("job_key") or "",
            title=(d.get("title") or "").strip(),
            start_date=d.get("start_date") or None,
            end_date=d.get("end_date") or None,
            manpower=to_float(d.get("manpower")),
            hours=to_float(d.get("hours")),
            description=d.get("description") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
