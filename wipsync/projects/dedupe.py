"""
Project Deduplication

Collapses estimate line items into one canonical project per
(customer, number, name):

    1. drop excluded records (archived, internal/test sentinels, no estimator)
    2. group by identifier = project number, else project name
    3. when an identifier carries several customers, keep one:
         a. first customer (ascending name) with a priority status
         b. else the customer with the latest dateCreated, ties by name
    4. sum sales/cost/hours per (customer, number, name); the record whose
       name sorts first (case-insensitive) supplies the display fields

Input order never changes the result.
"""

from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from wipsync.core.config import get_config_value, get_status_set
from wipsync.core.logging import get_logger
from wipsync.projects.records import ProjectLine, make_job_key

logger = get_logger("wipsync.projects.dedupe")


@dataclass(frozen=True)
class ExclusionRules:
    """Fixed deny-lists for internal, test and sandbox records. Matching is case-insensitive."""

    customer_substrings: Tuple[str, ...] = ()
    project_names: Tuple[str, ...] = ()
    project_name_substrings: Tuple[str, ...] = ()
    estimators: Tuple[str, ...] = ()
    project_numbers: Tuple[str, ...] = ()
    require_estimator: bool = True

    @classmethod
    def from_config(cls) -> "ExclusionRules":
        section = get_config_value("exclusions", default={}) or {}

        def _lower(key: str) -> Tuple[str, ...]:
            return tuple(str(v).strip().lower() for v in section.get(key) or [])

        return cls(
            customer_substrings=_lower("customer_substrings"),
            project_names=_lower("project_names"),
            project_name_substrings=_lower("project_name_substrings"),
            estimators=_lower("estimators"),
            project_numbers=_lower("project_numbers"),
            require_estimator=bool(section.get("require_estimator", True)),
        )

    def excludes(self, line: ProjectLine) -> bool:
        if line.archived:
            return True
        customer = line.customer.lower()
        if any(s in customer for s in self.customer_substrings):
            return True
        name = line.project_name.lower()
        if name in self.project_names:
            return True
        if any(s in name for s in self.project_name_substrings):
            return True
        estimator = line.estimator.strip().lower()
        if self.require_estimator and not estimator:
            return True
        if estimator in self.estimators:
            return True
        return line.project_number.lower() in self.project_numbers


@dataclass
class CanonicalProject:
    customer: str
    project_number: str
    project_name: str
    status: str = ""
    sales: float = 0.0
    cost: float = 0.0
    hours: float = 0.0
    estimator: str = ""
    scope_of_work: str = ""
    date_created: Optional[str] = None
    line_count: int = 0
    lines: List[ProjectLine] = field(default_factory=list, repr=False, compare=False)

    @property
    def job_key(self) -> str:
        return make_job_key(self.customer, self.project_number, self.project_name)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d.pop("lines")
        d["job_key"] = self.job_key
        return d


def filter_lines(
    lines: Iterable[ProjectLine], rules: Optional[ExclusionRules] = None
) -> List[ProjectLine]:
    rules = rules or ExclusionRules.from_config()
    return [line for line in lines if not rules.excludes(line)]


def _latest_created(lines: Sequence[ProjectLine]) -> Optional[datetime]:
    dates = [line.created for line in lines if line.created is not None]
    return max(dates) if dates else None


def select_customer(
    by_customer: Dict[str, List[ProjectLine]],
    priority_statuses: Optional[Iterable[str]] = None,
) -> str:
    """
    Pick the one customer that owns a contested identifier.

    Customers are visited in ascending name order; the first with any
    priority-status record wins outright.  Otherwise the latest dateCreated
    wins, ties and undated groups falling back to name order.
    """
    priority = set(priority_statuses or get_status_set("priority"))
    customers = sorted(by_customer)

    for customer in customers:
        if any(line.status in priority for line in by_customer[customer]):
            return customer

    best = customers[0]
    best_date = _latest_created(by_customer[best])
    for customer in customers[1:]:
        created = _latest_created(by_customer[customer])
        if created is not None and (best_date is None or created > best_date):
            best, best_date = customer, created
    return best


def _representative_key(line: ProjectLine):
    return (
        line.project_name.lower(),
        line.project_name,
        line.scope_of_work.lower(),
        line.status,
        line.estimator,
        line.cost_type,
    )


def _aggregate(key: Tuple[str, str, str], lines: List[ProjectLine]) -> CanonicalProject:
    # fixed summation order keeps float totals stable under input shuffling
    lines = sorted(
        lines, key=lambda l: (_representative_key(l), l.sales, l.cost, l.hours)
    )
    rep = lines[0]
    created = _latest_created(lines)
    return CanonicalProject(
        customer=key[0],
        project_number=key[1],
        project_name=key[2],
        status=rep.status,
        sales=sum(line.sales for line in lines),
        cost=sum(line.cost for line in lines),
        hours=sum(line.hours for line in lines),
        estimator=rep.estimator,
        scope_of_work=rep.scope_of_work,
        date_created=created.isoformat() if created else None,
        line_count=len(lines),
        lines=list(lines),
    )


def deduplicate_projects(
    lines: Iterable[ProjectLine],
    rules: Optional[ExclusionRules] = None,
    statuses: Optional[Iterable[str]] = None,
    priority_statuses: Optional[Iterable[str]] = None,
) -> List[CanonicalProject]:
    """
    Collapse line items into canonical projects.

    Args:
        lines: Every line item, in any order.
        rules: Exclusion deny-lists (default: from config).
        statuses: If given, keep only surviving lines with one of these
            statuses before summing.
        priority_statuses: Status set for the customer tie-break.

    Returns:
        CanonicalProject list sorted by (customer, number, name).
    """
    survivors = filter_lines(lines, rules)

    by_identifier: Dict[str, Dict[str, List[ProjectLine]]] = defaultdict(
        lambda: defaultdict(list)
    )
    for line in survivors:
        identifier = line.identifier
        if not identifier:
            continue
        by_identifier[identifier][line.customer].append(line)

    kept: List[ProjectLine] = []
    for identifier, by_customer in by_identifier.items():
        if len(by_customer) == 1:
            kept.extend(next(iter(by_customer.values())))
            continue
        customer = select_customer(by_customer, priority_statuses)
        logger.debug(
            f"Identifier {identifier!r} claimed by {len(by_customer)} customers; "
            f"keeping {customer!r}"
        )
        kept.extend(by_customer[customer])

    if statuses is not None:
        allowed = set(statuses)
        kept = [line for line in kept if line.status in allowed]

    grouped: Dict[Tuple[str, str, str], List[ProjectLine]] = defaultdict(list)
    for line in kept:
        grouped[(line.customer, line.project_number, line.project_name)].append(line)

    return [_aggregate(key, grouped[key]) for key in sorted(grouped)]
