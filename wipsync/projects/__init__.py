"""
wipsync Projects Module

Estimate line items, Gantt scopes and canonical-project deduplication.
"""

from wipsync.projects.dedupe import (
    CanonicalProject,
    ExclusionRules,
    deduplicate_projects,
    select_customer,
)
from wipsync.projects.records import (
    ProjectLine,
    Scope,
    make_job_key,
    parse_date_value,
    sanitize_doc_id,
    split_job_key,
)
from wipsync.projects.repository import ProjectRepository, ScopeRepository

__all__ = [
    "CanonicalProject",
    "ExclusionRules",
    "deduplicate_projects",
    "select_customer",
    "ProjectLine",
    "Scope",
    "make_job_key",
    "parse_date_value",
    "sanitize_doc_id",
    "split_job_key",
    "ProjectRepository",
    "ScopeRepository",
]
