"""Smoke-test that all public APIs can be imported without error.

Catches stale imports, circular dependencies, and missing deps.
No DB or fixtures needed — pure import checks.
"""


def test_import_wipsync():
    import wipsync
    assert wipsync.__version__ == "0.1.0"


def test_import_core():
    from wipsync.core import get_db, get_config, get_logger, WIPSYNC_PATHS, migrate_all, execute_query  # noqa: F401


def test_import_projects():
    from wipsync.projects import (  # noqa: F401
        ProjectLine, Scope, make_job_key, deduplicate_projects,
        ProjectRepository, ScopeRepository,
    )


def test_import_scheduling():
    from wipsync.scheduling.workdays import (  # noqa: F401
        workdays_between, overlap_days, date_for_position, day_position_for_date,
        distribute_pay_period_hours,
    )
    from wipsync.scheduling.allocator import allocate_scope, allocate_project  # noqa: F401
    from wipsync.scheduling.overrides import OverrideResolver, group_by_foreman  # noqa: F401
    from wipsync.scheduling.sync import (  # noqa: F401
        sync_project_wip, record_day_edit, save_manual_reschedule,
        sync_gantt_with_short_term, update_short_term_from_scope,
    )


def test_import_wip():
    from wipsync.wip.aggregator import wip_summary, forecast  # noqa: F401
    from wipsync.wip.export import build_workbook  # noqa: F401


def test_import_api():
    from wipsync.api import create_app  # noqa: F401
    from wipsync.api.scheduling import bp  # noqa: F401


def test_import_cli():
    from wipsync.cli.main import app, main  # noqa: F401
