"""
wipsync - Labor-hours scheduling & WIP reconciliation

Reconciles Gantt scopes, the short-term daily board and the long-term weekly
board into one hours-per-day view, and rolls it into monthly WIP.

Modules:
    core        - Shared services (db, config, logging, output)
    projects    - Line items, scopes, canonical-project deduplication
    scheduling  - Calendar math, scope allocation, override resolution, sync
    wip         - Scheduled vs. unscheduled hours, forecast, Excel export
    api         - Flask blueprint for the scheduling views
    cli         - Unified Typer CLI
"""

__version__ = "0.1.0"
