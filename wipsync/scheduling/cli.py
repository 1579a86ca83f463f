"""Scheduling CLI sub-commands."""

from typing import Optional

import typer

app = typer.Typer(no_args_is_help=True)


@app.command("sync")
def sync(
    job_key: Optional[str] = typer.Argument(None, help="Project key customer~number~name"),
    all_jobs: bool = typer.Option(False, "--all", help="Rebuild every project"),
):
    """Recompute the schedules aggregate and caches."""
    from wipsync.core import get_db
    from wipsync.scheduling.sync import sync_all, sync_project_wip

    if not job_key and not all_jobs:
        typer.echo("Provide a JOBKEY or --all.")
        raise typer.Exit(1)

    with get_db() as conn:
        if all_jobs:
            result = sync_all(conn)
            typer.echo(f"Synced {result['synced']} project(s), {result['failed']} failed.")
            for err in result["errors"]:
                typer.echo(f"  {err['job_key']}: {err['error']}")
            if result["failed"]:
                raise typer.Exit(1)
            return
        result = sync_project_wip(conn, job_key)

    if "error" in result:
        typer.echo(f"Error: {result['error']}")
        raise typer.Exit(1)
    typer.echo(f"{job_key}: {result['total_hours']:.2f} h over {len(result['allocations'])} month(s)")
    for month, hours in result["allocations"].items():
        typer.echo(f"  {month}  {hours:>10.2f}")


@app.command("day")
def day(
    job_key: str = typer.Argument(..., help="Project key customer~number~name"),
    date: str = typer.Argument(..., help="Workday YYYY-MM-DD"),
    hours: float = typer.Option(..., "--hours", "-h", help="Hours for the day (0 clears)"),
    foreman: Optional[str] = typer.Option(None, "--foreman", help="Foreman id"),
):
    """Set one board day and fan the change out to Gantt and WIP."""
    from wipsync.core import get_db
    from wipsync.scheduling.sync import record_day_edit

    with get_db() as conn:
        result = record_day_edit(conn, job_key, date, hours, foreman=foreman)

    if "error" in result:
        typer.echo(f"Error: {result['error']}")
        raise typer.Exit(1)

    typer.echo(
        f"{job_key} {result['date']} (week {result['week_number']}, "
        f"day {result['day_number']} of {result['month']}) = {result['hours']:g} h"
    )
    if result["gantt"]:
        typer.echo(
            f"  Scheduled Work now {result['gantt']['start_date']} .. {result['gantt']['end_date']}"
        )
    typer.echo(f"  WIP total: {result['wip']['total_hours']:.2f} h")


@app.command("show")
def show(
    start: str = typer.Option(..., "--start", help="Start date YYYY-MM-DD"),
    end: str = typer.Option(..., "--end", help="End date YYYY-MM-DD"),
    job_key: Optional[str] = typer.Option(None, "--job", "-j", help="Limit to one project"),
    output_format: str = typer.Option("table", "--format", "-f", help="Output format: table | json"),
):
    """Show the resolved per-foreman, per-date board."""
    import json
    from datetime import date as _date

    from wipsync.core import get_db
    from wipsync.scheduling.overrides import OverrideResolver, group_by_foreman

    try:
        sd, ed = _date.fromisoformat(start), _date.fromisoformat(end)
    except ValueError as e:
        typer.echo(f"Error: {e}")
        raise typer.Exit(1)

    with get_db(readonly=True) as conn:
        resolver = OverrideResolver.load(conn, job_key)
    days = resolver.resolve_job(job_key, sd, ed) if job_key else resolver.resolve(sd, ed)

    if output_format == "json":
        typer.echo(json.dumps(group_by_foreman(days), indent=2))
        return

    if not days:
        typer.echo("No scheduled hours in range.")
        return
    typer.echo(f"  {'Date':<12} {'Foreman':<16} {'Hours':>8}  {'Source':<11} Job")
    typer.echo(f"  {'-' * 12} {'-' * 16} {'-' * 8}  {'-' * 11} {'-' * 30}")
    for d in days:
        typer.echo(
            f"  {d.date.isoformat():<12} {(d.foreman or '-'):<16} {d.hours:>8.2f}  "
            f"{d.source:<11} {d.job_key}"
        )
    typer.echo(f"\n  Total: {sum(d.hours for d in days):.2f} h")


@app.command("outlook")
def outlook(
    job_key: Optional[str] = typer.Option(None, "--job", "-j", help="Limit to one project"),
    weeks: Optional[int] = typer.Option(None, "--weeks", "-w", help="Weeks ahead (default from config)"),
):
    """Hours per week starting this Monday."""
    from wipsync.core import get_db
    from wipsync.scheduling.sync import weekly_outlook

    with get_db(readonly=True) as conn:
        rows = weekly_outlook(conn, job_key=job_key, weeks=weeks)
    for row in rows:
        typer.echo(f"  {row['week_start']}  {row['hours']:>10.2f}")


@app.command("pay-period")
def pay_period(
    begin: str = typer.Argument(..., help="Period start (YYYY-MM-DD or M/D/YYYY)"),
    end: str = typer.Argument(..., help="Period end (YYYY-MM-DD or M/D/YYYY)"),
    hours: float = typer.Argument(..., help="Hours worked in the period"),
):
    """Split a pay period's hours across the months it spans."""
    from wipsync.scheduling.workdays import distribute_pay_period_hours

    split = distribute_pay_period_hours(begin, end, hours)
    if not split:
        typer.echo("No workdays in period.")
        raise typer.Exit(1)
    for month, value in split.items():
        typer.echo(f"  {month}  {value:>10.2f}")
