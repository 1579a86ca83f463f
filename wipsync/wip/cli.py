"""WIP CLI sub-commands."""

from typing import Optional

import typer

app = typer.Typer(no_args_is_help=True)


@app.command("summary")
def summary(
    year: Optional[int] = typer.Option(None, "--year", "-y", help="Calendar year filter"),
    output_format: str = typer.Option("table", "--format", "-f", help="Output format: table | json | markdown"),
):
    """Scheduled vs. unscheduled hours, monthly totals and forecast."""
    from wipsync.core import get_db
    from wipsync.core.output import OutputFormat, format_result
    from wipsync.wip.aggregator import wip_summary

    with get_db(readonly=True) as conn:
        result = wip_summary(conn, year=year)

    if output_format in ("json", "markdown"):
        typer.echo(format_result(result, OutputFormat(output_format), title="WIP Summary"))
        return

    label = str(year) if year else "all years"
    typer.echo(f"\n  WIP Summary ({label})")
    typer.echo(f"  Scheduled hours:        {result['scheduled_hours']:>12,.2f}")
    typer.echo(f"  Qualifying budget:      {result['qualifying_budget']:>12,.2f}")
    typer.echo(f"  Scheduled (qualifying): {result['scheduled_qualifying']:>12,.2f}")
    typer.echo(f"  Unscheduled hours:      {result['unscheduled_hours']:>12,.2f}")
    typer.echo(f"  Qualifying projects:    {result['project_count']:>12}")

    if result["monthly"]:
        typer.echo("\n  Month      Hours")
        for month, hours in result["monthly"].items():
            typer.echo(f"  {month}  {hours:>10,.2f}")
    if result["forecast"]:
        typer.echo("\n  Forecast")
        for point in result["forecast"]:
            typer.echo(f"  {point['month']}  {point['hours']:>10,.2f}")


@app.command("export")
def export(
    output: str = typer.Argument(..., help="Output .xlsx path"),
    year: Optional[int] = typer.Option(None, "--year", "-y", help="Only this year's row"),
):
    """Export the Year x Month WIP matrix to Excel."""
    from wipsync.core import get_db
    from wipsync.scheduling.repository import ScheduleRepository
    from wipsync.wip.aggregator import wip_summary
    from wipsync.wip.export import export_wip

    with get_db(readonly=True) as conn:
        result = wip_summary(conn, year=year)
        schedules = ScheduleRepository(conn).list_schedules()

    matrix = result["matrix"]
    if year is not None:
        matrix = {y: m for y, m in matrix.items() if y == year}

    path = export_wip(output, matrix, schedules)
    typer.echo(f"Exported {len(matrix)} year(s), {len(schedules)} schedule(s) to {path}")
