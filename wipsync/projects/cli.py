"""Projects CLI sub-commands."""

from typing import List, Optional

import typer

app = typer.Typer(no_args_is_help=True)


@app.command("canonical")
def canonical(
    status: Optional[List[str]] = typer.Option(
        None, "--status", "-s", help="Keep only these statuses (repeatable)"
    ),
    output_format: str = typer.Option("table", "--format", "-f", help="Output format: table | json"),
):
    """List deduplicated projects (one per customer/number/name)."""
    import json

    from wipsync.core import get_db
    from wipsync.core.output import OutputFormat, format_rows
    from wipsync.projects.dedupe import deduplicate_projects
    from wipsync.projects.repository import ProjectRepository

    with get_db(readonly=True) as conn:
        lines = ProjectRepository(conn).list_lines()
    projects = deduplicate_projects(lines, statuses=status or None)
    rows = [p.to_dict() for p in projects]

    if output_format == "json":
        typer.echo(json.dumps(rows, indent=2, default=str))
        return

    typer.echo(format_rows(
        rows,
        ["customer", "project_number", "project_name", "status", "hours", "sales", "line_count"],
        OutputFormat.HUMAN,
    ))
    typer.echo(f"\n  {len(rows)} project(s)")
