"""
wipsync CLI - Main Entry Point

Unified Typer CLI that assembles all module sub-commands.

Usage:
    wipsync version
    wipsync migrate
    wipsync serve
    wipsync projects [command]
    wipsync schedule [command]
    wipsync wip [command]
"""

import typer

import wipsync

app = typer.Typer(
    name="wipsync",
    help="Labor-hours scheduling and WIP reconciliation.",
    no_args_is_help=True,
)


@app.command()
def version():
    """Show wipsync version."""
    typer.echo(f"wipsync {wipsync.__version__}")


@app.command()
def migrate():
    """Run database schema migrations for all modules."""
    from wipsync.core.db import migrate_all

    migrate_all()
    typer.echo("Database migration complete.")


@app.command()
def serve(
    port: int = typer.Option(5000, "--port", "-p", help="Port number"),
    host: str = typer.Option(None, "--host", "-h", help="Host address (default: 0.0.0.0 prod, 127.0.0.1 debug)"),
    debug: bool = typer.Option(False, "--debug", help="Use Flask dev server with auto-reload (localhost only)"),
    threads: int = typer.Option(4, "--threads", "-t", help="Waitress worker threads (production only)"),
):
    """Launch the scheduling API.

    Default: Waitress server on 0.0.0.0.
    With --debug: Flask dev server on 127.0.0.1 with auto-reload.
    """
    from wipsync.api import create_app

    web = create_app()

    if debug:
        _host = host or "127.0.0.1"
        typer.echo(f"Starting Flask dev server at http://{_host}:{port}")
        web.run(host=_host, port=port, debug=True)
        return

    _host = host or "0.0.0.0"
    try:
        from waitress import serve as waitress_serve
    except ImportError:
        typer.echo("waitress not installed — falling back to Flask dev server")
        web.run(host=_host, port=port, debug=False)
        return
    typer.echo(f"Starting Waitress server on {_host}:{port} ({threads} threads)")
    waitress_serve(web, host=_host, port=port, threads=threads)


def _register_modules():
    """Register module CLI sub-apps. Skips modules missing a cli.py."""
    import importlib

    module_registry = [
        ("wipsync.projects.cli", "projects", "Line items & canonical projects"),
        ("wipsync.scheduling.cli", "schedule", "Board edits, sync & resolved views"),
        ("wipsync.wip.cli", "wip", "Scheduled vs. unscheduled hours"),
    ]

    for module_path, name, help_text in module_registry:
        try:
            mod = importlib.import_module(module_path)
            app.add_typer(mod.app, name=name, help=help_text)
        except (ImportError, AttributeError):
            pass


_register_modules()


def main():
    """Entry point for the wipsync CLI."""
    app()


if __name__ == "__main__":
    main()
