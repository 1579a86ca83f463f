"""Tests for the top-level CLI assembly and module sub-commands."""

from wipsync.cli.main import app
from wipsync.projects.records import ProjectLine, Scope
from wipsync.projects.repository import ProjectRepository, ScopeRepository


def test_main_app_help(cli_runner):
    result = cli_runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "Labor-hours scheduling" in result.output


def test_version_output(cli_runner):
    result = cli_runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_unknown_command(cli_runner):
    result = cli_runner.invoke(app, ["nonexistent"])
    assert result.exit_code != 0


def test_sub_apps_registered(cli_runner):
    result = cli_runner.invoke(app, ["--help"])
    for name in ("projects", "schedule", "wip"):
        assert name in result.output


def _seed(conn):
    ProjectRepository(conn).add_line(ProjectLine(
        customer="A", project_number="1", project_name="Foo", status="In Progress",
        hours=80, estimator="Pat Lee",
    ))
    ScopeRepository(conn).add_scope(Scope("A~1~Foo", "Framing", "2026-01-05", "2026-01-09", hours=50))
    conn.commit()


class TestScheduleCommands:
    def test_sync_requires_target(self, cli_runner, mock_db):
        result = cli_runner.invoke(app, ["schedule", "sync"])
        assert result.exit_code == 1

    def test_sync_one(self, cli_runner, mock_db):
        _seed(mock_db)
        result = cli_runner.invoke(app, ["schedule", "sync", "A~1~Foo"])
        assert result.exit_code == 0
        assert "50.00 h over 1 month(s)" in result.output
        assert "2026-01" in result.output

    def test_sync_all(self, cli_runner, mock_db):
        _seed(mock_db)
        result = cli_runner.invoke(app, ["schedule", "sync", "--all"])
        assert result.exit_code == 0
        assert "Synced 1 project(s), 0 failed." in result.output

    def test_day(self, cli_runner, mock_db):
        _seed(mock_db)
        result = cli_runner.invoke(app, ["schedule", "day", "A~1~Foo", "2026-01-07", "--hours", "4"])
        assert result.exit_code == 0
        assert "week 1, day 3 of 2026-01" in result.output
        assert "WIP total: 44.00 h" in result.output

    def test_day_weekend(self, cli_runner, mock_db):
        result = cli_runner.invoke(app, ["schedule", "day", "A~1~Foo", "2026-01-10", "-h", "4"])
        assert result.exit_code == 1
        assert "weekend" in result.output

    def test_show(self, cli_runner, mock_db):
        _seed(mock_db)
        result = cli_runner.invoke(app, ["schedule", "show", "--start", "2026-01-05",
                                         "--end", "2026-01-09"])
        assert result.exit_code == 0
        assert "Total: 50.00 h" in result.output

    def test_show_bad_date(self, cli_runner, mock_db):
        result = cli_runner.invoke(app, ["schedule", "show", "--start", "soon", "--end", "later"])
        assert result.exit_code == 1

    def test_pay_period(self, cli_runner):
        result = cli_runner.invoke(app, ["schedule", "pay-period", "1/26/2026", "2/6/2026", "80"])
        assert result.exit_code == 0
        assert "2026-01" in result.output
        assert "40.00" in result.output


class TestProjectsCommands:
    def test_canonical(self, cli_runner, mock_db):
        _seed(mock_db)
        result = cli_runner.invoke(app, ["projects", "canonical"])
        assert result.exit_code == 0
        assert "1 project(s)" in result.output

    def test_canonical_json(self, cli_runner, mock_db):
        _seed(mock_db)
        result = cli_runner.invoke(app, ["projects", "canonical", "--format", "json",
                                         "--status", "Lost"])
        assert result.exit_code == 0
        assert result.output.strip() == "[]"


class TestWipCommands:
    def test_summary(self, cli_runner, mock_db):
        _seed(mock_db)
        result = cli_runner.invoke(app, ["wip", "summary", "--year", "2026"])
        assert result.exit_code == 0
        assert "Unscheduled hours:" in result.output
        assert "30.00" in result.output

    def test_export(self, cli_runner, mock_db, tmp_path):
        _seed(mock_db)
        out = tmp_path / "wip.xlsx"
        result = cli_runner.invoke(app, ["wip", "export", str(out)])
        assert result.exit_code == 0
        assert out.exists()
