"""Tests for the scheduling JSON routes."""

from wipsync.projects.records import Scope
from wipsync.projects.repository import ScopeRepository

JOB = "A~1~Foo"


def _seed_scope(conn):
    ScopeRepository(conn).add_scope(Scope(JOB, "Framing", "2026-01-05", "2026-01-09", hours=50))
    conn.commit()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"
    assert resp.headers["X-Frame-Options"] == "DENY"


class TestSchedulesRoutes:
    def test_save_and_list(self, client):
        resp = client.post("/scheduling/api/schedules", json={
            "customer": "A", "projectNumber": "1", "projectName": "Foo",
            "totalHours": 50, "allocations": {"2026-01": 50},
        })
        assert resp.status_code == 200
        assert resp.get_json()["version"] == 1

        listed = client.get("/scheduling/api/schedules").get_json()
        assert [s["jobKey"] for s in listed] == [JOB]
        single = client.get("/scheduling/api/schedules", query_string={"jobKey": JOB}).get_json()
        assert single["allocations"] == {"2026-01": 50.0}

    def test_unknown_job(self, client):
        resp = client.get("/scheduling/api/schedules", query_string={"jobKey": "nope"})
        assert resp.get_json() is None

    def test_validation_error(self, client):
        resp = client.post("/scheduling/api/schedules", json={"customer": "A"})
        assert resp.status_code == 400
        assert "projectName" in resp.get_json()["error"]

    def test_numeric_project_number(self, client):
        resp = client.post("/scheduling/api/schedules", json={
            "customer": "A", "projectNumber": 100, "projectName": "Foo",
            "totalHours": 10, "allocations": {"2026-01": 10},
        })
        assert resp.status_code == 200
        assert resp.get_json()["jobKey"] == "A~100~Foo"

    def test_body_required(self, client):
        resp = client.post("/scheduling/api/schedules", data="nope",
                           content_type="text/plain")
        assert resp.status_code == 400

    def test_stale_version_conflict(self, client):
        body = {"customer": "A", "projectNumber": "1", "projectName": "Foo",
                "totalHours": 10, "allocations": {"2026-01": 10}}
        client.post("/scheduling/api/schedules", json=body)
        client.post("/scheduling/api/schedules", json=body)
        resp = client.post("/scheduling/api/schedules", json=dict(body, version=1))
        assert resp.status_code == 409
        assert resp.get_json()["currentVersion"] == 2


class TestShortTermRoutes:
    def test_resolved_board(self, client, mock_db):
        _seed_scope(mock_db)
        resp = client.get("/scheduling/api/short-term",
                          query_string={"start": "2026-01-05", "end": "2026-01-06"})
        data = resp.get_json()
        assert resp.status_code == 200
        assert data["totalHours"] == 20.0
        assert set(data["foremen"]["__unassigned__"]) == {"2026-01-05", "2026-01-06"}

    def test_bad_range(self, client):
        resp = client.get("/scheduling/api/short-term", query_string={"start": "x", "end": "y"})
        assert resp.status_code == 400
        resp = client.get("/scheduling/api/short-term",
                          query_string={"start": "2026-02-01", "end": "2026-01-01"})
        assert resp.status_code == 400

    def test_day_edit(self, client, mock_db):
        _seed_scope(mock_db)
        resp = client.post("/scheduling/api/short-term/day", json={
            "jobKey": JOB, "date": "2026-01-07", "hours": 4, "foreman": "F1",
        })
        assert resp.status_code == 200
        assert resp.get_json()["wip"]["total_hours"] == 44.0

        board = client.get("/scheduling/api/short-term", query_string={
            "start": "2026-01-07", "end": "2026-01-07", "jobKey": JOB,
        }).get_json()
        assert board["foremen"]["F1"]["2026-01-07"][0]["source"] == "short-term"

    def test_day_edit_requires_hours(self, client):
        resp = client.post("/scheduling/api/short-term/day",
                           json={"jobKey": JOB, "date": "2026-01-07"})
        assert resp.status_code == 400

    def test_day_edit_weekend(self, client):
        resp = client.post("/scheduling/api/short-term/day",
                           json={"jobKey": JOB, "date": "2026-01-10", "hours": 8})
        assert resp.status_code == 400
        assert "weekend" in resp.get_json()["error"]


class TestWipRoutes:
    def test_wip(self, client, mock_db):
        _seed_scope(mock_db)
        data = client.get("/scheduling/api/wip", query_string={"year": 2026}).get_json()
        assert data["year"] == 2026
        assert data["scheduled_hours"] == 50.0
        assert data["unscheduled_hours"] == 0.0

    def test_outlook(self, client):
        data = client.get("/scheduling/api/outlook", query_string={"weeks": 4}).get_json()
        assert len(data) == 4
        assert all(w["hours"] == 0.0 for w in data)
