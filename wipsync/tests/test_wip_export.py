"""Tests for the WIP Excel export."""

from openpyxl import load_workbook

from wipsync.scheduling.repository import HourMap, ScheduleRecord
from wipsync.wip.export import MONTH_HEADERS, build_workbook, export_wip


def test_month_headers():
    assert MONTH_HEADERS[0] == "Jan"
    assert len(MONTH_HEADERS) == 12


def test_matrix_sheet():
    wb = load_workbook(build_workbook({2026: {1: 50.0, 3: 12.345}, 2025: {12: 20.0}}))
    ws = wb["WIP Matrix"]
    assert [c.value for c in ws[1]][:3] == ["Year", "Jan", "Feb"]
    assert ws.cell(row=1, column=14).value == "Total"
    assert ws.cell(row=2, column=1).value == 2025
    assert ws.cell(row=2, column=13).value == 20.0
    assert ws.cell(row=3, column=2).value == 50.0
    assert ws.cell(row=3, column=4).value == 12.35
    assert ws.cell(row=3, column=14).value == 62.35
    assert wb.sheetnames == ["WIP Matrix"]


def test_total_is_sum_of_shown_cells():
    ws = load_workbook(build_workbook({2026: {1: 0.004, 2: 0.004, 3: 0.004}}))["WIP Matrix"]
    assert [ws.cell(row=2, column=c).value for c in (2, 3, 4)] == [0.0, 0.0, 0.0]
    assert ws.cell(row=2, column=14).value == 0.0


def test_schedules_sheet():
    record = ScheduleRecord.for_job(
        "A~1~Foo", total_hours=50, status="In Progress",
        allocations=HourMap({"2026-01": 20.0, "2026-02": 30.0}),
    )
    wb = load_workbook(build_workbook({}, [record]))
    ws = wb["Schedules"]
    header = [c.value for c in ws[1]]
    assert header[-2:] == ["2026-01", "2026-02"]
    row = [c.value for c in ws[2]]
    assert row[0] == "A~1~Foo"
    assert row[3] == "Foo"
    assert row[-2:] == [20.0, 30.0]


def test_export_wip_writes_file(tmp_path):
    path = export_wip(tmp_path / "out" / "wip.xlsx", {2026: {1: 1.0}})
    assert path.exists()
    assert load_workbook(path)["WIP Matrix"].cell(row=2, column=2).value == 1.0
