"""
Excel Export for WIP

Writes the Year x Month scheduled-hours matrix and a per-project monthly
sheet.  Uses openpyxl. No Flask imports.
"""

import calendar
from io import BytesIO
from pathlib import Path
from typing import Dict, List, Optional, Union

from wipsync.core.logging import get_logger
from wipsync.scheduling.repository import ScheduleRecord

logger = get_logger("wipsync.wip.export")

MONTH_HEADERS = [calendar.month_abbr[m] for m in range(1, 13)]


def build_workbook(
    matrix: Dict[int, Dict[int, float]],
    schedules: Optional[List[ScheduleRecord]] = None,
) -> BytesIO:
    """
    Build the WIP workbook.

    Sheets:
        WIP Matrix  one row per year, Jan..Dec plus a Total column
        Schedules   one row per project with its monthly hour map
    """
    from openpyxl import Workbook
    from openpyxl.styles import Font

    wb = Workbook()
    ws = wb.active
    ws.title = "WIP Matrix"

    headers = ["Year"] + MONTH_HEADERS + ["Total"]
    for col, header in enumerate(headers, 1):
        ws.cell(row=1, column=col, value=header).font = Font(bold=True)

    for row, year in enumerate(sorted(matrix), 2):
        months = matrix[year]
        ws.cell(row=row, column=1, value=year)
        cells = [round(months.get(m, 0.0), 2) for m in range(1, 13)]
        for m, value in enumerate(cells, 1):
            ws.cell(row=row, column=m + 1, value=value)
        # Total matches the displayed cells
        ws.cell(row=row, column=14, value=round(sum(cells), 2))

    ws.column_dimensions["A"].width = 8

    if schedules:
        months = sorted({m for s in schedules for m in s.hours_by_month})
        sheet = wb.create_sheet("Schedules")
        head = ["Job Key", "Customer", "Project Number", "Project Name", "Status",
                "Total Hours"] + months
        for col, header in enumerate(head, 1):
            sheet.cell(row=1, column=col, value=header).font = Font(bold=True)
        for row, record in enumerate(schedules, 2):
            hours = record.hours_by_month
            values = [record.job_key, record.customer, record.project_number,
                      record.project_name, record.status, round(record.total_hours, 2)]
            values += [round(hours.get(m, 0.0), 2) for m in months]
            for col, value in enumerate(values, 1):
                sheet.cell(row=row, column=col, value=value)
        sheet.column_dimensions["A"].width = 40
        sheet.column_dimensions["D"].width = 30

    output = BytesIO()
    wb.save(output)
    output.seek(0)
    return output


def export_wip(
    path: Union[str, Path],
    matrix: Dict[int, Dict[int, float]],
    schedules: Optional[List[ScheduleRecord]] = None,
) -> Path:
    """Write the workbook to *path*, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(build_workbook(matrix, schedules).getvalue())
    logger.info(f"WIP workbook written to {path}")
    return path
