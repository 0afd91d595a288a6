"""Builders for attendance workbooks used across tests.

Example usage:
    from tests.fixtures import build_sheet, save_workbook

    # In-memory sheet for the scanning functions
    sheet = build_sheet({1: {1: "007", 2: "John Doe", 3: "P"}})

    # Real .xlsx file for loader and API tests
    path = save_workbook(tmp_path / "jan.xlsx", {"PRESENT JAN": rows})
"""

from pathlib import Path
from typing import Any

from openpyxl import Workbook as XlsxWorkbook

from attendance_report.services.workbook_loader import to_cell
from attendance_report.workbook import Sheet

Rows = list[dict[int, Any]]
"""One dict per sheet row (top to bottom), mapping zero-based column -> value."""

HEADER_ROW: dict[int, Any] = {0: "Sr", 1: "No.", 2: "Name", 3: 1, 4: 2, 5: 3}


def build_sheet(cells: dict[int, dict[int, Any]], name: str = "PRESENT") -> Sheet:
    """Build an in-memory Sheet from {row: {col: value}} (zero-based)."""
    sheet = Sheet(name=name)
    for r, row in cells.items():
        for c, value in row.items():
            cell = to_cell(value)
            if cell is not None:
                sheet.cells[(r, c)] = cell
    if sheet.cells:
        rows = [r for r, _ in sheet.cells]
        cols = [c for _, c in sheet.cells]
        sheet.min_row, sheet.max_row = min(rows), max(rows)
        sheet.min_col, sheet.max_col = min(cols), max(cols)
    return sheet


def employee_row(number: Any, name: Any, *days: Any, **totals: Any) -> dict[int, Any]:
    """Row with number in B, name in C and day codes from D onward.

    Keyword totals place values in the summary columns:
    weekoff_total (AL), atd (AM), minus (AN), kitchen (AO), ot_total (AP),
    mobile1 (AQ), mobile2 (AR), present_address (AS).
    """
    columns = {
        "weekoff_total": 37,
        "atd": 38,
        "minus": 39,
        "kitchen": 40,
        "ot_total": 41,
        "mobile1": 42,
        "mobile2": 43,
        "present_address": 44,
    }
    row: dict[int, Any] = {1: number, 2: name}
    for offset, code in enumerate(days):
        if code is not None:
            row[3 + offset] = code
    for key, value in totals.items():
        row[columns[key]] = value
    return row


def save_workbook(path: Path, sheets: dict[str, Rows]) -> Path:
    """Write an .xlsx with the given sheets, in order."""
    wb = XlsxWorkbook()
    wb.remove(wb.active)
    for sheet_name, rows in sheets.items():
        ws = wb.create_sheet(sheet_name)
        for r, row in enumerate(rows, start=1):
            for c, value in row.items():
                ws.cell(row=r, column=c + 1, value=value)
    wb.save(path)
    return path


def sample_month_rows() -> Rows:
    """A small month: header row, three employees, a dot row and a duplicate."""
    return [
        HEADER_ROW,
        employee_row("007", "John Doe", "P", "A", "WO"),
        employee_row(
            "101",
            "Asha  K. Rao",
            "P",
            "P/HD",
            "OT2.5",
            "WO",
            weekoff_total=3,
            ot_total="4.5",
            atd=26,
            minus=1,
            kitchen=2,
            mobile1=9876543210,
            present_address="12 Market Road",
        ),
        employee_row(".", ".", "P"),
        employee_row(102, "Ravi Kumar", "A", "A", "PRESENT"),
        employee_row("007", "John Doe (dup)", "P"),
    ]
