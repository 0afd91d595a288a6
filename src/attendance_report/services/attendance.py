"""Attendance extraction over the monthly "present" sheet.

The sheet layout follows the monthly exports: employee number in column B,
name in column C, one column per day from D through AH, and monthly totals
further right. Every function here is a pure scan over an already loaded
sheet; loading and error reporting to clients happen in the caller.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterator
from dataclasses import dataclass

from attendance_report.utils.exceptions import (
    EmployeeNotFoundError,
    SheetNotFoundError,
)
from attendance_report.workbook import Cell, Sheet, Workbook, format_number

OT_PATTERN = re.compile(r"OT\s*([0-9]+(?:\.[0-9]+)?)?")
_LEADING_NUMBER = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_HEADER_TOKEN = re.compile(r"^no\.?$", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")

PRESENT_CODES = frozenset({"P", "PR", "PRESENT"})
ABSENT_CODES = frozenset({"A", "ABSENT"})
WEEKOFF_CODES = frozenset({"WO", "W/O", "WEEKOFF", "WEEK OFF"})

# "presant" is a recurring typo in the source workbooks
SHEET_NAME_MARKERS = ("present", "presant")


@dataclass(frozen=True)
class SheetLayout:
    """Zero-based column positions in the attendance sheet."""

    number_col: int = 1
    name_col: int = 2
    first_day_col: int = 3
    last_day_col: int = 33
    weekoff_total_col: int = 37
    atd_col: int = 38
    minus_col: int = 39
    kitchen_col: int = 40
    ot_total_col: int = 41
    mobile1_col: int = 42
    mobile2_col: int = 43
    present_address_col: int = 44

    def day_columns(self, sheet: Sheet) -> range:
        """Day columns that fall inside the sheet's used range."""
        return range(self.first_day_col, min(sheet.max_col, self.last_day_col) + 1)

    def day_number(self, col: int) -> int:
        return col - self.first_day_col + 1


DEFAULT_LAYOUT = SheetLayout()


@dataclass(frozen=True)
class CellClassification:
    present: int = 0
    absent: int = 0
    weekoff: int = 0
    ot: float = 0.0


@dataclass(frozen=True)
class Employee:
    number: str
    name: str

    @property
    def key(self) -> str:
        """Deduplication key: the number when set, else the name.

        Listed rows always carry a number; the name fallback covers
        records built elsewhere.
        """
        raw = self.number or self.name
        return _WHITESPACE.sub(" ", raw).strip().upper()


@dataclass(frozen=True)
class EmployeeMatch:
    row: int
    employee: Employee


@dataclass
class AttendanceSummary:
    """Monthly totals for one employee row.

    ``weekoff`` and ``ot_hours`` come from the per-day scan unless the
    sheet's total columns hold a number, in which case those win.
    """

    present: int = 0
    absent: int = 0
    weekoff: float = 0
    ot_hours: float = 0
    atd: float | None = None
    minus: float | None = None
    kitchen: float | None = None


@dataclass(frozen=True)
class DailyEntry:
    day: int
    code: str
    ot: float


@dataclass
class EmployeeDetails:
    mobile1: str | None = None
    mobile2: str | None = None
    present_address: str | None = None


# ---------------------------------------------------------------------- #
# Cell classification
# ---------------------------------------------------------------------- #


def normalize_code(raw: Cell | str | float | None) -> str:
    """Trimmed, upper-cased string view of a raw cell value."""
    if raw is None:
        return ""
    if isinstance(raw, Cell):
        text = raw.text
    elif isinstance(raw, (int, float)):
        text = format_number(float(raw))
    else:
        text = str(raw)
    return text.strip().upper()


def extract_ot(code: str) -> float:
    """Overtime hours written as "OT" plus an optional number; 0 otherwise."""
    match = OT_PATTERN.search(code)
    if match is None or match.group(1) is None:
        return 0.0
    return float(match.group(1))


def classify(raw: Cell | str | float | None) -> CellClassification:
    """Classify one day cell.

    Overtime is read independently of the status. Status codes are matched
    against the whole cell, so "P OT2" carries 2 hours of overtime but is
    not counted as present.
    """
    code = normalize_code(raw)
    if not code:
        return CellClassification()

    ot = extract_ot(code)
    if code in PRESENT_CODES or code.startswith("P/"):
        return CellClassification(present=1, ot=ot)
    if code in ABSENT_CODES:
        return CellClassification(absent=1, ot=ot)
    if code in WEEKOFF_CODES:
        return CellClassification(weekoff=1, ot=ot)
    return CellClassification(ot=ot)


def parse_number(cell: Cell) -> float | None:
    """Leading-number parse of a cell; None when nothing finite is found.

    Text such as "3 days" yields 3.0, matching how the sheets are typed up.
    """
    value = cell.number
    if value is not None:
        return value if math.isfinite(value) else None
    match = _LEADING_NUMBER.match(cell.text)
    if match is None:
        return None
    value = float(match.group(0))
    return value if math.isfinite(value) else None


# ---------------------------------------------------------------------- #
# Sheet location
# ---------------------------------------------------------------------- #


def find_attendance_sheet(workbook: Workbook) -> Sheet:
    """First sheet, in stored order, whose name mentions "present".

    Raises:
        SheetNotFoundError: If no sheet name matches.
    """
    for sheet in workbook.sheets:
        name = sheet.name.strip().lower()
        if any(marker in name for marker in SHEET_NAME_MARKERS):
            return sheet
    raise SheetNotFoundError(sheet_names=workbook.sheet_names)


# ---------------------------------------------------------------------- #
# Employee rows
# ---------------------------------------------------------------------- #


def is_marker(value: str) -> bool:
    """True for header tokens ("No", "No.") and the lone "." blank marker."""
    value = value.strip()
    return value == "." or _HEADER_TOKEN.match(value) is not None


def is_ignored_row(number: str, name: str) -> bool:
    """Skip header and marker rows and rows without a number.

    A blank name is allowed so long as the number is set.
    """
    if is_marker(number) or is_marker(name):
        return True
    return not number.strip()


def normalize_for_compare(value: str) -> str:
    """Drop periods, collapse whitespace, upper-case."""
    return _WHITESPACE.sub(" ", value.replace(".", "")).strip().upper()


def _employee_rows(
    sheet: Sheet, layout: SheetLayout
) -> Iterator[tuple[int, Employee]]:
    for row in sheet.rows():
        number = sheet.text(row, layout.number_col)
        name = sheet.text(row, layout.name_col)
        if is_ignored_row(number, name):
            continue
        yield row, Employee(number=number, name=name)


def list_employees(
    sheet: Sheet, layout: SheetLayout = DEFAULT_LAYOUT
) -> list[Employee]:
    """Employees in first-occurrence order, deduplicated by identity key."""
    seen: dict[str, Employee] = {}
    for _, employee in _employee_rows(sheet, layout):
        seen.setdefault(employee.key, employee)
    return list(seen.values())


def find_employee_row(
    sheet: Sheet,
    number: str | None = None,
    name: str | None = None,
    layout: SheetLayout = DEFAULT_LAYOUT,
) -> EmployeeMatch:
    """Locate the first row whose number or name matches the query.

    Numbers are compared as text, so "007" never matches "0007".

    Raises:
        EmployeeNotFoundError: If the scan reaches the end without a match.
    """
    want_number = normalize_for_compare(number) if number else ""
    want_name = normalize_for_compare(name) if name else ""

    if want_number or want_name:
        for row, employee in _employee_rows(sheet, layout):
            if want_number and normalize_for_compare(employee.number) == want_number:
                return EmployeeMatch(row=row, employee=employee)
            if want_name and normalize_for_compare(employee.name) == want_name:
                return EmployeeMatch(row=row, employee=employee)

    raise EmployeeNotFoundError(number=number, name=name)


# ---------------------------------------------------------------------- #
# Per-row views
# ---------------------------------------------------------------------- #


def summarize(
    sheet: Sheet, row: int, layout: SheetLayout = DEFAULT_LAYOUT
) -> AttendanceSummary:
    """Aggregate one employee row into monthly totals."""
    summary = AttendanceSummary()
    for col in layout.day_columns(sheet):
        cls = classify(sheet.cell(row, col))
        summary.present += cls.present
        summary.absent += cls.absent
        summary.weekoff += cls.weekoff
        summary.ot_hours += cls.ot

    weekoff_total = parse_number(sheet.cell(row, layout.weekoff_total_col))
    if weekoff_total is not None:
        summary.weekoff = weekoff_total
    ot_total = parse_number(sheet.cell(row, layout.ot_total_col))
    if ot_total is not None:
        summary.ot_hours = ot_total

    summary.atd = parse_number(sheet.cell(row, layout.atd_col))
    summary.minus = parse_number(sheet.cell(row, layout.minus_col))
    summary.kitchen = parse_number(sheet.cell(row, layout.kitchen_col))
    return summary


def build_daily(
    sheet: Sheet, row: int, layout: SheetLayout = DEFAULT_LAYOUT
) -> list[DailyEntry]:
    """Per-day codes and overtime for calendar display.

    Uses the same column window and OT pattern as summarize().
    """
    entries = []
    for col in layout.day_columns(sheet):
        code = normalize_code(sheet.cell(row, col))
        entries.append(
            DailyEntry(day=layout.day_number(col), code=code, ot=extract_ot(code))
        )
    return entries


def employee_details(
    sheet: Sheet, row: int, layout: SheetLayout = DEFAULT_LAYOUT
) -> EmployeeDetails:
    def read(col: int) -> str | None:
        value = sheet.text(row, col)
        if not value or is_marker(value):
            return None
        return value

    return EmployeeDetails(
        mobile1=read(layout.mobile1_col),
        mobile2=read(layout.mobile2_col),
        present_address=read(layout.present_address_col),
    )
