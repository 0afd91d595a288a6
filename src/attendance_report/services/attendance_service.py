"""Request-level attendance operations over stored spreadsheets.

Each call loads the workbook fresh from storage, locates the attendance
sheet and runs one scan. Nothing is cached between calls.
"""

from __future__ import annotations

from dataclasses import dataclass

from attendance_report.services.attendance import (
    DEFAULT_LAYOUT,
    AttendanceSummary,
    DailyEntry,
    Employee,
    EmployeeDetails,
    EmployeeMatch,
    SheetLayout,
    build_daily,
    employee_details,
    find_attendance_sheet,
    find_employee_row,
    list_employees,
    summarize,
)
from attendance_report.services.file_store import FileStore
from attendance_report.services.workbook_loader import WorkbookLoader
from attendance_report.utils.logging import LogContext, get_logger, timed_operation
from attendance_report.workbook import Sheet

logger = get_logger(__name__)


@dataclass
class SummaryResult:
    employee: Employee
    summary: AttendanceSummary


@dataclass
class DailyResult:
    employee: Employee
    days: list[DailyEntry]


@dataclass
class DetailsResult:
    employee: Employee
    details: EmployeeDetails


class AttendanceService:
    """Answer attendance queries against files held by a FileStore."""

    def __init__(
        self,
        file_store: FileStore,
        loader: WorkbookLoader | None = None,
        layout: SheetLayout = DEFAULT_LAYOUT,
    ) -> None:
        self.file_store = file_store
        self.loader = loader or WorkbookLoader()
        self.layout = layout

    def open_sheet(self, file_id: str) -> Sheet:
        """Load a stored file and return its attendance sheet.

        Raises:
            ReportFileNotFoundError: If the file is not on storage.
            UnreadableWorkbookError: If the file is not a readable workbook.
            SheetNotFoundError: If no sheet looks like the "present" sheet.
        """
        path = self.file_store.get_file_path(file_id)
        workbook = self.loader.load_from_path(path, file_id=file_id)
        sheet = find_attendance_sheet(workbook)
        logger.debug(
            "Attendance sheet located",
            sheet=sheet.name,
            rows=sheet.max_row - sheet.min_row + 1,
            columns=sheet.max_col + 1,
        )
        return sheet

    def employees(self, file_id: str) -> list[Employee]:
        with LogContext(file_id=file_id):
            sheet = self.open_sheet(file_id)
            with timed_operation(logger, "list_employees") as metrics:
                employees = list_employees(sheet, self.layout)
                metrics.rows_scanned = sheet.max_row - sheet.min_row + 1
            logger.info("Employees listed", count=len(employees), sheet=sheet.name)
            return employees

    def summary(
        self, file_id: str, number: str | None = None, name: str | None = None
    ) -> SummaryResult:
        with LogContext(file_id=file_id):
            sheet, match = self._resolve(file_id, number, name)
            with timed_operation(logger, "summarize") as metrics:
                summary = summarize(sheet, match.row, self.layout)
                metrics.cells_read = len(self.layout.day_columns(sheet))
            return SummaryResult(employee=match.employee, summary=summary)

    def daily(
        self, file_id: str, number: str | None = None, name: str | None = None
    ) -> DailyResult:
        with LogContext(file_id=file_id):
            sheet, match = self._resolve(file_id, number, name)
            with timed_operation(logger, "build_daily") as metrics:
                days = build_daily(sheet, match.row, self.layout)
                metrics.cells_read = len(days)
            return DailyResult(employee=match.employee, days=days)

    def details(
        self, file_id: str, number: str | None = None, name: str | None = None
    ) -> DetailsResult:
        with LogContext(file_id=file_id):
            sheet, match = self._resolve(file_id, number, name)
            return DetailsResult(
                employee=match.employee,
                details=employee_details(sheet, match.row, self.layout),
            )

    def _resolve(
        self, file_id: str, number: str | None, name: str | None
    ) -> tuple[Sheet, EmployeeMatch]:
        sheet = self.open_sheet(file_id)
        with timed_operation(logger, "find_employee_row") as metrics:
            match = find_employee_row(
                sheet, number=number, name=name, layout=self.layout
            )
            metrics.rows_scanned = match.row - sheet.min_row + 1
        logger.debug(
            "Employee row resolved",
            row=match.row,
            number=match.employee.number,
        )
        return sheet, match
