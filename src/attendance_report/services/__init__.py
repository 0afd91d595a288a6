"""Services for the attendance report viewer."""

from attendance_report.services.attendance_service import AttendanceService
from attendance_report.services.file_store import FileStore
from attendance_report.services.workbook_loader import WorkbookLoader

__all__ = ["AttendanceService", "FileStore", "WorkbookLoader"]
