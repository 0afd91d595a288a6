"""Utilities package for the attendance report service.

This package provides:
- Centralized exception classes (exceptions.py)
- Structured logging utilities (logging.py)
"""

from attendance_report.utils.exceptions import (
    AttendanceReportError,
    ErrorCode,
    FileError,
    RelayError,
    RequestError,
    WorkbookError,
)
from attendance_report.utils.logging import (
    LogContext,
    StructuredLogger,
    get_logger,
    get_request_id,
    set_request_id,
)

__all__ = [
    # Exceptions
    "AttendanceReportError",
    "ErrorCode",
    "FileError",
    "RelayError",
    "RequestError",
    "WorkbookError",
    # Logging
    "LogContext",
    "StructuredLogger",
    "get_logger",
    "get_request_id",
    "set_request_id",
]
