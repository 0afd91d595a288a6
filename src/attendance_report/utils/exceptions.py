"""Centralized exception classes for the attendance report service.

This module provides a hierarchy of custom exceptions with error codes,
HTTP status code mapping, and structured error details for consistent
error handling throughout the application.

Exception Hierarchy:
    AttendanceReportError (base)
    ├── FileError
    │   ├── ReportFileNotFoundError
    │   ├── FileTooLargeError
    │   ├── UnsupportedFormatError
    │   ├── FileWriteError
    │   └── UnreadableWorkbookError
    ├── WorkbookError
    │   ├── SheetNotFoundError
    │   └── EmployeeNotFoundError
    ├── RequestError
    │   ├── MissingParameterError
    │   ├── InvalidMediaSignatureError
    │   └── MediaLinkExpiredError
    └── RelayError
        ├── RelayNotConfiguredError
        ├── RelayAPIError
        └── RelayUnavailableError

Error Codes:
    All errors have a unique error code (e.g., "E1001") that can be used
    for programmatic error handling by the browser client.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Enumeration of all error codes used in the application.

    Error codes are grouped by category:
    - E1xxx: File/upload errors
    - E2xxx: Workbook content errors
    - E3xxx: Request errors
    - E5xxx: External service errors
    - E9xxx: Internal/unexpected errors
    """

    # File errors (E1xxx)
    FILE_NOT_FOUND = "E1001"
    FILE_TOO_LARGE = "E1002"
    UNSUPPORTED_FORMAT = "E1003"
    FILE_WRITE_ERROR = "E1005"
    UNREADABLE_WORKBOOK = "E1006"

    # Workbook content errors (E2xxx)
    SHEET_NOT_FOUND = "E2001"
    EMPLOYEE_NOT_FOUND = "E2002"

    # Request errors (E3xxx)
    MISSING_PARAMETER = "E3001"
    INVALID_PARAMETER = "E3002"
    INVALID_SIGNATURE = "E3003"
    MEDIA_LINK_EXPIRED = "E3004"

    # External service errors (E5xxx)
    RELAY_API_ERROR = "E5001"
    RELAY_UNAVAILABLE = "E5002"
    RELAY_NOT_CONFIGURED = "E5003"

    # Internal errors (E9xxx)
    INTERNAL_ERROR = "E9001"


class AttendanceReportError(Exception):
    """Base exception for all attendance report errors.

    Attributes:
        message: Human-readable error message.
        error_code: Unique error code from ErrorCode enum.
        details: Optional dictionary with additional error details.
        http_status: HTTP status code for API responses (default 500).
    """

    http_status: int = 500

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Error code from ErrorCode enum.
            details: Optional additional details about the error.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception to a dictionary for API responses.

        Returns:
            Dictionary with error information.
        """
        result: dict[str, Any] = {
            "error_code": self.error_code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code.value}] {self.message}"


# =============================================================================
# File Errors (E1xxx)
# =============================================================================


class FileError(AttendanceReportError):
    """Base class for file-related errors."""

    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNREADABLE_WORKBOOK,
        file_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the stored file identifier.

        Args:
            message: Error message.
            error_code: Error code.
            file_id: Identifier of the problematic stored file.
            details: Additional details.
        """
        details = details or {}
        if file_id:
            details["file"] = file_id
        super().__init__(message, error_code, details)
        self.file_id = file_id


class ReportFileNotFoundError(FileError):
    """Raised when an uploaded spreadsheet is not on storage.

    Note: Named to avoid shadowing built-in FileNotFoundError.
    """

    http_status: int = 404

    def __init__(
        self,
        file_id: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        message = message or f"File not found: {file_id}"
        super().__init__(
            message=message,
            error_code=ErrorCode.FILE_NOT_FOUND,
            file_id=file_id,
            details=details,
        )


class FileTooLargeError(FileError):
    """Raised when an upload exceeds the maximum allowed size."""

    http_status: int = 413

    def __init__(
        self,
        file_size: int,
        max_size: int,
        file_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with size information.

        Args:
            file_size: Actual file size in bytes.
            max_size: Maximum allowed size in bytes.
            file_id: Optional file identifier.
            details: Additional details.
        """
        details = details or {}
        details["file_size_bytes"] = file_size
        details["max_size_bytes"] = max_size
        message = (
            f"File size ({file_size} bytes) exceeds maximum "
            f"allowed size ({max_size} bytes)"
        )
        super().__init__(
            message=message,
            error_code=ErrorCode.FILE_TOO_LARGE,
            file_id=file_id,
            details=details,
        )
        self.file_size = file_size
        self.max_size = max_size


class UnsupportedFormatError(FileError):
    """Raised when an upload is not a supported spreadsheet format."""

    def __init__(
        self,
        message: str,
        extension: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if extension is not None:
            details["extension"] = extension
        super().__init__(
            message=message,
            error_code=ErrorCode.UNSUPPORTED_FORMAT,
            details=details,
        )
        self.extension = extension


class FileWriteError(FileError):
    """Raised when an upload cannot be written to storage."""

    http_status: int = 500

    def __init__(
        self,
        message: str,
        file_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=ErrorCode.FILE_WRITE_ERROR,
            file_id=file_id,
            details=details,
        )


class UnreadableWorkbookError(FileError):
    """Raised when a stored file cannot be parsed as a workbook."""

    def __init__(
        self,
        message: str = "Unable to read Excel file",
        file_id: str | None = None,
        reason: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the parser's failure reason.

        Args:
            message: Error message.
            file_id: Identifier of the stored file.
            reason: Parser failure description.
            details: Additional details.
        """
        details = details or {}
        if reason:
            details["reason"] = reason
        super().__init__(
            message=message,
            error_code=ErrorCode.UNREADABLE_WORKBOOK,
            file_id=file_id,
            details=details,
        )
        self.reason = reason


# =============================================================================
# Workbook Content Errors (E2xxx)
# =============================================================================


class WorkbookError(AttendanceReportError):
    """Base class for errors about the content of a readable workbook."""

    http_status: int = 400


class SheetNotFoundError(WorkbookError):
    """Raised when no sheet name looks like the attendance ("present") sheet."""

    def __init__(
        self,
        sheet_names: list[str] | None = None,
        message: str = "Sheet 'present' not found",
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if sheet_names is not None:
            details["sheet_names"] = sheet_names
        super().__init__(message, ErrorCode.SHEET_NOT_FOUND, details)
        self.sheet_names = sheet_names or []


class EmployeeNotFoundError(WorkbookError):
    """Raised when the row scan finds no employee matching the query."""

    http_status: int = 404

    def __init__(
        self,
        number: str | None = None,
        name: str | None = None,
        message: str = "Employee not found",
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if number:
            details["number"] = number
        if name:
            details["name"] = name
        super().__init__(message, ErrorCode.EMPLOYEE_NOT_FOUND, details)
        self.number = number
        self.name = name


# =============================================================================
# Request Errors (E3xxx)
# =============================================================================


class RequestError(AttendanceReportError):
    """Base class for malformed or incomplete requests."""

    http_status: int = 400


class MissingParameterError(RequestError):
    """Raised when a required query or form parameter is absent or blank."""

    def __init__(
        self,
        message: str,
        parameters: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the missing parameter names.

        Args:
            message: Error message.
            parameters: Names of the missing parameters.
            details: Additional details.
        """
        details = details or {}
        if parameters:
            details["parameters"] = parameters
        super().__init__(message, ErrorCode.MISSING_PARAMETER, details)
        self.parameters = parameters or []


class InvalidMediaSignatureError(RequestError):
    """Raised when a media link signature does not verify."""

    http_status: int = 403

    def __init__(
        self,
        filename: str,
        message: str = "Invalid media signature",
    ) -> None:
        super().__init__(message, ErrorCode.INVALID_SIGNATURE, {"filename": filename})
        self.filename = filename


class MediaLinkExpiredError(RequestError):
    """Raised when a signed media link is past its expiry."""

    http_status: int = 410

    def __init__(
        self,
        filename: str,
        expires_at: int,
        message: str = "Media link has expired",
    ) -> None:
        super().__init__(
            message,
            ErrorCode.MEDIA_LINK_EXPIRED,
            {"filename": filename, "expires": expires_at},
        )
        self.filename = filename
        self.expires_at = expires_at


# =============================================================================
# External Service Errors (E5xxx)
# =============================================================================


class RelayError(AttendanceReportError):
    """Base class for messaging provider errors."""

    http_status: int = 502

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.RELAY_API_ERROR,
        endpoint: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the provider endpoint.

        Args:
            message: Error message.
            error_code: Error code.
            endpoint: Provider URL that was called.
            details: Additional details.
        """
        details = details or {}
        if endpoint:
            details["endpoint"] = endpoint
        super().__init__(message, error_code, details)
        self.endpoint = endpoint


class RelayNotConfiguredError(RelayError):
    """Raised when provider credentials or signing keys are missing."""

    http_status: int = 400

    def __init__(
        self,
        message: str,
        missing: list[str] | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if missing:
            details["missing"] = missing
        super().__init__(
            message,
            error_code=ErrorCode.RELAY_NOT_CONFIGURED,
            details=details,
        )
        self.missing = missing or []


class RelayAPIError(RelayError):
    """Raised when the provider answers with a non-success status."""

    def __init__(
        self,
        status_code: int,
        response: Any,
        endpoint: str | None = None,
        message: str = "Remote API error",
    ) -> None:
        """Initialize with the provider's reply.

        Args:
            status_code: HTTP status returned by the provider.
            response: Decoded provider body.
            endpoint: Provider URL.
            message: Error message.
        """
        super().__init__(
            message,
            error_code=ErrorCode.RELAY_API_ERROR,
            endpoint=endpoint,
            details={"status_code": status_code, "response": response},
        )
        self.status_code = status_code
        self.response = response


class RelayUnavailableError(RelayError):
    """Raised when the provider cannot be reached at all."""

    http_status: int = 503

    def __init__(
        self,
        reason: str,
        endpoint: str | None = None,
        message: str = "Failed to send WhatsApp",
    ) -> None:
        super().__init__(
            message,
            error_code=ErrorCode.RELAY_UNAVAILABLE,
            endpoint=endpoint,
            details={"reason": reason},
        )
        self.reason = reason
