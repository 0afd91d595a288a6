"""Pydantic models for API requests and responses.

Field names are exposed in camelCase (``otHours``, ``presentAddress``) to
match what the browser client reads.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from attendance_report.utils.exceptions import ErrorCode


class ApiModel(BaseModel):
    """Base for response models serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: str
    version: str


class PingResponse(BaseModel):
    message: str


# =============================================================================
# Files
# =============================================================================


class StoredFileInfo(ApiModel):
    """An uploaded monthly spreadsheet."""

    filename: str = Field(..., description="Generated identifier used as ?file=")
    original_name: str = Field(..., description="Name of the file as uploaded")
    size: int = Field(..., description="Size in bytes")
    uploaded_at: datetime = Field(..., description="When the file was stored")


class FilesListResponse(ApiModel):
    files: list[StoredFileInfo]


# =============================================================================
# Attendance
# =============================================================================


class Employee(ApiModel):
    number: str = Field(..., description="Employee number from column B")
    name: str = Field(..., description="Employee name from column C")


class AttendanceSummary(ApiModel):
    """Monthly totals for one employee."""

    present: int
    absent: int
    weekoff: float
    ot_hours: float
    atd: float | None = None
    minus: float | None = None
    kitchen: float | None = None


class DailyEntry(ApiModel):
    day: int = Field(..., description="Day of month, 1-based")
    code: str = Field(..., description="Upper-cased cell text")
    ot: float = Field(..., description="Overtime hours written in the cell")


class EmployeeDetails(ApiModel):
    mobile1: str | None = None
    mobile2: str | None = None
    present_address: str | None = None


class EmployeesResponse(ApiModel):
    file: str
    employees: list[Employee]


class AttendanceResponse(ApiModel):
    file: str
    employee: Employee
    summary: AttendanceSummary


class DailyResponse(ApiModel):
    file: str
    employee: Employee
    days: list[DailyEntry]


class DetailsResponse(ApiModel):
    file: str
    employee: Employee
    details: EmployeeDetails


# =============================================================================
# WhatsApp relay
# =============================================================================


class WhatsAppSendResponse(BaseModel):
    ok: bool = True
    response: Any = None


# =============================================================================
# Errors
# =============================================================================


class ErrorDetail(BaseModel):
    """Error detail model for API error responses.

    This model provides structured error responses with:
    - Human-readable error message
    - Machine-readable error code
    - Optional additional details for debugging
    - Optional request ID for correlation
    """

    detail: str = Field(..., description="Human-readable error message")
    error_code: str | None = Field(
        default=None,
        description="Machine-readable error code (e.g., 'E2001')",
    )
    details: dict[str, Any] | None = Field(
        default=None,
        description="Additional error details for debugging",
    )
    request_id: str | None = Field(
        default=None,
        description="Request ID for error correlation",
    )

    @classmethod
    def from_error_code(
        cls,
        error_code: ErrorCode,
        detail: str,
        details: dict[str, Any] | None = None,
        request_id: str | None = None,
    ) -> "ErrorDetail":
        """Create an ErrorDetail from an ErrorCode enum value.

        Args:
            error_code: The error code enum.
            detail: Human-readable error message.
            details: Optional additional details.
            request_id: Optional request ID.

        Returns:
            ErrorDetail instance.
        """
        return cls(
            detail=detail,
            error_code=error_code.value,
            details=details,
            request_id=request_id,
        )
