"""Attendance Report - monthly attendance spreadsheet viewer and relay."""

from attendance_report.api import app, create_app

__all__ = ["app", "create_app"]
__version__ = "0.1.0"


def main() -> None:
    """Run the FastAPI server using uvicorn."""
    import uvicorn

    from attendance_report.config import settings

    uvicorn.run(
        "attendance_report.api:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.debug,
    )
