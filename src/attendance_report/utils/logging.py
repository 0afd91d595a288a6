"""Structured logging for the attendance report service.

Every line written through :func:`get_logger` carries the current request id
and, while a stored spreadsheet is being read, its file id:

    [request_id=3f2a... file_id=jan.xlsx] Employees listed | count=42

Usage:
    logger = get_logger(__name__)

    with LogContext(file_id=file_id):
        with timed_operation(logger, "summarize") as metrics:
            metrics.cells_read = 31
"""

import logging
import time
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from typing import Any

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
_file_id_var: ContextVar[str | None] = ContextVar("file_id", default=None)

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_request_id() -> str | None:
    return _request_id_var.get()


def set_request_id(request_id: str | None) -> None:
    _request_id_var.set(request_id)


def get_file_id() -> str | None:
    """Stored spreadsheet currently being read, if any."""
    return _file_id_var.get()


def set_file_id(file_id: str | None) -> None:
    _file_id_var.set(file_id)


def clear_context() -> None:
    _request_id_var.set(None)
    _file_id_var.set(None)


@dataclass
class ScanMetrics:
    """Counters filled in while one sheet operation runs.

    Attributes:
        operation: Name of the scan ("list_employees", "summarize", ...).
        rows_scanned: Sheet rows visited.
        cells_read: Day cells classified or parsed.
        duration_seconds: Wall time, set by :meth:`finish`.
    """

    operation: str
    rows_scanned: int = 0
    cells_read: int = 0
    duration_seconds: float = 0.0
    finished: bool = False
    _start: float = field(default_factory=time.perf_counter, init=False, repr=False)

    def finish(self) -> None:
        self.duration_seconds = time.perf_counter() - self._start
        self.finished = True

    def to_dict(self) -> dict[str, Any]:
        """Non-zero counters plus the duration, for the log line."""
        result: dict[str, Any] = {
            "duration_seconds": f"{self.duration_seconds:.4f}",
        }
        if self.rows_scanned:
            result["rows_scanned"] = self.rows_scanned
        if self.cells_read:
            result["cells_read"] = self.cells_read
        return result


class StructuredLogFormatter(logging.Formatter):
    """Prefix each record with the request and file ids in context."""

    def format(self, record: logging.LogRecord) -> str:
        parts = []
        request_id = get_request_id()
        if request_id:
            parts.append(f"request_id={request_id}")
        file_id = get_file_id()
        if file_id:
            parts.append(f"file_id={file_id}")
        if not parts:
            return super().format(record)

        original_msg = record.msg
        record.msg = f"[{' '.join(parts)}] {original_msg}"
        try:
            return super().format(record)
        finally:
            record.msg = original_msg


class StructuredLogger:
    """A module logger whose keyword arguments become ``key=value`` pairs."""

    def __init__(self, name: str) -> None:
        self._logger = logging.getLogger(name)

    @staticmethod
    def _build_message(message: str, **fields: Any) -> str:
        if not fields:
            return message
        pairs = ", ".join(f"{k}={v}" for k, v in fields.items())
        return f"{message} | {pairs}"

    def debug(self, message: str, **fields: Any) -> None:
        self._logger.debug(self._build_message(message, **fields))

    def info(self, message: str, **fields: Any) -> None:
        self._logger.info(self._build_message(message, **fields))

    def warning(self, message: str, **fields: Any) -> None:
        self._logger.warning(self._build_message(message, **fields))

    def error(self, message: str, exc_info: bool = False, **fields: Any) -> None:
        self._logger.error(self._build_message(message, **fields), exc_info=exc_info)

    def exception(self, message: str, **fields: Any) -> None:
        """Log at ERROR with the active exception's traceback."""
        self._logger.exception(self._build_message(message, **fields))

    def log_scan(self, metrics: ScanMetrics) -> None:
        self.debug(f"Scan finished: {metrics.operation}", **metrics.to_dict())

    def log_api_call(
        self,
        service: str,
        operation: str,
        duration_seconds: float,
        status_code: int | None = None,
        success: bool = True,
        error_message: str | None = None,
    ) -> None:
        """Log one outbound provider call.

        Failed calls are logged at ERROR, successful ones at INFO.

        Args:
            service: Provider name, e.g. "whatsapp".
            operation: What was called, e.g. "create_message:multipart".
            duration_seconds: Time taken for the call.
            status_code: HTTP status returned, if a response arrived.
            success: Whether the call succeeded.
            error_message: Transport or provider error text.
        """
        fields: dict[str, Any] = {
            "service": service,
            "operation": operation,
            "duration_seconds": f"{duration_seconds:.3f}",
            "success": success,
        }
        if status_code is not None:
            fields["status_code"] = status_code
        if error_message:
            fields["error"] = error_message

        level = logging.INFO if success else logging.ERROR
        self._logger.log(level, self._build_message("API call", **fields))


class LogContext:
    """Bind a file id and/or request id for the duration of a block.

    Usage:
        with LogContext(file_id="jan.xlsx"):
            logger.info("Scanning")  # prefixed with file_id=jan.xlsx
    """

    def __init__(
        self, file_id: str | None = None, request_id: str | None = None
    ) -> None:
        self._file_id = file_id
        self._request_id = request_id
        self._tokens: list[tuple[ContextVar[str | None], Token[str | None]]] = []

    def __enter__(self) -> "LogContext":
        if self._file_id is not None:
            self._tokens.append((_file_id_var, _file_id_var.set(self._file_id)))
        if self._request_id is not None:
            self._tokens.append(
                (_request_id_var, _request_id_var.set(self._request_id))
            )
        return self

    def __exit__(self, *args: Any) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)


@contextmanager
def timed_operation(
    logger: StructuredLogger, operation: str
) -> Generator[ScanMetrics, None, None]:
    """Time a sheet scan and log its counters when the block exits.

    The line is logged even when the block raises.
    """
    metrics = ScanMetrics(operation=operation)
    try:
        yield metrics
    finally:
        metrics.finish()
        logger.log_scan(metrics)


def configure_logging(
    level: int | str = logging.INFO, structured: bool = True
) -> None:
    """Install a single stream handler on the root logger.

    Args:
        level: Log level, as a number or a name such as "INFO".
        structured: Prefix lines with the request and file ids.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    formatter_cls = StructuredLogFormatter if structured else logging.Formatter
    handler.setFormatter(formatter_cls(DEFAULT_FORMAT))
    root_logger.addHandler(handler)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for a module.

    Example:
        logger = get_logger(__name__)
        logger.info("Employees listed", count=42, sheet="PRESENT JAN")
    """
    return StructuredLogger(name)
