"""Tests for the structured logging utilities."""

import logging
import time
from collections.abc import Iterator
from unittest.mock import MagicMock, patch

import pytest

from attendance_report.utils.logging import (
    LogContext,
    ScanMetrics,
    StructuredLogFormatter,
    StructuredLogger,
    clear_context,
    configure_logging,
    get_file_id,
    get_logger,
    get_request_id,
    set_file_id,
    set_request_id,
    timed_operation,
)


def make_record(msg: str = "Test message") -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=None,
    )


@pytest.fixture(autouse=True)
def clean_context() -> Iterator[None]:
    clear_context()
    yield
    clear_context()


class TestContextVariables:
    """Tests for context variable management."""

    def test_request_id_default_none(self) -> None:
        assert get_request_id() is None

    def test_set_and_get_request_id(self) -> None:
        set_request_id("req-123")
        assert get_request_id() == "req-123"

    def test_set_and_get_file_id(self) -> None:
        set_file_id("20240101T000000-ab12cd34-jan.xlsx")
        assert get_file_id() == "20240101T000000-ab12cd34-jan.xlsx"

    def test_clear_context(self) -> None:
        set_request_id("req-123")
        set_file_id("jan.xlsx")

        clear_context()

        assert get_request_id() is None
        assert get_file_id() is None


class TestScanMetrics:
    def test_initialization(self) -> None:
        metrics = ScanMetrics(operation="summarize")
        assert metrics.duration_seconds == 0.0
        assert metrics.rows_scanned == 0
        assert metrics.cells_read == 0
        assert metrics.finished is False

    def test_finish_measures_duration(self) -> None:
        metrics = ScanMetrics(operation="summarize")
        time.sleep(0.01)
        metrics.finish()
        assert metrics.duration_seconds > 0
        assert metrics.finished is True

    def test_to_dict_with_counters(self) -> None:
        metrics = ScanMetrics(operation="list_employees", rows_scanned=120)
        metrics.cells_read = 31
        metrics.duration_seconds = 0.25

        assert metrics.to_dict() == {
            "duration_seconds": "0.2500",
            "rows_scanned": 120,
            "cells_read": 31,
        }

    def test_to_dict_excludes_zero_counters(self) -> None:
        result = ScanMetrics(operation="summarize").to_dict()
        assert list(result) == ["duration_seconds"]


class TestStructuredLogger:
    """Tests for StructuredLogger class."""

    def setup_method(self) -> None:
        self.logger = get_logger("test_logger")

    def test_get_logger_returns_structured_logger(self) -> None:
        assert isinstance(get_logger(__name__), StructuredLogger)

    def test_build_message_without_fields(self) -> None:
        assert StructuredLogger._build_message("Test message") == "Test message"

    def test_build_message_with_fields(self) -> None:
        msg = StructuredLogger._build_message(
            "Upload stored", size=42, filename="a.xlsx"
        )
        assert msg == "Upload stored | size=42, filename=a.xlsx"

    @patch.object(logging.Logger, "info")
    def test_info_logging(self, mock_info: MagicMock) -> None:
        self.logger.info("Employees listed", count=3)
        mock_info.assert_called_once()
        assert "count=3" in mock_info.call_args[0][0]

    @patch.object(logging.Logger, "warning")
    def test_warning_logging(self, mock_warning: MagicMock) -> None:
        self.logger.warning("Test warning")
        mock_warning.assert_called_once()

    @patch.object(logging.Logger, "error")
    def test_error_logging_passes_exc_info(self, mock_error: MagicMock) -> None:
        self.logger.error("Test error", exc_info=True)
        assert mock_error.call_args.kwargs["exc_info"] is True

    @patch.object(logging.Logger, "debug")
    def test_log_scan(self, mock_debug: MagicMock) -> None:
        metrics = ScanMetrics(operation="summarize", cells_read=31)
        self.logger.log_scan(metrics)
        message = mock_debug.call_args[0][0]
        assert message.startswith("Scan finished: summarize | ")
        assert "cells_read=31" in message

    @patch.object(logging.Logger, "log")
    def test_log_api_call_success(self, mock_log: MagicMock) -> None:
        self.logger.log_api_call(
            service="whatsapp",
            operation="create_message:multipart",
            duration_seconds=0.5,
            status_code=200,
        )
        level, message = mock_log.call_args[0]
        assert level == logging.INFO
        assert "service=whatsapp" in message
        assert "status_code=200" in message
        assert "duration_seconds=0.500" in message

    @patch.object(logging.Logger, "log")
    def test_log_api_call_failure(self, mock_log: MagicMock) -> None:
        self.logger.log_api_call(
            service="whatsapp",
            operation="create_message:multipart",
            duration_seconds=0.5,
            success=False,
            error_message="connection refused",
        )
        level, message = mock_log.call_args[0]
        assert level == logging.ERROR
        assert "error=connection refused" in message


class TestLogContext:
    """Tests for LogContext context manager."""

    def test_context_sets_file_id(self) -> None:
        with LogContext(file_id="jan.xlsx"):
            assert get_file_id() == "jan.xlsx"
        assert get_file_id() is None

    def test_context_restores_previous_values(self) -> None:
        set_file_id("original.xlsx")
        set_request_id("req-1")

        with LogContext(file_id="new.xlsx", request_id="req-2"):
            assert get_file_id() == "new.xlsx"
            assert get_request_id() == "req-2"

        assert get_file_id() == "original.xlsx"
        assert get_request_id() == "req-1"

    def test_unset_values_are_left_alone(self) -> None:
        set_request_id("req-1")
        with LogContext(file_id="jan.xlsx"):
            assert get_request_id() == "req-1"
        assert get_request_id() == "req-1"

    def test_nested_contexts(self) -> None:
        with LogContext(file_id="outer.xlsx"):
            with LogContext(file_id="inner.xlsx"):
                assert get_file_id() == "inner.xlsx"
            assert get_file_id() == "outer.xlsx"

    def test_context_is_restored_after_error(self) -> None:
        with pytest.raises(RuntimeError), LogContext(file_id="jan.xlsx"):
            raise RuntimeError("scan failed")
        assert get_file_id() is None


class TestTimedOperation:
    """Tests for timed_operation context manager."""

    @patch.object(StructuredLogger, "log_scan")
    def test_timed_operation_logs_metrics(self, mock_log: MagicMock) -> None:
        with timed_operation(get_logger("test"), "list_employees") as metrics:
            metrics.rows_scanned = 100

        logged = mock_log.call_args[0][0]
        assert logged.operation == "list_employees"
        assert logged.rows_scanned == 100
        assert logged.finished is True

    @patch.object(StructuredLogger, "log_scan")
    def test_timed_operation_logs_on_error(self, mock_log: MagicMock) -> None:
        with pytest.raises(ValueError), timed_operation(get_logger("test"), "scan"):
            raise ValueError("boom")
        mock_log.assert_called_once()


class TestConfigureLogging:
    """Tests for configure_logging function."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self) -> Iterator[None]:
        root = logging.getLogger()
        level, handlers = root.level, root.handlers[:]
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_configure_with_string_level(self) -> None:
        configure_logging(level="DEBUG")
        assert logging.getLogger().level == logging.DEBUG

    def test_configure_with_int_level(self) -> None:
        configure_logging(level=logging.WARNING)
        assert logging.getLogger().level == logging.WARNING

    def test_configure_replaces_handlers(self) -> None:
        configure_logging()
        configure_logging()
        root_logger = logging.getLogger()
        assert len(root_logger.handlers) == 1
        assert isinstance(root_logger.handlers[0].formatter, StructuredLogFormatter)

    def test_configure_plain_formatter(self) -> None:
        configure_logging(structured=False)
        handler = logging.getLogger().handlers[0]
        assert not isinstance(handler.formatter, StructuredLogFormatter)


class TestStructuredLogFormatter:
    """Tests for StructuredLogFormatter class."""

    def test_format_without_context(self) -> None:
        formatter = StructuredLogFormatter("%(message)s")
        assert formatter.format(make_record()) == "Test message"

    def test_format_with_request_and_file_id(self) -> None:
        set_request_id("req-123")
        set_file_id("jan.xlsx")
        formatter = StructuredLogFormatter("%(message)s")
        assert (
            formatter.format(make_record())
            == "[request_id=req-123 file_id=jan.xlsx] Test message"
        )

    def test_format_with_file_id_only(self) -> None:
        with LogContext(file_id="jan.xlsx"):
            formatted = StructuredLogFormatter("%(message)s").format(make_record())
        assert formatted == "[file_id=jan.xlsx] Test message"

    def test_format_leaves_record_unchanged(self) -> None:
        set_request_id("req-123")
        record = make_record()
        StructuredLogFormatter("%(message)s").format(record)
        assert record.msg == "Test message"
