"""Load uploaded spreadsheets into the sparse workbook model using openpyxl."""

from __future__ import annotations

from datetime import date, datetime, time
from io import BytesIO
from pathlib import Path
from typing import IO, Any

from openpyxl import load_workbook
from openpyxl.worksheet.worksheet import Worksheet

from attendance_report.utils.exceptions import (
    ReportFileNotFoundError,
    UnreadableWorkbookError,
)
from attendance_report.utils.logging import get_logger
from attendance_report.workbook import Cell, Sheet, Workbook

logger = get_logger(__name__)

SUPPORTED_EXTENSIONS = frozenset({".xlsx", ".xlsm"})


class WorkbookLoader:
    """Read literal cell values from Excel workbooks.

    Formulas are never evaluated; the value cached in the file is used.
    """

    def load_from_path(self, file_path: Path, file_id: str | None = None) -> Workbook:
        """Load a workbook stored on disk."""
        if not file_path.is_file():
            raise ReportFileNotFoundError(file_id or file_path.name)
        return self._load(file_path, file_id or file_path.name)

    def load_from_bytes(self, content: bytes, file_id: str | None = None) -> Workbook:
        """Load a workbook from raw uploaded bytes."""
        return self._load(BytesIO(content), file_id)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _load(self, source: Path | IO[bytes], file_id: str | None) -> Workbook:
        try:
            wb = load_workbook(filename=source, data_only=True, read_only=False)
        except Exception as e:
            logger.warning(
                "Workbook could not be parsed",
                file_id=file_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise UnreadableWorkbookError(file_id=file_id, reason=str(e)) from e

        try:
            sheets = [self._read_sheet(ws) for ws in wb.worksheets]
        finally:
            wb.close()

        logger.debug(
            "Workbook loaded",
            file_id=file_id,
            sheets=len(sheets),
        )
        return Workbook(sheets=sheets)

    def _read_sheet(self, ws: Worksheet) -> Sheet:
        """Convert one worksheet, keeping only non-empty cells."""
        sheet = Sheet(name=ws.title)
        rows: list[int] = []
        cols: list[int] = []

        for r, row_values in enumerate(ws.iter_rows(values_only=True)):
            for c, value in enumerate(row_values):
                cell = to_cell(value)
                if cell is None:
                    continue
                sheet.cells[(r, c)] = cell
                rows.append(r)
                cols.append(c)

        if rows:
            sheet.min_row, sheet.max_row = min(rows), max(rows)
            sheet.min_col, sheet.max_col = min(cols), max(cols)
        return sheet


def to_cell(value: Any) -> Cell | None:
    """Map an openpyxl cell value onto the text/number model.

    Returns None for values that should not be stored (blank cells).
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return Cell.text_cell("TRUE" if value else "FALSE")
    if isinstance(value, (int, float)):
        return Cell.number_cell(value)
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return Cell.text_cell(value.date().isoformat())
        return Cell.text_cell(value.isoformat())
    if isinstance(value, (date, time)):
        return Cell.text_cell(value.isoformat())
    text = str(value)
    if text == "":
        return None
    return Cell.text_cell(text)
