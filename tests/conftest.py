from __future__ import annotations

from pathlib import Path

import pytest

from attendance_report.services.file_store import FileStore
from attendance_report.services.workbook_loader import SUPPORTED_EXTENSIONS
from attendance_report.workbook import Sheet
from tests.fixtures import build_sheet, sample_month_rows, save_workbook


@pytest.fixture
def month_sheet() -> Sheet:
    """In-memory copy of the sample month, rows in sheet order."""
    return build_sheet(dict(enumerate(sample_month_rows())), name="PRESENT JAN")


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def file_store(upload_dir: Path) -> FileStore:
    return FileStore(upload_dir, allowed_extensions=SUPPORTED_EXTENSIONS)


@pytest.fixture
def month_file_id(upload_dir: Path) -> str:
    """Stored sample month with an unrelated sheet placed before it."""
    file_id = "20240201T090000-abcdef12-january.xlsx"
    save_workbook(
        upload_dir / file_id,
        {
            "Summary": [{0: "Monthly totals"}],
            "PRESENT JAN": sample_month_rows(),
        },
    )
    return file_id
