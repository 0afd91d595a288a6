"""Directory-backed storage for uploaded monthly spreadsheets."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from attendance_report.utils.exceptions import (
    FileWriteError,
    ReportFileNotFoundError,
    UnsupportedFormatError,
)
from attendance_report.utils.logging import get_logger

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


@dataclass(frozen=True)
class StoredFile:
    """An uploaded file as it sits on storage."""

    filename: str
    original_name: str
    size: int
    uploaded_at: datetime

    def to_dict(self) -> dict[str, object]:
        return {
            "filename": self.filename,
            "original_name": self.original_name,
            "size": self.size,
            "uploaded_at": self.uploaded_at,
        }


class FileStore:
    """Key-value directory of uploaded blobs addressed by generated filenames.

    Generated names look like ``20240131T101500-1a2b3c4d-january.xlsx``; the
    original stem is kept after the random part so listings stay readable.
    """

    def __init__(
        self,
        base_dir: Path | str,
        allowed_extensions: frozenset[str] | None = None,
    ) -> None:
        self.base_dir = Path(base_dir)
        self.allowed_extensions = allowed_extensions

    def save(self, original_name: str, content: bytes) -> StoredFile:
        """Store an upload under a new generated filename.

        Raises:
            UnsupportedFormatError: If the extension is not allowed.
            FileWriteError: If the file cannot be written.
        """
        extension = Path(original_name).suffix.lower()
        if (
            self.allowed_extensions is not None
            and extension not in self.allowed_extensions
        ):
            raise UnsupportedFormatError(
                message=(
                    f"Unsupported file type '{extension or '(none)'}'. "
                    f"Allowed: {', '.join(sorted(self.allowed_extensions))}"
                ),
                extension=extension,
            )

        now = datetime.now(UTC)
        filename = self.generate_filename(original_name, now)
        target = self.base_dir / filename
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as e:
            logger.error(
                "Failed to store upload",
                exc_info=True,
                filename=filename,
            )
            raise FileWriteError(
                message=f"Could not store upload: {e}", file_id=filename
            ) from e

        logger.info(
            "Upload stored",
            filename=filename,
            original_name=original_name,
            size=len(content),
        )
        return StoredFile(
            filename=filename,
            original_name=original_name,
            size=len(content),
            uploaded_at=now,
        )

    def list_files(self) -> list[StoredFile]:
        """All stored files, newest first."""
        if not self.base_dir.exists():
            return []
        files = []
        for path in self.base_dir.iterdir():
            if not path.is_file() or path.name.startswith("."):
                continue
            if (
                self.allowed_extensions is not None
                and path.suffix.lower() not in self.allowed_extensions
            ):
                continue
            stat = path.stat()
            files.append(
                StoredFile(
                    filename=path.name,
                    original_name=self.original_name(path.name),
                    size=stat.st_size,
                    uploaded_at=datetime.fromtimestamp(stat.st_mtime, UTC),
                )
            )
        files.sort(key=lambda f: (f.uploaded_at, f.filename), reverse=True)
        return files

    def get_file_path(self, file_id: str) -> Path:
        """Resolve a stored filename to its path.

        Raises:
            ReportFileNotFoundError: For unknown ids or ids that try to leave
                the storage directory.
        """
        if not self.is_safe_id(file_id):
            raise ReportFileNotFoundError(file_id)
        path = self.base_dir / file_id
        if not path.is_file():
            raise ReportFileNotFoundError(file_id)
        return path

    def delete(self, file_id: str) -> None:
        path = self.get_file_path(file_id)
        path.unlink()
        logger.info("Upload deleted", filename=file_id)

    @staticmethod
    def is_safe_id(file_id: str) -> bool:
        if not file_id or file_id in {".", ".."}:
            return False
        return "/" not in file_id and "\\" not in file_id and ".." not in file_id

    @staticmethod
    def generate_filename(original_name: str, now: datetime | None = None) -> str:
        now = now or datetime.now(UTC)
        path = Path(original_name)
        stem = _UNSAFE_CHARS.sub("-", path.stem).strip("-")[:60] or "upload"
        return (
            f"{now.strftime('%Y%m%dT%H%M%S')}-{uuid.uuid4().hex[:8]}-"
            f"{stem}{path.suffix.lower()}"
        )

    @staticmethod
    def original_name(filename: str) -> str:
        """Best-effort recovery of the uploaded name from a generated one."""
        parts = filename.split("-", 2)
        if len(parts) == 3 and len(parts[1]) == 8:
            return parts[2]
        return filename
