"""Sweep published report images whose signed links have expired."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path

from attendance_report.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class PurgeResult:
    """Counts from one sweep of the media directory."""

    scanned: int = 0
    removed: int = 0
    skipped: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "scanned": self.scanned,
            "removed": self.removed,
            "skipped": self.skipped,
            "errors": self.errors,
        }


def purge_expired_media(
    media_dir: Path | str,
    max_age_seconds: int,
    now: datetime | None = None,
) -> PurgeResult:
    """Remove media files last written more than ``max_age_seconds`` ago.

    A link is signed when its file is written and lives for the signer's
    TTL, so a file older than the TTL can no longer be fetched.

    Args:
        media_dir: Directory the relay publishes images into.
        max_age_seconds: Age after which a file is removed.
        now: Optional reference time (useful for testing).

    Returns:
        PurgeResult with counts.
    """
    result = PurgeResult()
    base = Path(media_dir)
    if not base.is_dir():
        return result

    cutoff = (now or datetime.now(UTC)) - timedelta(seconds=max_age_seconds)
    for item in base.iterdir():
        if not item.is_file():
            continue
        result.scanned += 1
        try:
            if datetime.fromtimestamp(item.stat().st_mtime, UTC) < cutoff:
                item.unlink()
                result.removed += 1
            else:
                result.skipped += 1
        except OSError as e:
            result.errors += 1
            logger.warning(
                "Failed to remove expired media", path=str(item), error=str(e)
            )

    if result.removed or result.errors:
        logger.info(
            "Media purge complete",
            **result.to_dict(),
            max_age_seconds=max_age_seconds,
        )
    return result
