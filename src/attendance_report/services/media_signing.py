"""Signed, expiring URLs for report images fetched by the messaging provider."""

from __future__ import annotations

import hashlib
import hmac
import time
from urllib.parse import quote, urlencode

from attendance_report.utils.exceptions import (
    InvalidMediaSignatureError,
    MediaLinkExpiredError,
    RelayNotConfiguredError,
)


class MediaSigner:
    """HMAC-SHA256 over ``"{filename}:{expires}"``."""

    def __init__(self, key: str, ttl_seconds: int = 3600) -> None:
        self._key = key.encode("utf-8")
        self.ttl_seconds = ttl_seconds

    @property
    def enabled(self) -> bool:
        return bool(self._key)

    def sign(self, filename: str, expires_at: int) -> str:
        if not self.enabled:
            raise RelayNotConfiguredError(
                "Media signing key is not configured",
                missing=["media_signing_key"],
            )
        payload = f"{filename}:{expires_at}".encode()
        return hmac.new(self._key, payload, hashlib.sha256).hexdigest()

    def signed_url(self, base_url: str, filename: str, now: float | None = None) -> str:
        """Build ``{base_url}/media/{filename}?expires=...&signature=...``."""
        expires_at = int(now if now is not None else time.time()) + self.ttl_seconds
        query = urlencode(
            {"expires": expires_at, "signature": self.sign(filename, expires_at)}
        )
        return f"{base_url.rstrip('/')}/media/{quote(filename)}?{query}"

    def verify(
        self,
        filename: str,
        expires_at: int,
        signature: str,
        now: float | None = None,
    ) -> None:
        """Check a presented link.

        Raises:
            InvalidMediaSignatureError: If signing is disabled or the
                signature does not match.
            MediaLinkExpiredError: If the link is past its expiry.
        """
        if not self.enabled:
            raise InvalidMediaSignatureError(filename)
        expected = self.sign(filename, expires_at)
        if not hmac.compare_digest(expected.encode(), signature.lower().encode()):
            raise InvalidMediaSignatureError(filename)
        current = now if now is not None else time.time()
        if current > expires_at:
            raise MediaLinkExpiredError(filename, expires_at)
