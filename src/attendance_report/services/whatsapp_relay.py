"""Relay rendered attendance reports to the WhatsApp messaging provider.

The provider accepts a create-message form post carrying ``appkey``,
``authkey``, ``to``, ``message``, an optional ``template_id`` and a ``file``.
A multipart upload of the image is tried first. When that fails and the
image can be published under a signed URL, the message is sent once more
as a urlencoded form whose ``file`` field is that URL.
"""

from __future__ import annotations

import base64
import binascii
import json
import mimetypes
import re
import time
import uuid
from pathlib import Path
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from attendance_report.services.media_signing import MediaSigner
from attendance_report.services.retention import purge_expired_media
from attendance_report.utils.exceptions import (
    RelayAPIError,
    RelayError,
    RelayNotConfiguredError,
    RelayUnavailableError,
)
from attendance_report.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_IMAGE_MIME = "image/png"
DEFAULT_IMAGE_NAME = "attendance.png"

_DATA_URL = re.compile(r"data:([^;,]+)?(?:;[^,]*)?;base64")


class WhatsAppConfig(BaseModel):
    """Provider settings as edited in the browser settings page."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    endpoint: str = ""
    appkey: str = ""
    authkey: str = ""
    template_id: str | None = None
    image_host: str | None = None

    def missing_fields(self) -> list[str]:
        return [
            name
            for name in ("endpoint", "appkey", "authkey")
            if not getattr(self, name).strip()
        ]

    def masked(self) -> dict[str, Any]:
        """Camel-cased dict with credentials masked for display."""
        data = self.model_dump(by_alias=True)
        for key in ("appkey", "authkey"):
            if data[key]:
                data[key] = "***"
        return data


class RelayConfigStore:
    """JSON file holding the settings saved from the UI.

    Values saved here override the defaults built from environment settings.
    """

    def __init__(self, path: Path | str, defaults: WhatsAppConfig) -> None:
        self.path = Path(path)
        self.defaults = defaults

    def load(self) -> WhatsAppConfig:
        if not self.path.is_file():
            return self.defaults.model_copy()
        try:
            stored = json.loads(self.path.read_text(encoding="utf-8"))
            overrides = WhatsAppConfig.model_validate(stored)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(
                "Ignoring unreadable WhatsApp settings file",
                path=str(self.path),
                error=str(e),
            )
            return self.defaults.model_copy()
        merged = self.defaults.model_dump()
        merged.update(overrides.model_dump(exclude_unset=True))
        return WhatsAppConfig.model_validate(merged)

    def save(self, config: WhatsAppConfig) -> WhatsAppConfig:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            config.model_dump_json(by_alias=True, indent=2), encoding="utf-8"
        )
        logger.info("WhatsApp settings saved", path=str(self.path))
        return config


def decode_data_url(data_url: str) -> tuple[bytes, str]:
    """Split a ``data:<mime>;base64,<payload>`` URL into bytes and MIME type.

    Raises:
        ValueError: If the payload is not valid base64.
    """
    meta, _, payload = data_url.partition(",")
    match = _DATA_URL.match(meta)
    mime = match.group(1) if match and match.group(1) else DEFAULT_IMAGE_MIME
    try:
        content = base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 image data: {e}") from e
    return content, mime


def decode_response(response: httpx.Response) -> Any:
    """Provider body as JSON, or ``{"raw": text}`` when it is not JSON."""
    try:
        return response.json()
    except ValueError:
        return {"raw": response.text}


class WhatsAppRelay:
    """Send one report message through the provider."""

    def __init__(
        self,
        config: WhatsAppConfig,
        client: httpx.AsyncClient,
        signer: MediaSigner | None = None,
        media_dir: Path | str | None = None,
        public_base_url: str | None = None,
    ) -> None:
        self.config = config
        self.client = client
        self.signer = signer
        self.media_dir = Path(media_dir) if media_dir is not None else None
        self.public_base_url = public_base_url

    @property
    def image_host(self) -> str | None:
        host = (self.config.image_host or "").strip() or self.public_base_url
        return host.rstrip("/") if host else None

    @property
    def can_publish_media(self) -> bool:
        return (
            self.signer is not None
            and self.signer.enabled
            and self.media_dir is not None
            and self.image_host is not None
        )

    async def send(
        self,
        to: str,
        message: str,
        image: bytes,
        mime: str = DEFAULT_IMAGE_MIME,
        filename: str = DEFAULT_IMAGE_NAME,
        template_id: str | None = None,
    ) -> Any:
        """Deliver a message with its report image.

        Returns:
            The provider's decoded response body.

        Raises:
            RelayNotConfiguredError: If endpoint or credentials are missing.
            RelayAPIError: If the provider rejects every attempt.
            RelayUnavailableError: If the provider cannot be reached.
        """
        missing = self.config.missing_fields()
        if missing:
            raise RelayNotConfiguredError(
                "Missing endpoint/appkey/authkey", missing=missing
            )

        fields = {
            "appkey": self.config.appkey,
            "authkey": self.config.authkey,
            "to": to,
            "message": message,
        }
        template = template_id or self.config.template_id
        if template:
            fields["template_id"] = template

        try:
            return await self._post(
                "multipart", data=fields, files={"file": (filename, image, mime)}
            )
        except RelayError as first_error:
            if not self.can_publish_media:
                raise
            media_url = self.publish_image(image, mime)
            logger.warning(
                "Multipart delivery failed, retrying with media URL",
                error=first_error.message,
            )
            return await self._post("urlencoded", data={**fields, "file": media_url})

    def publish_image(self, image: bytes, mime: str) -> str:
        """Store the image in the media directory and return a signed URL."""
        assert self.signer is not None and self.media_dir is not None
        assert self.image_host is not None
        extension = mimetypes.guess_extension(mime) or ".png"
        filename = f"{uuid.uuid4().hex}{extension}"
        self.media_dir.mkdir(parents=True, exist_ok=True)
        purge_expired_media(self.media_dir, self.signer.ttl_seconds)
        (self.media_dir / filename).write_bytes(image)
        return self.signer.signed_url(self.image_host, filename)

    async def _post(self, encoding: str, **kwargs: Any) -> Any:
        endpoint = self.config.endpoint
        start = time.monotonic()
        try:
            response = await self.client.post(endpoint, **kwargs)
        except httpx.HTTPError as e:
            logger.log_api_call(
                service="whatsapp",
                operation=f"create_message:{encoding}",
                duration_seconds=time.monotonic() - start,
                success=False,
                error_message=str(e) or type(e).__name__,
            )
            raise RelayUnavailableError(
                reason=str(e) or type(e).__name__, endpoint=endpoint
            ) from e

        body = decode_response(response)
        logger.log_api_call(
            service="whatsapp",
            operation=f"create_message:{encoding}",
            duration_seconds=time.monotonic() - start,
            status_code=response.status_code,
            success=response.is_success,
        )
        if not response.is_success:
            raise RelayAPIError(
                status_code=response.status_code, response=body, endpoint=endpoint
            )
        return body
