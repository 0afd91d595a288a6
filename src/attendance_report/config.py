"""Configuration management for the attendance report service.

This module provides centralized configuration using pydantic-settings.
All configuration options can be set via environment variables with the
ATR_ prefix, or via a .env file in the project root.

Environment Variables:
    ATR_UPLOAD_DIR: Directory holding uploaded monthly spreadsheets
    ATR_MEDIA_DIR: Directory holding rendered report images for the relay
    ATR_RELAY_CONFIG_PATH: JSON file persisting WhatsApp settings from the UI
    ATR_MAX_FILE_SIZE_MB: Maximum upload size in MB (default: 10)
    ATR_MEDIA_SIGNING_KEY: HMAC key for signed media URLs
    ATR_MEDIA_URL_TTL_SECONDS: Lifetime of a signed media URL (default: 3600)
    ATR_PUBLIC_BASE_URL: Externally reachable base URL used in media links
    ATR_WHATSAPP_ENDPOINT: Provider create-message endpoint
    ATR_WHATSAPP_APPKEY: Provider app key
    ATR_WHATSAPP_AUTHKEY: Provider auth key
    ATR_WHATSAPP_TEMPLATE_ID: Optional provider template id
    ATR_WHATSAPP_TIMEOUT_SECONDS: Provider request timeout (default: 30)
    ATR_PING_MESSAGE: Message returned by /api/ping (default: ping)
    ATR_LOG_LEVEL: Logging level (default: INFO)
    ATR_DEBUG: Enable debug mode (default: false)
    ATR_CORS_ORIGINS: Comma-separated CORS origins (default: *)
    ATR_SERVER_HOST: Server bind host (default: 0.0.0.0)
    ATR_SERVER_PORT: Server bind port (default: 8000)
"""

import logging
from datetime import timedelta
from typing import Any

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables prefixed with ATR_
    or via a .env file. Provider credentials and the signing key use SecretStr
    to prevent accidental logging.

    Example .env file:
        ATR_UPLOAD_DIR=/srv/attendance/uploads
        ATR_MEDIA_SIGNING_KEY=change-me
        ATR_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="ATR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # =========================================================================
    # Storage Settings
    # =========================================================================

    upload_dir: str = "/tmp/atr_uploads"
    """Directory for uploaded monthly spreadsheets."""

    media_dir: str = "/tmp/atr_media"
    """Directory for report images handed to the messaging provider."""

    relay_config_path: str = "/tmp/atr_whatsapp.json"
    """File where WhatsApp settings saved from the UI are persisted."""

    max_file_size_mb: int = 10
    """Maximum file upload size in megabytes."""

    # =========================================================================
    # Media Link Settings
    # =========================================================================

    media_signing_key: SecretStr = SecretStr("")
    """HMAC key for signed media URLs. Empty disables link issuance."""

    media_url_ttl_seconds: int = 3600
    """How long a signed media URL stays valid."""

    public_base_url: str | None = None
    """Base URL the provider can reach this service at (e.g. https://atd.example)."""

    # =========================================================================
    # WhatsApp Provider Settings
    # =========================================================================

    whatsapp_endpoint: str = "https://whatsapp.atdsonata.fun/api/create-message"
    """Provider create-message endpoint."""

    whatsapp_appkey: SecretStr = SecretStr("")
    """Provider app key."""

    whatsapp_authkey: SecretStr = SecretStr("")
    """Provider auth key."""

    whatsapp_template_id: str | None = None
    """Optional provider template identifier."""

    whatsapp_timeout_seconds: float = 30.0
    """Timeout for each provider request."""

    # =========================================================================
    # Logging Settings
    # =========================================================================

    log_level: str = "INFO"
    """Logging level: DEBUG, INFO, WARNING, ERROR, or CRITICAL."""

    debug: bool = False
    """Enable debug mode with additional logging and error details."""

    # =========================================================================
    # Server Settings
    # =========================================================================

    ping_message: str = "ping"
    """Message echoed by the ping endpoint."""

    cors_origins: str = "*"
    """Comma-separated list of allowed CORS origins, or * for all."""

    server_host: str = "0.0.0.0"
    """Host address for the server to bind to."""

    server_port: int = 8000
    """Port for the server to listen on."""

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(valid_levels)}"
            )
        return upper_v

    @field_validator("max_file_size_mb")
    @classmethod
    def validate_file_size(cls, v: int) -> int:
        """Validate file size is positive and reasonable."""
        if not 1 <= v <= 500:
            raise ValueError(f"max_file_size_mb must be between 1 and 500, got {v}")
        return v

    @field_validator("media_url_ttl_seconds")
    @classmethod
    def validate_media_ttl(cls, v: int) -> int:
        """Validate media links live long enough for the provider to fetch them."""
        if v < 60:
            raise ValueError(f"media_url_ttl_seconds must be at least 60, got {v}")
        return v

    @field_validator("whatsapp_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"whatsapp_timeout_seconds must be positive, got {v}")
        return v

    @field_validator("public_base_url")
    @classmethod
    def validate_public_base_url(cls, v: str | None) -> str | None:
        """Strip trailing slashes; treat blank as unset."""
        if v is None or not v.strip():
            return None
        return v.strip().rstrip("/")

    @field_validator("server_port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError(f"server_port must be between 1 and 65535, got {v}")
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def max_file_size_bytes(self) -> int:
        """Get max file size in bytes."""
        return self.max_file_size_mb * 1024 * 1024

    @property
    def media_url_ttl(self) -> timedelta:
        """Get the media link lifetime as a timedelta."""
        return timedelta(seconds=self.media_url_ttl_seconds)

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def log_level_int(self) -> int:
        """Get log level as integer for logging module."""
        level: int = getattr(logging, self.log_level)
        return level

    def get_media_signing_key(self) -> str:
        """Get the media signing key value.

        Returns:
            The key string. Returns empty string if not set.
        """
        return self.media_signing_key.get_secret_value()

    def to_safe_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary with sensitive values masked.

        Returns:
            Dictionary representation with keys masked.
        """
        return {
            "upload_dir": self.upload_dir,
            "media_dir": self.media_dir,
            "relay_config_path": self.relay_config_path,
            "max_file_size_mb": self.max_file_size_mb,
            "media_signing_key": "***" if self.get_media_signing_key() else "(not set)",
            "media_url_ttl_seconds": self.media_url_ttl_seconds,
            "public_base_url": self.public_base_url,
            "whatsapp_endpoint": self.whatsapp_endpoint,
            "whatsapp_appkey": (
                "***" if self.whatsapp_appkey.get_secret_value() else "(not set)"
            ),
            "whatsapp_authkey": (
                "***" if self.whatsapp_authkey.get_secret_value() else "(not set)"
            ),
            "whatsapp_template_id": self.whatsapp_template_id,
            "whatsapp_timeout_seconds": self.whatsapp_timeout_seconds,
            "log_level": self.log_level,
            "debug": self.debug,
            "cors_origins": self.cors_origins,
            "server_host": self.server_host,
            "server_port": self.server_port,
        }


def validate_settings_on_startup(s: Settings) -> None:
    """Validate settings on application startup.

    Emits warnings for configuration that leaves optional features disabled
    or is unsafe outside development.

    Args:
        s: Settings instance to validate.
    """
    logger = logging.getLogger(__name__)

    if not s.get_media_signing_key():
        logger.warning(
            "ATR_MEDIA_SIGNING_KEY is not configured. Signed media links are "
            "disabled and the WhatsApp relay cannot fall back to URL delivery."
        )

    if s.cors_origins == "*" and not s.debug:
        logger.warning(
            "CORS is configured to allow all origins (*). "
            "Consider restricting this in production."
        )

    logger.info(
        f"Configuration loaded: log_level={s.log_level}, debug={s.debug}, "
        f"upload_dir={s.upload_dir}, max_file_size_mb={s.max_file_size_mb}"
    )


# Create the global settings instance
settings = Settings()
