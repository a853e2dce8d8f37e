"""
PURPOSE: Configuration settings for the Checkout Relay gateway.

This module uses Pydantic Settings to manage configuration from environment
variables and .env files. All settings are validated and typed.
"""

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings

from app.core.errors import ConfigurationError

# Canonicalization policies accepted by the webhook authenticator
RAW_BODY_POLICY = "raw_body"
SORTED_FIELDS_POLICY = "sorted_fields"
CANONICALIZATION_POLICIES = (RAW_BODY_POLICY, SORTED_FIELDS_POLICY)


class Settings(BaseSettings):
    """
    PURPOSE: Central configuration class for the Checkout Relay gateway.

    Manages the webhook shared secret and canonicalization policy, the
    heartbeat liveness window, and HTTP/system settings. Settings are loaded
    from environment variables and .env file.
    """

    # Payment Notification Webhook
    # Shared secret (the payment provider's "salt") used to sign notifications.
    # Loaded once at startup; the process refuses to start without it.
    WEBHOOK_SECRET: SecretStr = SecretStr("")
    # raw_body | sorted_fields
    WEBHOOK_CANONICALIZATION: str = SORTED_FIELDS_POLICY
    WEBHOOK_SIGNATURE_HEADER: str = "X-Signature"
    WEBHOOK_SIGNATURE_FIELD: str = "hmac"

    # Session Liveness
    HEARTBEAT_TIMEOUT_MS: int = 3500

    # HTTP Settings
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    CORS_ALLOW_ORIGINS: list[str] = ["*"]
    RATE_LIMIT_ENABLED: bool = True

    # System Settings
    APP_ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    @field_validator("WEBHOOK_CANONICALIZATION")
    @classmethod
    def normalize_policy(cls, v: str) -> str:
        """Normalize the policy name; unknown values are rejected at startup."""
        return v.strip().lower()

    @field_validator("HEARTBEAT_TIMEOUT_MS")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Validate the liveness window is positive."""
        if v <= 0:
            raise ValueError("HEARTBEAT_TIMEOUT_MS must be positive")
        return v

    def is_production(self) -> bool:
        """
        PURPOSE: Determine whether the app is running in production mode.

        Returns:
            bool: True when APP_ENV indicates production.
        """
        return self.APP_ENV.strip().lower() in {"prod", "production"}

    def is_development(self) -> bool:
        """
        PURPOSE: Determine whether the app is running in development mode.

        Returns:
            bool: True when APP_ENV indicates development or debug is on.
        """
        return self.APP_ENV.strip().lower() in {"dev", "development"} or self.DEBUG

    @property
    def heartbeat_timeout_seconds(self) -> float:
        """Liveness window in seconds, as compared against the monotonic clock."""
        return self.HEARTBEAT_TIMEOUT_MS / 1000.0

    def validate_webhook_config(self) -> None:
        """
        PURPOSE: Refuse to serve webhook traffic without a usable configuration.

        CALLED BY: create_app() before any route is registered.

        Unlike the other settings, a missing secret is never tolerated in
        development: an empty secret would make every signature check
        meaningless.

        Raises:
            ConfigurationError: If the secret is empty or the canonicalization
                policy is unknown.
        """
        if not self.WEBHOOK_SECRET.get_secret_value():
            raise ConfigurationError(
                "WEBHOOK_SECRET is not set. Set it in your .env file or as an "
                "environment variable before starting the gateway."
            )

        if self.WEBHOOK_CANONICALIZATION not in CANONICALIZATION_POLICIES:
            raise ConfigurationError(
                f"WEBHOOK_CANONICALIZATION must be one of "
                f"{', '.join(CANONICALIZATION_POLICIES)}; "
                f"got {self.WEBHOOK_CANONICALIZATION!r}"
            )

    class Config:
        """Pydantic model configuration."""

        env_file: str = ".env"
        env_file_encoding: str = "utf-8"
        case_sensitive: bool = True


settings: Settings = Settings()
