"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"

_THIRTY_DAYS_MS = 30 * 24 * 60 * 60 * 1000


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./activityhub.db",
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    secret_key: str = Field(
        description="Secret key for verifying JWT tokens", min_length=1
    )
    access_token_expire_minutes: int = Field(
        default=60,
        description="Number of minutes before access tokens expire",
        gt=0,
    )
    app_timezone: str = Field(
        default="UTC",
        description="Timezone used when rendering timestamps",
    )
    sendgrid_api_key: str | None = Field(
        default=None,
        description="SendGrid API key used for sending activity emails via the REST API",
    )
    sendgrid_sender: str | None = Field(
        default=None,
        description="Email address that will appear as the sender of activity emails",
        min_length=3,
    )
    redis_url: str | None = Field(
        default=None,
        description="Redis URL used for cluster pub/sub. When unset an in-process bus is used",
    )

    collection_polling_frequency: int = Field(
        default=5000,
        description=(
            "Milliseconds between automatic collection cycles. Zero or a negative "
            "value disables automatic collection"
        ),
    )
    number_of_processing_buckets: int = Field(
        default=3,
        description="Number of pending buckets routed activities are spread over",
        ge=1,
    )
    aggregate_idle_expiry: int = Field(
        default=60 * 60 * 1000,
        description="Milliseconds an aggregate stays open for new matching activities",
        gt=0,
    )
    collection_batch_size: int = Field(
        default=500,
        description="Maximum number of routed activities drained from a bucket per cycle",
        ge=1,
    )
    bucket_lease_duration: int = Field(
        default=60 * 1000,
        description="Milliseconds a collector may hold a bucket before it can be reclaimed",
        gt=0,
    )
    receipt_retention: int = Field(
        default=_THIRTY_DAYS_MS,
        description="Milliseconds side-effect receipts are kept before being pruned",
        gt=0,
    )
    feed_page_limit: int = Field(
        default=10, description="Default number of feed entries per page", ge=1
    )
    feed_page_max_limit: int = Field(
        default=25, description="Maximum number of feed entries per page", ge=1
    )

    @model_validator(mode="after")
    def _validate_sendgrid_pair(self) -> "Settings":
        if bool(self.sendgrid_api_key) ^ bool(self.sendgrid_sender):
            raise ValueError(
                "SENDGRID_API_KEY and SENDGRID_SENDER must both be provided to enable email"
            )
        if self.sendgrid_sender and "@" not in self.sendgrid_sender:
            raise ValueError("SENDGRID_SENDER must be a valid email address")
        return self

    @model_validator(mode="after")
    def _validate_page_limits(self) -> "Settings":
        if self.feed_page_limit > self.feed_page_max_limit:
            raise ValueError("FEED_PAGE_LIMIT cannot exceed FEED_PAGE_MAX_LIMIT")
        return self

    @property
    def automatic_collection_enabled(self) -> bool:
        """Return ``True`` when collection cycles run on an interval."""

        return self.collection_polling_frequency > 0


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
