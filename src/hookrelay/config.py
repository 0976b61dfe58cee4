"""Configuration management for Hookrelay."""

from datetime import timedelta
from typing import TYPE_CHECKING, Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

if TYPE_CHECKING:
    from hookrelay.webhooks.policy import RetryPolicy


class Settings(BaseSettings):
    """Hookrelay settings loaded from ``HOOKRELAY_*`` environment variables.

    Attributes:
        env: Deployment environment.
        database_url: SQLAlchemy async URL for the delivery store.
        batch_size: Maximum deliveries selected per dispatcher run.
        request_timeout_seconds: Total time budget for one delivery attempt.
        retry_interval_seconds: Fixed delay before a failed delivery is due again.
        failure_deadline_seconds: Lifetime of a delivery measured from creation.
        cron_secret: Bearer secret required by the trigger endpoints.
    """

    env: Literal["development", "production", "test"] = Field(
        default="development",
        description="Deployment environment",
    )

    # Delivery store
    database_url: str = Field(
        default="sqlite+aiosqlite:///hookrelay.sqlite",
        description="SQLAlchemy async database URL",
    )
    database_echo: bool = Field(
        default=False,
        description="Echo SQL statements to the log",
    )
    create_tables: bool = Field(
        default=True,
        description="Create the deliveries table on startup if missing",
    )

    # Dispatcher
    batch_size: int = Field(
        default=50,
        ge=1,
        le=500,
        description=(
            "Maximum deliveries selected per dispatcher run. "
            "Bounds worst-case run time under the trigger's execution ceiling."
        ),
    )
    max_concurrent: int | None = Field(
        default=None,
        ge=1,
        description="Concurrent attempts per batch (defaults to batch_size)",
    )

    # Delivery policy
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=60.0,
        description="Per-attempt timeout for the outbound POST",
    )
    retry_interval_seconds: int = Field(
        default=300,
        ge=1,
        description="Fixed delay between failed attempts",
    )
    failure_deadline_seconds: int = Field(
        default=3600,
        ge=1,
        description="Deliveries older than this are marked FAILED on their next failure",
    )
    signing_secret: str | None = Field(
        default=None,
        description="If set, outbound requests carry an HMAC-SHA256 signature header",
    )

    # Trigger surface
    api_host: str = Field(
        default="127.0.0.1",
        description="Bind address for hookrelay-api",
    )
    api_port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Bind port for hookrelay-api",
    )
    cron_secret: str | None = Field(
        default=None,
        description="Bearer secret for the cron trigger endpoints",
    )
    allow_loopback_cron: bool = Field(
        default=True,
        description="Allow loopback callers (local cron daemon) when no cron secret is set",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format: json for production, text for development",
    )

    model_config = {
        "env_prefix": "HOOKRELAY_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def validate_security_settings(self) -> "Settings":
        """Require a cron secret in production.

        Without it the trigger endpoints are reachable only from loopback,
        which is never the case behind a platform scheduler. Once set, the
        bearer is required from every caller.
        """
        if self.env == "production" and not self.cron_secret:
            raise ValueError(
                "HOOKRELAY_CRON_SECRET must be set in production. "
                'Generate one with: python -c "import secrets; print(secrets.token_hex(32))"'
            )
        return self

    @property
    def effective_max_concurrent(self) -> int:
        """Concurrency bound for one batch (whole batch by default)."""
        return self.max_concurrent or self.batch_size

    def retry_policy(self) -> "RetryPolicy":
        """Build the retry policy from the configured intervals."""
        from hookrelay.webhooks.policy import RetryPolicy

        return RetryPolicy(
            retry_interval=timedelta(seconds=self.retry_interval_seconds),
            failure_deadline=timedelta(seconds=self.failure_deadline_seconds),
        )


# Global settings instance
settings = Settings()
