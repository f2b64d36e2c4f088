"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - Durations are exposed both raw (hours/seconds) and as timedelta helpers

Design Decisions:
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
    - admin_token has no default: the admin surface stays closed until configured
"""

from datetime import timedelta
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://mirrio:mirrio@db:5432/mirrio"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Round lifecycle
    voting_window_hours: float = 24
    cooldown_hours: float = 48

    # Scheduler
    scheduler_enabled: bool = False
    scheduler_interval_seconds: int = 300

    # Notifications
    notification_webhook_url: str | None = None
    notification_timeout_seconds: float = 10.0

    # Admin surface
    admin_token: str | None = None

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def voting_window(self) -> timedelta:
        return timedelta(hours=self.voting_window_hours)

    @property
    def cooldown(self) -> timedelta:
        return timedelta(hours=self.cooldown_hours)


@lru_cache
def get_settings() -> Settings:
    return Settings()
