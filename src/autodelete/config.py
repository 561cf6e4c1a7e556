"""
Application configuration with environment-driven settings.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "autodelete-bot"
    app_env: Literal["dev", "qa", "uat", "prod"] = "dev"
    debug: bool = False
    log_level: str = "INFO"

    # Discord
    discord_bot_token: str = Field(
        default="",
        description="Bot token used to log in to the Discord gateway",
    )

    # Database
    database_url: str | None = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides the DB_* parts when set",
    )
    db_host: str = Field(default="localhost")
    db_port: int = Field(default=5432, ge=1, le=65535)
    db_user: str = Field(default="postgres")
    db_password: str = Field(default="")
    db_name: str = Field(default="autodelete")

    # Commands
    command_prefix: str = Field(
        default="!autodelete",
        description="First token of every control command",
    )
    default_delay_minutes: int = Field(
        default=2,
        ge=1,
        le=525_600,
        description="Delay given to channel policies created lazily",
    )

    # Deletion scheduler
    max_concurrent_deletes: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Upper bound on delete requests in flight at once",
    )
    dispatcher_max_idle_seconds: float = Field(
        default=60.0,
        gt=0,
        le=3600,
        description="Longest the dispatcher sleeps before re-checking the queue",
    )
    cancel_pending_on_disable: bool = Field(
        default=False,
        description="Withdraw pending deletions of a channel when it is disabled",
    )
    deletion_journal_enabled: bool = Field(
        default=False,
        description="Record every scheduled deletion in the scheduled_deletions table",
    )

    # Ops HTTP API
    ops_api_enabled: bool = False
    ops_api_host: str = "127.0.0.1"
    ops_api_port: int = Field(default=8080, ge=1, le=65535)

    @field_validator("command_prefix")
    @classmethod
    def validate_command_prefix(cls, v: str) -> str:
        """Reject prefixes that cannot be matched as a single token."""
        v = v.strip()
        if not v or len(v.split()) != 1:
            raise ValueError("command_prefix must be a single non-empty token")
        return v

    @property
    def resolved_database_url(self) -> str:
        """Database URL, assembled from the DB_* parts unless given explicitly."""
        if self.database_url:
            return self.database_url
        url = URL.create(
            "postgresql+asyncpg",
            username=self.db_user,
            password=self.db_password or None,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        )
        return url.render_as_string(hide_password=False)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
