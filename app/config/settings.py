"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

import re
from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.config.constants import (
    DEFAULT_LEADERBOARD_TOP_N,
    DEFAULT_MONTH_KEY_TIMEZONE,
    LEADERBOARD_TOP_N_MAX,
    LEADERBOARD_TOP_N_MIN,
    MONTH_KEY_PATTERN,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Discord Bot
    discord_bot_token: str

    # Database
    database_url: str
    database_echo: bool = False

    # Redis (display name cache)
    redis_enabled: bool = False
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    health_check_port: int = Field(
        default=8080, ge=1, le=65535, description="Health check HTTP server port"
    )

    # Affiliate program
    affiliate_guild_id: int | None = None
    affiliate_channel_id: int | None = None
    affiliate_info_channel_id: int | None = None
    affiliate_info_pin_message: bool = True

    # Leaderboards
    leaderboard_channel_id: int | None = None
    winners_channel_id: int | None = None
    info_channel_id: int | None = None
    info_pin_message: bool = True
    leaderboard_top_n: int = DEFAULT_LEADERBOARD_TOP_N
    referral_fee_eur: Decimal = Field(
        default=Decimal("5"),
        ge=0,
        description="Reward per qualified referral (EUR)"
    )

    # Launch carryover
    affiliate_launch_at: datetime | None = Field(
        default=None,
        description="Exact program launch instant, e.g. 2026-01-28T00:00:00+01:00"
    )
    affiliate_carryover_to_month: str | None = Field(
        default=None,
        description="First official month (YYYY-MM) that absorbs post-launch joins"
    )
    month_key_timezone: str = DEFAULT_MONTH_KEY_TIMEZONE

    # Timing
    invite_refresh_interval_seconds: int = Field(
        default=60, ge=5, description="Periodic invite snapshot refresh interval"
    )
    leaderboard_tick_minutes: int = Field(
        default=10, ge=1, description="Leaderboard tick interval in minutes"
    )
    platform_fetch_timeout: float = Field(
        default=10.0, gt=0, description="Timeout for platform API calls in seconds"
    )
    display_name_cache_ttl: int = Field(
        default=3600, ge=0, description="Display name cache TTL in seconds"
    )

    # Members backfill
    affiliate_backfill_members: bool = False
    backfill_batch_size: int = 10
    backfill_delay_ms: int = Field(default=250, ge=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("leaderboard_top_n")
    @classmethod
    def clamp_top_n(cls, v: int) -> int:
        """Clamp leaderboard size to the supported range."""
        return max(LEADERBOARD_TOP_N_MIN, min(LEADERBOARD_TOP_N_MAX, v))

    @field_validator("backfill_batch_size")
    @classmethod
    def clamp_batch_size(cls, v: int) -> int:
        """Record store batch writes accept at most 10 rows."""
        return max(1, min(10, v))

    @field_validator("affiliate_carryover_to_month")
    @classmethod
    def validate_carryover_month(cls, v: str | None) -> str | None:
        """Validate carryover month key format."""
        if v is None:
            return None
        v = v.strip()
        if not v:
            return None
        if not re.match(MONTH_KEY_PATTERN, v):
            raise ValueError(
                f"AFFILIATE_CARRYOVER_TO_MONTH must be YYYY-MM, got: {v}"
            )
        return v

    @field_validator("affiliate_launch_at")
    @classmethod
    def validate_launch_at(cls, v: datetime | None) -> datetime | None:
        """Launch instant must carry an explicit UTC offset."""
        if v is not None and v.tzinfo is None:
            raise ValueError(
                "AFFILIATE_LAUNCH_AT must include a UTC offset, "
                "e.g. 2026-01-28T00:00:00+01:00"
            )
        return v

    @field_validator("month_key_timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate IANA timezone name."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {v}") from exc
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(("postgresql://", "postgresql+asyncpg://")):
            raise ValueError(
                "DATABASE_URL must start with postgresql:// or postgresql+asyncpg://"
            )
        return v

    @model_validator(mode="after")
    def validate_carryover_pair(self) -> "Settings":
        """Carryover needs both the launch instant and the target month."""
        if bool(self.affiliate_launch_at) != bool(self.affiliate_carryover_to_month):
            logger.warning(
                "Carryover is disabled: set both AFFILIATE_LAUNCH_AT and "
                "AFFILIATE_CARRYOVER_TO_MONTH to enable it"
            )
        return self

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Validate production-specific requirements."""
        if self.environment == "production":
            if self.debug:
                raise ValueError(
                    "DEBUG must be False in production environment. "
                    "Set DEBUG=false in your .env file."
                )
            if not self.affiliate_guild_id:
                logger.warning(
                    "AFFILIATE_GUILD_ID is not set: invite tracking will run "
                    "for every guild the bot is in"
                )
        return self

    @property
    def carryover_enabled(self) -> bool:
        """True when both carryover settings are present."""
        return bool(self.affiliate_launch_at and self.affiliate_carryover_to_month)

    @property
    def leaderboards_enabled(self) -> bool:
        """Leaderboards need both the live and the winners channel."""
        return bool(self.leaderboard_channel_id and self.winners_channel_id)

    def guild_allowed(self, guild_id: int) -> bool:
        """Check whether events from this guild should be processed."""
        if not self.affiliate_guild_id:
            return True
        return int(guild_id) == int(self.affiliate_guild_id)


# Global settings instance
settings = Settings()
