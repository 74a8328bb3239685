import json
from typing import Annotated, Any

from pydantic import BaseModel, Field, computed_field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class RecoveryInterval(BaseModel):
    """One step of the cart recovery schedule: offset from abandonment and default channels."""

    hours: float
    channels: list[str]


DEFAULT_RECOVERY_SCHEDULE = [
    RecoveryInterval(hours=1, channels=["whatsapp"]),
    RecoveryInterval(hours=24, channels=["email", "whatsapp"]),
    RecoveryInterval(hours=72, channels=["email"]),
]


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables (and `.env`).
    """

    PROJECT_NAME: str = "Retention Engine"
    VERSION: str = "0.1.0"

    # PostgreSQL Database Settings
    DB_HOST: str = Field("localhost", description="PostgreSQL host")
    DB_PORT: int = Field(5432, description="PostgreSQL port")
    DB_NAME: str = Field("retention", description="Database name")
    DB_USER: str = Field("postgres", description="Database user")
    DB_PASSWORD: str | None = Field(None, description="Database password")
    DB_ECHO: bool = Field(False, description="Log SQL queries (debug only)")

    # Database connection pool settings
    DB_POOL_SIZE: int = Field(20, description="Connection pool size")
    DB_MAX_OVERFLOW: int = Field(30, description="Maximum pool overflow")
    DB_POOL_RECYCLE: int = Field(3600, description="Recycle connections every N seconds")
    DB_POOL_TIMEOUT: int = Field(30, description="Timeout to obtain a pooled connection")

    # Redis Settings
    REDIS_HOST: str = Field("localhost", description="Redis host")
    REDIS_PORT: int = Field(6379, description="Redis port")
    REDIS_DB: int = Field(0, description="Redis database")
    REDIS_PASSWORD: str | None = Field(None, description="Redis password")
    CACHE_BACKEND: str = Field("redis", description="Cache backend: 'redis' or 'in_memory'")
    CACHE_KEY_PREFIX: str = Field("", description="Optional prefix for every cache key")

    # Segmentation
    SEGMENT_CACHE_TTL: int = Field(3600, description="TTL for cached segment classifications (seconds)")

    # Sales analytics
    REALTIME_WINDOW_SECONDS: int = Field(300, description="Trailing window for real-time sales stats")
    ANALYTICS_CACHE_TTL: int = Field(3600, description="TTL for cached analytics reports (seconds)")
    ANALYTICS_BROADCAST_INTERVAL_SECONDS: float = Field(5.0, description="Real-time stats broadcast interval")

    # Cart recovery
    CART_ABANDONMENT_THRESHOLD_MINUTES: int = Field(30, description="Inactivity before a cart is abandoned")
    CART_SWEEP_INTERVAL_SECONDS: float = Field(300.0, description="Interval between abandonment sweeps")
    RECOVERY_PLAN_TTL_SECONDS: int = Field(7 * 24 * 60 * 60, description="TTL for persisted recovery plans")
    RECOVERY_SCHEDULE: Annotated[list[RecoveryInterval], NoDecode] = Field(
        default_factory=lambda: [interval.model_copy(deep=True) for interval in DEFAULT_RECOVERY_SCHEDULE],
        description="Recovery attempt offsets (hours after abandonment) and their default channels",
    )
    RECOVERY_HIGH_VALUE_CART_THRESHOLD: float = Field(
        1000.0, description="Cart value above which WhatsApp is allowed regardless of segments"
    )
    RECOVERY_JOB_POLL_SECONDS: float = Field(15.0, description="Interval between recovery job polls")
    RECOVERY_JOB_LEASE_SECONDS: int = Field(300, description="Lease held by a worker executing a recovery job")
    FRONTEND_URL: str = Field("http://localhost:3000", description="Base URL for cart recovery links")
    RECOVERY_TOKEN_SECRET: str = Field("change-me", description="Secret used to sign recovery link tokens")
    RECOVERY_TOKEN_EXPIRE_DAYS: int = Field(7, description="Validity of recovery link tokens in days")

    # Messaging collaborators
    MESSAGE_DISPATCH_URL: str = Field("http://localhost:8080/api/v1/messages", description="Message dispatch API")
    MESSAGE_DISPATCH_API_KEY: str | None = Field(None, description="API key for the message dispatch service")
    MESSAGE_DISPATCH_TIMEOUT: float = Field(10.0, description="Dispatch request timeout in seconds")
    NOTIFICATION_CHANNEL_PREFIX: str = Field("retention", description="Prefix for notification bus channels")

    # Application Settings
    DEBUG: bool = Field(False, description="Debug mode")
    ENVIRONMENT: str = Field("production", description="Runtime environment")
    LOG_LEVEL: str = Field("INFO", description="Root log level")
    LOG_FORMAT: str = Field("colored", description="Log format: colored, json or plain")
    LOG_FILE: str | None = Field(None, description="Optional JSON log file")
    BACKGROUND_SERVICES_ENABLED: bool = Field(True, description="Run sweep, job poller and broadcast loops")

    # Sentry Configuration
    SENTRY_DSN: str | None = Field(None, description="Sentry DSN for error tracking")

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def __init__(self, **data: Any):
        super().__init__(**data)

    @field_validator("CACHE_BACKEND")
    @classmethod
    def validate_cache_backend(cls, v):
        if v not in ("redis", "in_memory"):
            raise ValueError("CACHE_BACKEND must be 'redis' or 'in_memory'")
        return v

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v):
        if v not in ("colored", "json", "plain"):
            raise ValueError("LOG_FORMAT must be 'colored', 'json' or 'plain'")
        return v

    @field_validator("RECOVERY_SCHEDULE", mode="before")
    @classmethod
    def parse_recovery_schedule(cls, value):
        """Parse RECOVERY_SCHEDULE from a JSON array or '1:whatsapp;24:email+whatsapp' string."""
        if isinstance(value, str):
            value = value.strip()
            if value.startswith("["):
                return json.loads(value)
            intervals = []
            for chunk in value.split(";"):
                if not chunk.strip():
                    continue
                hours, _, channels = chunk.partition(":")
                intervals.append(
                    {
                        "hours": float(hours),
                        "channels": [c.strip() for c in channels.split("+") if c.strip()],
                    }
                )
            return intervals
        return value

    @field_validator("RECOVERY_SCHEDULE")
    @classmethod
    def validate_recovery_schedule(cls, v):
        previous = -1.0
        for interval in v:
            if interval.hours < 0:
                raise ValueError("Recovery offsets must be non-negative")
            if interval.hours <= previous:
                raise ValueError("Recovery offsets must be strictly increasing")
            if not interval.channels:
                raise ValueError("Every recovery interval needs at least one channel")
            previous = interval.hours
        return v

    @field_validator("DB_POOL_SIZE")
    @classmethod
    def validate_pool_size(cls, v):
        if v < 1:
            raise ValueError("DB_POOL_SIZE must be at least 1")
        if v > 100:
            raise ValueError("DB_POOL_SIZE should not exceed 100")
        return v

    @computed_field
    @property
    def redis_url(self) -> str:
        """Redis connection URL."""
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @computed_field
    @property
    def is_development(self) -> bool:
        """Whether the process runs in a development environment."""
        return self.DEBUG or self.ENVIRONMENT.lower() in ["development", "dev", "local"]


# Settings singleton
_settings_instance = None


def get_settings() -> Settings:
    """
    Return the cached settings instance.
    Avoids reading the environment more than once per process.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
