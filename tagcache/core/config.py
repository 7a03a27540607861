"""
tagcache Configuration

Configuration management with environment variable support.
Implements secure defaults and validation for all settings.
"""

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..constants import DEFAULT_EXPIRY_MINUTES, KEY_TAGS_PREFIX, TAG_PREFIX

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Cache settings with validation and secure defaults."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    # Environment settings
    ENVIRONMENT: str = Field(
        default="development", description="Application environment"
    )

    # Redis configuration
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0", description="Redis connection URL"
    )
    REDIS_MAX_CONNECTIONS: int = Field(
        default=10, ge=1, le=50, description="Redis connection pool size"
    )
    REDIS_CONNECTION_TIMEOUT: float = Field(
        default=5.0, gt=0, le=60, description="Socket connect timeout in seconds"
    )
    REDIS_OPERATION_TIMEOUT: float = Field(
        default=5.0, gt=0, le=60, description="Socket read/write timeout in seconds"
    )
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(
        default=30, ge=0, le=3600, description="Idle connection health check interval"
    )

    # Cache behaviour
    CACHE_DEFAULT_EXPIRY_MINUTES: int = Field(
        default=DEFAULT_EXPIRY_MINUTES,
        ge=1,
        le=60 * 24 * 365,
        description="Expiry applied when a value is cached without one",
    )
    CACHE_TAG_PREFIX: str = Field(
        default=TAG_PREFIX, description="Prefix of tag -> keys member-sets"
    )
    CACHE_KEY_TAGS_PREFIX: str = Field(
        default=KEY_TAGS_PREFIX, description="Prefix of key -> tags index records"
    )

    # Tag index pruning
    TAG_PRUNE_ENABLED: bool = Field(
        default=False, description="Run periodic pruning of stale tag references"
    )
    TAG_PRUNE_INTERVAL_SECONDS: int = Field(
        default=3600, ge=10, le=86400, description="Seconds between pruning passes"
    )
    TAG_PRUNE_SCAN_COUNT: int = Field(
        default=100, ge=1, le=10000, description="SCAN COUNT hint while listing tags"
    )

    # Circuit breaker settings
    CIRCUIT_BREAKER_ENABLED: bool = Field(
        default=True, description="Fail fast after repeated Redis failures"
    )
    CIRCUIT_BREAKER_FAILURE_THRESHOLD: int = Field(
        default=5, ge=1, le=20, description="Circuit breaker failure threshold"
    )
    CIRCUIT_BREAKER_RECOVERY_TIMEOUT: int = Field(
        default=60,
        ge=1,
        le=300,
        description="Circuit breaker recovery timeout in seconds",
    )

    # Observability
    METRICS_ENABLED: bool = Field(
        default=True, description="Record prometheus metrics for cache operations"
    )
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_JSON: bool = Field(default=False, description="Render logs as JSON")

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment value."""
        allowed = ["development", "test", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"ENVIRONMENT must be one of: {allowed}")
        return v

    @field_validator("REDIS_URL")
    @classmethod
    def validate_redis_url(cls, v):
        """Validate Redis URL scheme."""
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("REDIS_URL must be a redis://, rediss:// or unix:// URL")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of: {allowed}")
        return v.upper()

    @field_validator("CACHE_TAG_PREFIX", "CACHE_KEY_TAGS_PREFIX")
    @classmethod
    def validate_prefix(cls, v):
        if not v or any(char.isspace() for char in v):
            raise ValueError("Cache index prefixes must be non-empty without whitespace")
        return v

    @model_validator(mode="after")
    def validate_distinct_prefixes(self) -> "Settings":
        """Tag and key-tag records must live in separate keyspaces."""
        tag_prefix = self.CACHE_TAG_PREFIX
        key_tags_prefix = self.CACHE_KEY_TAGS_PREFIX
        if tag_prefix.startswith(key_tags_prefix) or key_tags_prefix.startswith(
            tag_prefix
        ):
            raise ValueError(
                "CACHE_TAG_PREFIX and CACHE_KEY_TAGS_PREFIX must not overlap"
            )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def default_expiry_seconds(self) -> int:
        return self.CACHE_DEFAULT_EXPIRY_MINUTES * 60


@lru_cache()
def get_settings(env_file: Optional[str] = ".env") -> Settings:
    """Get cached settings instance."""
    return Settings(_env_file=env_file)
