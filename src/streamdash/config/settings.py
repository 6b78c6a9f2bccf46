"""
Settings for streamdash.
Provides the environment-driven configuration of the stream admin data layer
using Pydantic settings.
"""
import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class StreamdashSettings(BaseSettings):
    """
    Configuration of the transport, the query defaults and the stream views.

    Every field can be overridden through a ``STREAMDASH_``-prefixed
    environment variable or a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="STREAMDASH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True
    )

    # Transport configuration
    api_base_url: str = Field(
        default="http://localhost:8080/api",
        description="Base URL of the stream service API"
    )
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    user_agent: str = Field(default="streamdash/1.0")

    # Query defaults
    default_stale_time_ms: int = Field(default=0, ge=0)
    default_refetch_interval_ms: Optional[int] = Field(default=None, ge=0)
    default_retry: int = Field(default=0, ge=0)
    retry_delay_ms: int = Field(default=1000, ge=0)
    gc_time_ms: Optional[int] = Field(default=None, ge=0)

    # Stream views
    streams_stale_time_ms: int = Field(default=30_000, ge=0)
    stream_stale_time_ms: int = Field(default=30_000, ge=0)
    messages_stale_time_ms: int = Field(default=10_000, ge=0)
    messages_refetch_interval_ms: Optional[int] = Field(default=15_000, ge=0)
    messages_limit: int = Field(default=40, gt=0)

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so paths can be appended directly."""
        v = v.strip()
        if not v:
            raise ValueError("api_base_url cannot be empty")
        return v.rstrip("/")


@lru_cache()
def get_settings() -> StreamdashSettings:
    """Get cached settings instance."""
    settings = StreamdashSettings()
    logger.debug("Loaded settings for %s", settings.api_base_url)
    return settings
