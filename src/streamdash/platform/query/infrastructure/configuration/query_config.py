"""Query client configuration.

ONLY query client configuration - collects client defaults from settings
and validates them.

Following maximum separation architecture - one file = one purpose.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .....config.settings import StreamdashSettings, get_settings
from ...core.value_objects.query_options import QueryOptions


@dataclass
class QueryClientConfig:
    """Query client configuration.

    Default options apply to definitions that declare no options of their
    own; gc_time_ms is the cache-wide eviction default for entries created
    without options.
    """

    default_options: QueryOptions = field(default_factory=QueryOptions)
    gc_time_ms: Optional[float] = None

    # Transport settings
    api_base_url: str = "http://localhost:8080/api"
    request_timeout_seconds: float = 30.0
    user_agent: str = "streamdash/1.0"

    def __post_init__(self):
        """Validate configuration values."""
        if self.request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be positive")

        if self.gc_time_ms is not None and self.gc_time_ms < 0:
            raise ValueError("gc_time_ms must be non-negative")

        if not self.api_base_url:
            raise ValueError("api_base_url cannot be empty")

        self.api_base_url = self.api_base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Optional[StreamdashSettings] = None) -> "QueryClientConfig":
        """Create configuration from StreamdashSettings (environment by default)."""
        settings = settings or get_settings()
        return cls(
            default_options=QueryOptions.from_settings(settings),
            gc_time_ms=settings.gc_time_ms,
            api_base_url=settings.api_base_url,
            request_timeout_seconds=settings.request_timeout_seconds,
            user_agent=settings.user_agent,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for logging."""
        options = self.default_options
        return {
            "api_base_url": self.api_base_url,
            "request_timeout_seconds": self.request_timeout_seconds,
            "user_agent": self.user_agent,
            "gc_time_ms": self.gc_time_ms,
            "default_options": {
                "stale_time_ms": options.stale_time_ms,
                "refetch_interval_ms": options.refetch_interval_ms,
                "retry": options.retry,
                "retry_delay_ms": options.retry_delay_ms,
                "gc_time_ms": options.gc_time_ms,
            },
        }
