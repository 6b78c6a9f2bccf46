"""Configuration for streamdash: settings and logging."""

from .logging_config import LoggingConfig, LogFormat, LogLevel, LogVerbosity, setup_logging
from .settings import StreamdashSettings, get_settings

__all__ = [
    "LoggingConfig",
    "LogFormat",
    "LogLevel",
    "LogVerbosity",
    "setup_logging",
    "StreamdashSettings",
    "get_settings",
]
