"""Centralized logging configuration for streamdash.

Provides consistent, configurable logging for the data-synchronization core
and the stream admin layer with environment-based control over verbosity,
log levels and output format.
"""

import logging
import logging.config
import os
from enum import Enum


class LogLevel(str, Enum):
    """Supported log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogVerbosity(str, Enum):
    """Log verbosity modes."""
    QUIET = "QUIET"      # Only errors and critical
    NORMAL = "NORMAL"    # Standard logging (warnings and above)
    VERBOSE = "VERBOSE"  # Info level logging
    DEBUG = "DEBUG"      # Full debug logging


class LogFormat(str, Enum):
    """Log format options."""
    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"


FORMAT_STRINGS = {
    LogFormat.SIMPLE: "%(asctime)s - %(levelname)s - %(message)s",
    LogFormat.DETAILED: "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
    LogFormat.JSON: '{"time":"%(asctime)s","level":"%(levelname)s","module":"%(name)s","message":"%(message)s"}',
}


def get_log_level_from_verbosity(verbosity: str) -> str:
    """Map verbosity mode to log level."""
    verbosity_map = {
        LogVerbosity.QUIET: LogLevel.ERROR.value,
        LogVerbosity.NORMAL: LogLevel.WARNING.value,
        LogVerbosity.VERBOSE: LogLevel.INFO.value,
        LogVerbosity.DEBUG: LogLevel.DEBUG.value,
    }
    try:
        return verbosity_map[LogVerbosity(verbosity.upper())]
    except ValueError:
        return LogLevel.WARNING.value


class LoggingConfig:
    """Centralized logging configuration manager."""

    ENV_PREFIX = "STREAMDASH"

    # Modules that should only log errors
    ERROR_ONLY_MODULES = [
        "aiohttp",
        "asyncio",
    ]

    # Chatty modules kept at WARNING unless full debug logging is requested
    DEFAULT_QUIET_MODULES = [
        "streamdash.platform.query.application.services.query_cache",
    ]

    @classmethod
    def configure(cls) -> None:
        """Configure logging based on environment variables."""
        log_level = os.getenv(f"{cls.ENV_PREFIX}_LOG_LEVEL")
        log_verbosity = os.getenv(f"{cls.ENV_PREFIX}_LOG_VERBOSITY", LogVerbosity.NORMAL.value)
        log_format = os.getenv(f"{cls.ENV_PREFIX}_LOG_FORMAT", LogFormat.SIMPLE.value).lower()

        # An explicit level wins over the verbosity mode
        if log_level and log_level.upper() in LogLevel.__members__:
            effective_log_level = log_level.upper()
        else:
            effective_log_level = get_log_level_from_verbosity(log_verbosity)

        try:
            format_string = FORMAT_STRINGS[LogFormat(log_format)]
        except ValueError:
            format_string = FORMAT_STRINGS[LogFormat.SIMPLE]

        logging_config = {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": format_string,
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": effective_log_level,
                    "formatter": "default",
                    "stream": "ext://sys.stdout",
                },
            },
            "root": {
                "level": effective_log_level,
                "handlers": ["console"],
            },
            "loggers": {
                "streamdash": {
                    "level": effective_log_level,
                },
            },
        }

        for module in cls.DEFAULT_QUIET_MODULES:
            logging_config["loggers"][module] = {
                "level": "WARNING" if effective_log_level != "DEBUG" else "DEBUG",
            }

        for module in cls.ERROR_ONLY_MODULES:
            logging_config["loggers"][module] = {
                "level": "ERROR",
            }

        logging.config.dictConfig(logging_config)

        logger = logging.getLogger(__name__)
        if effective_log_level == "DEBUG":
            logger.debug(f"Logging configured: level={effective_log_level}, format={log_format}")

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get a configured logger for the given module name."""
        return logging.getLogger(name)

    @classmethod
    def set_module_level(cls, module_name: str, level: str) -> None:
        """Set log level for a specific module.

        Args:
            module_name: Name of the module
            level: Log level to set
        """
        logger = logging.getLogger(module_name)
        logger.setLevel(getattr(logging, level.upper()))

    @classmethod
    def silence_module(cls, module_name: str) -> None:
        """Silence all logging from a module."""
        cls.set_module_level(module_name, "CRITICAL")


def setup_logging() -> None:
    """Setup logging configuration from environment variables.

    This is the main entry point for configuring logging in the application.
    It should be called once at application startup.
    """
    LoggingConfig.configure()
