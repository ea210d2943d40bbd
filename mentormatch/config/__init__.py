"""Configuration management for the matching engine."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config
from .models import (
    AppConfig,
    EmailConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    MatchingConfig,
    RegenerationConfig,
)

__all__ = [
    "load_config",
    "load_environment_config",
    "AppConfig",
    "MatchingConfig",
    "RegenerationConfig",
    "EmailConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    "LogLevel",
    "LogFormat",
    "ConfigurationError",
]
