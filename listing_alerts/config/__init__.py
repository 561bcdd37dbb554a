"""Configuration management for the listing alert engine."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, parse_config_dict, validate_config_file
from .models import (
    AppConfig,
    DeliveryConfig,
    DigestConfig,
    EmailConfig,
    LinksConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
)

__all__ = [
    # Loader functions
    "load_config",
    "parse_config_dict",
    "validate_config_file",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "DigestConfig",
    "EmailConfig",
    "DeliveryConfig",
    "LinksConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    # Enums
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]
