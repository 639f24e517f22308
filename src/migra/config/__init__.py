"""Configuration: ``migra.yaml`` models, loading, discovery, validation and env settings."""

from migra.config.discovery import detect_framework, discover_services
from migra.config.loader import DEFAULT_CONFIG_FILE, ConfigLoader, apply_defaults, load_config
from migra.config.models import (
    DiscoveryConfig,
    ExecutionConfig,
    LoggingConfig,
    MigraConfig,
    ServiceConfig,
    TenancyConfig,
)
from migra.config.settings import MigraSettings
from migra.config.validator import ConfigValidator, validate_config

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "ConfigLoader",
    "ConfigValidator",
    "DiscoveryConfig",
    "ExecutionConfig",
    "LoggingConfig",
    "MigraConfig",
    "MigraSettings",
    "ServiceConfig",
    "TenancyConfig",
    "apply_defaults",
    "detect_framework",
    "discover_services",
    "load_config",
    "validate_config",
]
