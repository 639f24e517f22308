"""
Core primitives shared by every migra component: typed errors, structured
logging and cooperative cancellation.
"""

from migra.core.cancellation import CancellationToken
from migra.core.errors import (
    AdapterError,
    AdapterNotFoundError,
    ConfigError,
    ErrorCategory,
    ErrorContext,
    InvalidConfigError,
    MigraError,
    MissingConfigError,
    StateError,
    StateLoadError,
    StateSaveError,
    TenantSourceError,
    UnsupportedOperationError,
    categorize_error,
    is_retryable,
)
from migra.core.logging import LogContext, configure_logging, get_logger

__all__ = [
    "CancellationToken",
    "ErrorCategory",
    "ErrorContext",
    "MigraError",
    "ConfigError",
    "MissingConfigError",
    "InvalidConfigError",
    "AdapterNotFoundError",
    "AdapterError",
    "UnsupportedOperationError",
    "TenantSourceError",
    "StateError",
    "StateLoadError",
    "StateSaveError",
    "is_retryable",
    "categorize_error",
    "LogContext",
    "configure_logging",
    "get_logger",
]
