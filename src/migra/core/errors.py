"""
Structured error types for migra.

Every failure the orchestrator can produce is expressed as a MigraError
subclass carrying a category, an explicit retryable flag, structured context
(service, tenant, operation, adapter) and the chained cause. Nothing in migra
retries automatically; the retryable flag exists so callers and operators can
tell transient adapter failures apart from configuration mistakes.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                         MigraError                          │
        │        (category, retryable, context, cause)                │
        ├─────────────────────────────────────────────────────────────┤
        │  ConfigError          AdapterError        TenantSourceError │
        │  (CONFIG)             (ADAPTER, retry)    (TENANT)          │
        │     │                     │                                 │
        │  MissingConfigError   UnsupportedOperationError             │
        │  InvalidConfigError                                         │
        │  AdapterNotFoundError StateError (STORAGE)                  │
        │                          │                                  │
        │                       StateLoadError  StateSaveError        │
        └─────────────────────────────────────────────────────────────┘

Propagation:
    - Config and resolution errors fail fast (or become a recorded failure
      result when they happen per service).
    - Adapter errors never escape an engine; they become failure results.
    - State errors surface from load/save; the CLI degrades to in-memory
      state with a warning.

Examples:
    >>> err = AdapterError("migrate exited 1").with_context(service="api")
    >>> err.retryable
    True
    >>> err.context.service
    'api'

Tags:
    error-handling, exception-hierarchy, error-context, migra
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and reporting.

    Attributes:
        CONFIG: Missing or invalid configuration, unknown adapter type
        ADAPTER: Failure while invoking a framework migration tool
        TENANT: Tenant list could not be loaded or is malformed
        STORAGE: State file could not be read or written
        INTERNAL: Bugs, unexpected state
        UNKNOWN: Uncategorized errors
    """

    CONFIG = "CONFIG"
    ADAPTER = "ADAPTER"
    TENANT = "TENANT"
    STORAGE = "STORAGE"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only fields that are set appear in ``to_dict()``; anything that has no
    dedicated field goes in ``metadata``.

    Attributes:
        service: Service name the failure belongs to
        tenant: Tenant id, when running per tenant
        operation: deploy, rollback or status
        adapter: Adapter type that was resolved or requested
        metadata: Additional key-value pairs
    """

    service: str | None = None
    tenant: str | None = None
    operation: str | None = None
    adapter: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["service", "tenant", "operation", "adapter"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class MigraError(Exception):
    """
    Base exception for all migra errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers may
    override either per instance. When ``cause`` is given it is also set as
    ``__cause__`` so tracebacks show the chain.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> MigraError:
        """
        Add context to this error (fluent API).

        Usage:
            raise AdapterError("migrate failed").with_context(
                service="billing", operation="deploy"
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(MigraError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingConfigError(ConfigError):
    """Configuration file or required key is missing."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class InvalidConfigError(ConfigError):
    """Configuration failed validation; ``errors`` lists every problem found."""

    def __init__(self, errors: list[str], message: str | None = None):
        self.errors = list(errors)
        summary = message or "configuration validation failed:\n  - " + "\n  - ".join(self.errors)
        super().__init__(summary)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["errors"] = self.errors
        return result


class AdapterNotFoundError(ConfigError):
    """No adapter is registered for the requested type."""

    def __init__(self, adapter_type: str):
        self.adapter_type = adapter_type
        super().__init__(f"adapter '{adapter_type}' not found")
        self.context.adapter = adapter_type


# =============================================================================
# ADAPTER ERRORS
# =============================================================================


class AdapterError(MigraError):
    """
    Failure while invoking a framework's migration tooling.

    Retryable by default: a crashed process or a locked database may well
    succeed on a later run. migra itself never retries.
    """

    default_category = ErrorCategory.ADAPTER
    default_retryable = True


class UnsupportedOperationError(AdapterError):
    """The adapter cannot perform the requested operation (e.g. Prisma rollback)."""

    default_retryable = False


# =============================================================================
# TENANT / STATE ERRORS
# =============================================================================


class TenantSourceError(MigraError):
    """Tenant list could not be loaded, or is empty or malformed."""

    default_category = ErrorCategory.TENANT
    default_retryable = False


class StateError(MigraError):
    """Execution state could not be read or written."""

    default_category = ErrorCategory.STORAGE
    default_retryable = False


class StateLoadError(StateError):
    """State file exists but cannot be parsed."""

    pass


class StateSaveError(StateError):
    """State file could not be written or atomically replaced."""

    pass


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, MigraError):
        return error.retryable
    return False


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, MigraError):
        return error.category
    if isinstance(error, (FileNotFoundError, PermissionError)):
        return ErrorCategory.STORAGE
    if isinstance(error, (KeyError, ValueError)):
        return ErrorCategory.CONFIG
    return ErrorCategory.UNKNOWN


__all__ = [
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
]
