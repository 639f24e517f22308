"""Configuration models for ``migra.yaml``.

Example::

    services:
      - name: accounts
        type: django
        path: ./services/accounts
      - name: billing
        type: laravel
        path: ./services/billing
        env: {APP_ENV: production}
    execution:
      strategy: parallel
      stop_on_failure: true
      parallel_limit: 4
    tenancy:
      enabled: true
      tenant_source: file
      max_parallel: 10
    logging:
      level: info
      format: console
    global_env:
      DJANGO_SETTINGS_MODULE: config.settings.prod

Models here only check shapes and types. Semantic checks (supported
adapter types, limits, existing paths) belong to
:mod:`migra.config.validator`, which reports every problem at once.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from migra.models import Service

STRATEGY_SEQUENTIAL = "sequential"
STRATEGY_PARALLEL = "parallel"
STRATEGIES = (STRATEGY_SEQUENTIAL, STRATEGY_PARALLEL)

TENANCY_MODES = ("database_per_tenant", "schema_per_tenant")
TENANT_SOURCES = ("env", "file", "command")
LOG_LEVELS = ("debug", "info", "warn", "error")
LOG_FORMATS = ("console", "json")

DEFAULT_PARALLEL_LIMIT = 5


class _Section(BaseModel):
    model_config = ConfigDict(extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _null_is_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            field = cls.model_fields[info.field_name]
            return field.get_default(call_default_factory=True)
        return value


class ServiceConfig(_Section):
    """One ``services[]`` entry as written in the file."""

    name: str = ""
    type: str = ""
    path: str = ""
    working_dir: str = ""
    env: dict[str, str] = Field(default_factory=dict)

    def to_service(self) -> Service:
        return Service(
            name=self.name,
            type=self.type,
            path=self.path,
            working_dir=self.working_dir or self.path,
            env=dict(self.env),
        )


class DiscoveryConfig(_Section):
    enabled: bool = False
    root: str = ""


class ExecutionConfig(_Section):
    strategy: str = STRATEGY_SEQUENTIAL
    stop_on_failure: bool = True
    parallel_limit: int = 0


class TenancyConfig(_Section):
    enabled: bool = False
    mode: str = ""
    tenant_source: str = ""
    stop_on_failure: bool = False
    max_parallel: int = 0


class LoggingConfig(_Section):
    level: str = ""
    format: str = ""
    file: str | None = None


class MigraConfig(_Section):
    """Root of ``migra.yaml``."""

    services: list[ServiceConfig] = Field(default_factory=list)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    tenancy: TenancyConfig = Field(default_factory=TenancyConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    global_env: dict[str, str] = Field(default_factory=dict)
    parallel_limit: int = 0

    def to_services(self) -> list[Service]:
        return [entry.to_service() for entry in self.services]

    def effective_parallel_limit(self) -> int:
        """``execution.parallel_limit``, then top-level ``parallel_limit``, then 5."""
        return self.execution.parallel_limit or self.parallel_limit or DEFAULT_PARALLEL_LIMIT


__all__ = [
    "STRATEGY_SEQUENTIAL",
    "STRATEGY_PARALLEL",
    "STRATEGIES",
    "TENANCY_MODES",
    "TENANT_SOURCES",
    "LOG_LEVELS",
    "LOG_FORMATS",
    "DEFAULT_PARALLEL_LIMIT",
    "ServiceConfig",
    "DiscoveryConfig",
    "ExecutionConfig",
    "TenancyConfig",
    "LoggingConfig",
    "MigraConfig",
]
