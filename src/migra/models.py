"""Shared types for migra.

Services and tenants are the inputs to every run; operation, service and
status results are what adapters and engines hand back.

Key Concepts:
    Service: A deployable unit with its own migration history, identified
        by a unique name and handled by the adapter named in ``type``.
    Tenant: An isolated customer scope. ``connection`` is overlaid onto the
        adapter subprocess environment (typically ``DATABASE_URL``).
    Operation: deploy, rollback or status.
    OperationResult: Raw outcome of one adapter invocation.
    ServiceResult: Engine-level outcome for one service, the unit callers
        summarise.

Architecture Decisions:
    - Pydantic v2 for Service/Tenant: they are built from YAML, JSON and
      command output, so validation lives with the type.
    - Dataclasses for results: created in hot paths, never parsed.

Related Modules:
    - :mod:`migra.engine`: produces ServiceResult lists
    - :mod:`migra.tenant`: produces TenantResult lists
    - :mod:`migra.adapters`: produces OperationResult / StatusResult

Tags:
    models, pydantic, dataclass, results
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


class Operation(str, Enum):
    """Migration operation requested by the caller."""

    DEPLOY = "deploy"
    ROLLBACK = "rollback"
    STATUS = "status"


class Service(BaseModel):
    """A deployable unit with its own migration history."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Unique service name")
    type: str = Field(description="Adapter type: django, laravel or prisma")
    path: str = Field(description="Project root of the service")
    working_dir: str = Field(
        default="",
        description="Directory the migration tool runs in (defaults to path)",
    )
    env: dict[str, str] = Field(
        default_factory=dict,
        description="Extra environment variables for the migration tool",
    )

    @model_validator(mode="before")
    @classmethod
    def _default_working_dir(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("working_dir"):
            data = {**data, "working_dir": data.get("path", "")}
        if isinstance(data, dict) and data.get("env") is None:
            data = {**data, "env": {}}
        return data


class Tenant(BaseModel):
    """An isolated customer scope with its own connection parameters."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Tenant identifier")
    connection: dict[str, str] = Field(
        default_factory=dict,
        description="Environment overlay for this tenant (e.g. DATABASE_URL)",
    )

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("tenant id must not be empty")
        return value

    @field_validator("connection", mode="before")
    @classmethod
    def _connection_none_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class OperationResult:
    """Outcome of a single adapter invocation."""

    success: bool
    output: str = ""
    error: str = ""
    duration: float = 0.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class StatusResult:
    """Applied and pending migrations as reported by the framework tool."""

    applied: list[str] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)
    last_error: str = ""

    def summary(self) -> str:
        return f"Applied: {len(self.applied)}, Pending: {len(self.pending)}"


@dataclass
class ServiceResult:
    """Engine-level outcome for one service."""

    service_name: str
    success: bool
    duration: float = 0.0
    error: str = ""
    output: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "service": self.service_name,
            "success": self.success,
            "duration_seconds": round(self.duration, 3),
            "error": self.error or None,
            "output": self.output,
        }


__all__ = [
    "Operation",
    "Service",
    "Tenant",
    "OperationResult",
    "StatusResult",
    "ServiceResult",
]
