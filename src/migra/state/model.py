"""Persisted execution state.

The on-disk document (``.migra/state.json``)::

    {
      "last_execution": "2026-01-05T10:00:00+00:00",
      "version": "1.0",
      "services": {
        "billing": {"last_run": "...", "last_result": "success", "last_error": "",
                    "success_count": 3, "failure_count": 1, "last_duration": "1.5s"}
      },
      "tenants": {
        "acme": {"last_run": "...", "success_count": 2, "failure_count": 0,
                 "services": {"billing": {...}}}
      }
    }

Durations are stored as short human-readable strings (``350ms``, ``1.5s``,
``2m3.5s``) so the file stays readable; ``parse_duration`` reverses them.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

STATE_VERSION = "1.0"

_NS_PER_US = 1_000
_NS_PER_MS = 1_000_000
_NS_PER_S = 1_000_000_000
_NS_PER_M = 60 * _NS_PER_S
_NS_PER_H = 60 * _NS_PER_M


def _trim(value: str) -> str:
    if "." in value:
        value = value.rstrip("0").rstrip(".")
    return value


def format_duration(seconds: float) -> str:
    """Render a duration the way the state file stores it.

    >>> format_duration(1.5)
    '1.5s'
    >>> format_duration(0.25)
    '250ms'
    >>> format_duration(123.5)
    '2m3.5s'
    """
    ns = int(round(seconds * _NS_PER_S))
    if ns == 0:
        return "0s"
    sign = "-" if ns < 0 else ""
    ns = abs(ns)

    if ns < _NS_PER_US:
        return f"{sign}{ns}ns"
    if ns < _NS_PER_MS:
        return f"{sign}{_trim(f'{ns / _NS_PER_US:.3f}')}µs"
    if ns < _NS_PER_S:
        return f"{sign}{_trim(f'{ns / _NS_PER_MS:.6f}')}ms"

    hours, rest = divmod(ns, _NS_PER_H)
    minutes, rest = divmod(rest, _NS_PER_M)
    secs = _trim(f"{rest / _NS_PER_S:.9f}")

    out = sign
    if hours:
        out += f"{hours}h"
    if hours or minutes:
        out += f"{minutes}m"
    return f"{out}{secs}s"


_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|h|m|s)")
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(text: str) -> float:
    """Parse a stored duration string back into seconds.

    Raises:
        ValueError: If ``text`` is not a duration string.
    """
    text = text.strip()
    negative = text.startswith("-")
    body = text.lstrip("+-")
    if not body:
        raise ValueError(f"invalid duration: {text!r}")

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(body):
        if match.start() != pos:
            raise ValueError(f"invalid duration: {text!r}")
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos != len(body):
        raise ValueError(f"invalid duration: {text!r}")
    return -total if negative else total


def _now() -> datetime:
    return datetime.now(UTC)


class ServiceExecutionRecord(BaseModel):
    """Last outcome and running counters for one service."""

    last_run: datetime = Field(default_factory=_now)
    last_result: Literal["success", "failure", ""] = ""
    last_error: str = ""
    success_count: int = 0
    failure_count: int = 0
    last_duration: str = "0s"

    def record(self, success: bool, duration: float, error: str = "") -> None:
        self.last_run = _now()
        self.last_duration = format_duration(duration)
        if success:
            self.last_result = "success"
            self.last_error = ""
            self.success_count += 1
        else:
            self.last_result = "failure"
            self.last_error = error
            self.failure_count += 1


class TenantExecutionRecord(BaseModel):
    """Per-tenant counters plus a per-service breakdown."""

    last_run: datetime = Field(default_factory=_now)
    services: dict[str, ServiceExecutionRecord] = Field(default_factory=dict)
    success_count: int = 0
    failure_count: int = 0

    @field_validator("services", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class OrchestrationState(BaseModel):
    """Root of the persisted state document."""

    last_execution: datetime = Field(default_factory=_now)
    services: dict[str, ServiceExecutionRecord] = Field(default_factory=dict)
    tenants: dict[str, TenantExecutionRecord] = Field(default_factory=dict)
    version: str = STATE_VERSION

    @field_validator("services", "tenants", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("version", mode="before")
    @classmethod
    def _default_version(cls, value: Any) -> Any:
        return value or STATE_VERSION


__all__ = [
    "STATE_VERSION",
    "ServiceExecutionRecord",
    "TenantExecutionRecord",
    "OrchestrationState",
    "format_duration",
    "parse_duration",
]
