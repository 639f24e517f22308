"""Durable execution history (``.migra/state.json``)."""

from migra.state.model import (
    STATE_VERSION,
    OrchestrationState,
    ServiceExecutionRecord,
    TenantExecutionRecord,
    format_duration,
    parse_duration,
)
from migra.state.store import ExecutionStateStore

__all__ = [
    "STATE_VERSION",
    "OrchestrationState",
    "ServiceExecutionRecord",
    "TenantExecutionRecord",
    "ExecutionStateStore",
    "format_duration",
    "parse_duration",
]
