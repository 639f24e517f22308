"""Run summaries handed back to the CLI for display."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from migra.models import ServiceResult


@dataclass
class ExecutionSummary:
    """Aggregate of one engine run.

    ``skipped`` counts services that were requested but never attempted,
    either because of stop-on-failure or cancellation.
    """

    operation: str
    requested: int
    results: list[ServiceResult] = field(default_factory=list)
    duration: float = 0.0

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    @property
    def skipped(self) -> int:
        return max(0, self.requested - self.total)

    @property
    def success(self) -> bool:
        return self.failed == 0 and self.skipped == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "total": self.total,
            "successful": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "duration_seconds": round(self.duration, 3),
            "results": [r.to_dict() for r in self.results],
        }


def summarize_results(
    operation: str,
    requested: int,
    results: Sequence[ServiceResult],
    duration: float,
) -> ExecutionSummary:
    return ExecutionSummary(
        operation=operation,
        requested=requested,
        results=list(results),
        duration=duration,
    )


__all__ = ["ExecutionSummary", "summarize_results"]
