"""Parallel engine: services fan out through a bounded worker pool."""

from __future__ import annotations

import time
from collections.abc import Sequence

from migra.adapters.registry import AdapterRegistry
from migra.core.cancellation import CancellationToken
from migra.core.logging import get_logger
from migra.engine.base import BaseEngine
from migra.engine.runner import effective_limit, run_bounded
from migra.models import Operation, Service, ServiceResult
from migra.state.store import ExecutionStateStore

logger = get_logger(__name__)


class ParallelEngine(BaseEngine):
    """Run up to ``max_parallel`` services concurrently.

    With ``stop_on_failure`` a failing service prevents queued services from
    starting; services already running finish and are reported. Skipped
    services produce no result. The returned list follows input order.
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        store: ExecutionStateStore | None = None,
        *,
        stop_on_failure: bool = True,
        dry_run: bool = False,
        max_parallel: int = 5,
        rollback_steps: int = 1,
    ) -> None:
        super().__init__(
            registry,
            store,
            stop_on_failure=stop_on_failure,
            dry_run=dry_run,
            rollback_steps=rollback_steps,
        )
        self.max_parallel = effective_limit(max_parallel)

    def execute(
        self,
        services: Sequence[Service],
        operation: Operation,
        *,
        token: CancellationToken | None = None,
    ) -> list[ServiceResult]:
        start = time.monotonic()
        logger.info(
            "engine.parallel.start",
            services=len(services),
            operation=operation.value,
            max_parallel=self.max_parallel,
            dry_run=self.dry_run,
        )

        results = run_bounded(
            list(services),
            lambda service, tok: self.execute_service(service, operation, tok),
            max_parallel=self.max_parallel,
            stop_on_failure=self.stop_on_failure,
            failed=lambda result: not result.success,
            token=token,
            name="engine.parallel",
        )

        logger.info(
            "engine.parallel.done",
            attempted=len(results),
            skipped=len(services) - len(results),
            failed=sum(1 for r in results if not r.success),
            duration_seconds=round(time.monotonic() - start, 3),
        )
        return results


__all__ = ["ParallelEngine"]
