"""Shared per-service execution for the sequential and parallel engines.

Both engines funnel every service through ``BaseEngine.execute_service``:

1. Dry run: succeed immediately with ``DRY_RUN_OUTPUT``; nothing is
   resolved, invoked or recorded.
2. Resolve the adapter. A resolution failure becomes a failed result and
   is recorded like any other failure.
3. Invoke the operation (adapter errors become failed results).
4. Record the outcome in the state store. A store failure is logged and
   does not change the result.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Sequence

from migra.adapters.registry import AdapterRegistry
from migra.core.cancellation import CancellationToken
from migra.core.errors import ConfigError, StateError
from migra.core.logging import get_logger
from migra.engine.dispatch import DRY_RUN_OUTPUT, invoke_operation
from migra.models import Operation, Service, ServiceResult
from migra.state.store import ExecutionStateStore

logger = get_logger(__name__)


class BaseEngine(ABC):
    """Common configuration and per-service execution."""

    def __init__(
        self,
        registry: AdapterRegistry,
        store: ExecutionStateStore | None = None,
        *,
        stop_on_failure: bool = True,
        dry_run: bool = False,
        rollback_steps: int = 1,
    ) -> None:
        if rollback_steps < 1:
            raise ConfigError(f"rollback steps must be at least 1, got {rollback_steps}")
        self.registry = registry
        self.store = store
        self.stop_on_failure = stop_on_failure
        self.dry_run = dry_run
        self.rollback_steps = rollback_steps

    @abstractmethod
    def execute(
        self,
        services: Sequence[Service],
        operation: Operation,
        *,
        token: CancellationToken | None = None,
    ) -> list[ServiceResult]:
        """Run ``operation`` across ``services`` and return one result per attempted service."""

    def execute_service(
        self,
        service: Service,
        operation: Operation,
        token: CancellationToken | None = None,
    ) -> ServiceResult:
        start = time.monotonic()

        if self.dry_run:
            logger.info("engine.service.dry_run", service=service.name, operation=operation.value)
            return ServiceResult(
                service_name=service.name,
                success=True,
                duration=time.monotonic() - start,
                output=DRY_RUN_OUTPUT,
            )

        logger.info("engine.service.start", service=service.name, operation=operation.value)

        try:
            adapter = self.registry.get_for_service(service)
        except ConfigError as e:
            duration = time.monotonic() - start
            error = f"failed to get adapter: {e.message}"
            logger.error(
                "engine.service.adapter_missing",
                service=service.name,
                adapter=service.type,
                error=e.message,
            )
            self._record(service.name, False, duration, error)
            return ServiceResult(service.name, False, duration=duration, error=error)

        op_result = invoke_operation(
            adapter,
            service,
            operation,
            rollback_steps=self.rollback_steps,
            token=token,
        )
        duration = time.monotonic() - start

        self._record(service.name, op_result.success, duration, op_result.error)

        if op_result.success:
            logger.info(
                "engine.service.completed",
                service=service.name,
                operation=operation.value,
                duration_seconds=round(duration, 3),
            )
        else:
            logger.error(
                "engine.service.failed",
                service=service.name,
                operation=operation.value,
                error=op_result.error,
            )

        return ServiceResult(
            service_name=service.name,
            success=op_result.success,
            duration=duration,
            error=op_result.error,
            output=op_result.output,
        )

    def _record(self, service_name: str, success: bool, duration: float, error: str) -> None:
        if self.store is None:
            return
        try:
            self.store.record_service_execution(service_name, success, duration, error)
        except StateError as e:
            logger.error("state.persist_failed", service=service_name, **e.to_dict())


__all__ = ["BaseEngine"]
