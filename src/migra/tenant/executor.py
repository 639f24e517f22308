"""Tenant executor: apply one operation to every tenant.

Why This Matters:
    In a database-per-tenant deployment the same migrations must land in
    every tenant's database. Tenants are independent, so they fan out in
    parallel; a tenant's services share one database and depend on each
    other's schema, so within a tenant they run strictly in order.

Key Concepts:
    Tenant list: loaded once up front. An empty or malformed list aborts
        the whole run before any tenant executes.
    Per-tenant short-circuit: the first failing service ends that tenant;
        later services are not attempted and have no state record.
    Cancellation: the caller's token is checked before each service. A
        cancelled tenant fails with ``cancelled before service <name>``
        and the service it stopped at is not recorded.
    Tenant stop-on-failure: a failing tenant prevents queued tenants from
        starting (same bounded runner as the parallel engine).
    Recording: every attempted service, including one whose adapter could
        not be resolved, writes a tenant/service record.

Related Modules:
    - :mod:`migra.engine.runner`: bounded fan-out
    - :mod:`migra.tenant.sources`: where tenants come from
    - :mod:`migra.state.store`: ``record_tenant_execution``

Tags:
    tenant, multi-tenant, fan-out, parallel
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from migra.adapters.registry import AdapterRegistry
from migra.core.cancellation import CancellationToken
from migra.core.errors import ConfigError, StateError, TenantSourceError
from migra.core.logging import LogContext, get_logger
from migra.engine.dispatch import invoke_operation
from migra.engine.runner import effective_limit, run_bounded
from migra.models import Operation, Service, Tenant
from migra.state.store import ExecutionStateStore
from migra.tenant.sources import TenantSource

logger = get_logger(__name__)


@dataclass
class TenantResult:
    """Outcome of one tenant's run across all services."""

    tenant_id: str
    success: bool
    duration: float = 0.0
    error: str = ""
    service_count: int = 0
    succeeded: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "tenant": self.tenant_id,
            "success": self.success,
            "duration_seconds": round(self.duration, 3),
            "error": self.error or None,
            "services": self.service_count,
            "services_succeeded": self.succeeded,
        }


@dataclass
class TenantSummary:
    operation: str
    requested: int
    results: list[TenantResult]
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


class TenantExecutor:
    """Fan an operation out across tenants, services sequential per tenant."""

    def __init__(
        self,
        source: TenantSource,
        registry: AdapterRegistry,
        store: ExecutionStateStore | None = None,
        *,
        stop_on_failure: bool = False,
        max_parallel: int = 5,
        rollback_steps: int = 1,
    ) -> None:
        if rollback_steps < 1:
            raise ConfigError(f"rollback steps must be at least 1, got {rollback_steps}")
        self.source = source
        self.registry = registry
        self.store = store
        self.stop_on_failure = stop_on_failure
        self.max_parallel = effective_limit(max_parallel)
        self.rollback_steps = rollback_steps
        self.last_tenant_count = 0

    def load_tenants(self, token: CancellationToken | None = None) -> list[Tenant]:
        """Load the tenant list, failing on an empty result.

        Raises:
            TenantSourceError: Source failed or returned no tenants.
        """
        tenants = self.source.load_tenants(token)
        if not tenants:
            raise TenantSourceError("tenant source returned no tenants")
        return tenants

    def execute(
        self,
        services: Sequence[Service],
        operation: Operation,
        *,
        token: CancellationToken | None = None,
    ) -> list[TenantResult]:
        """Run ``operation`` for every tenant.

        Raises:
            TenantSourceError: Tenants could not be loaded; nothing ran.
        """
        logger.info("tenant.load.start", source=type(self.source).__name__)
        tenants = self.load_tenants(token)
        self.last_tenant_count = len(tenants)
        logger.info(
            "tenant.run.start",
            tenants=len(tenants),
            services=len(services),
            operation=operation.value,
            max_parallel=self.max_parallel,
        )

        service_list = list(services)
        results = run_bounded(
            tenants,
            lambda tenant, tok: self._execute_tenant(tenant, service_list, operation, tok),
            max_parallel=self.max_parallel,
            stop_on_failure=self.stop_on_failure,
            failed=lambda result: not result.success,
            token=token,
            name="tenant",
        )

        logger.info(
            "tenant.run.done",
            attempted=len(results),
            skipped=len(tenants) - len(results),
            failed=sum(1 for r in results if not r.success),
        )
        return results

    def _execute_tenant(
        self,
        tenant: Tenant,
        services: list[Service],
        operation: Operation,
        token: CancellationToken | None,
    ) -> TenantResult:
        start = time.monotonic()
        result = TenantResult(tenant_id=tenant.id, success=False, service_count=len(services))

        with LogContext(tenant=tenant.id, operation=operation.value):
            logger.info("tenant.start")

            for service in services:
                if token is not None and token.cancelled:
                    result.error = f"cancelled before service {service.name}"
                    result.duration = time.monotonic() - start
                    logger.warning("tenant.cancelled", service=service.name, reason=token.reason)
                    return result

                service_start = time.monotonic()
                try:
                    adapter = self.registry.get_for_service(service)
                except ConfigError as e:
                    result.error = f"failed to get adapter for service {service.name}: {e.message}"
                    result.duration = time.monotonic() - start
                    self._record(tenant.id, service.name, False, time.monotonic() - service_start, result.error)
                    logger.error("tenant.failed", service=service.name, error=result.error)
                    return result

                op_result = invoke_operation(
                    adapter,
                    service,
                    operation,
                    tenant=tenant,
                    rollback_steps=self.rollback_steps,
                    token=token,
                )
                service_duration = time.monotonic() - service_start

                if not op_result.success:
                    result.error = f"service {service.name} failed: {op_result.error}"
                    result.duration = time.monotonic() - start
                    self._record(tenant.id, service.name, False, service_duration, op_result.error)
                    logger.error("tenant.failed", service=service.name, error=op_result.error)
                    return result

                result.succeeded += 1
                self._record(tenant.id, service.name, True, service_duration, "")

            result.success = result.succeeded == len(services)
            result.duration = time.monotonic() - start
            logger.info("tenant.completed", duration_seconds=round(result.duration, 3))
            return result

    def _record(
        self,
        tenant_id: str,
        service_name: str,
        success: bool,
        duration: float,
        error: str,
    ) -> None:
        if self.store is None:
            return
        try:
            self.store.record_tenant_execution(tenant_id, service_name, success, duration, error)
        except StateError as e:
            logger.error("state.persist_failed", tenant=tenant_id, service=service_name, **e.to_dict())


__all__ = ["TenantExecutor", "TenantResult", "TenantSummary"]
