"""Single-service operation dispatch shared by engines and the tenant executor.

``invoke_operation`` is the one place that maps an ``Operation`` onto an
adapter method. It never raises for adapter-side problems: exceptions from
the adapter are wrapped in ``AdapterError`` with service and operation
context, logged, and returned as a failed ``OperationResult``.
"""

from __future__ import annotations

import time

from migra.adapters.base import Adapter
from migra.core.cancellation import CancellationToken
from migra.core.errors import AdapterError, MigraError
from migra.core.logging import get_logger
from migra.models import Operation, OperationResult, Service, Tenant

logger = get_logger(__name__)

DRY_RUN_OUTPUT = "Dry run - no actual execution"


def invoke_operation(
    adapter: Adapter,
    service: Service,
    operation: Operation,
    *,
    tenant: Tenant | None = None,
    rollback_steps: int = 1,
    token: CancellationToken | None = None,
) -> OperationResult:
    """Run ``operation`` for ``service`` through ``adapter``.

    Status succeeds when the adapter could read status; its output is the
    ``Applied: N, Pending: M`` summary.
    """
    start = time.monotonic()
    try:
        if operation is Operation.DEPLOY:
            result = adapter.deploy(service, tenant, token=token)
        elif operation is Operation.ROLLBACK:
            result = adapter.rollback(service, tenant, rollback_steps, token=token)
        elif operation is Operation.STATUS:
            status = adapter.status(service, tenant, token=token)
            result = OperationResult(
                success=True,
                output=status.summary(),
                duration=time.monotonic() - start,
            )
        else:
            raise AdapterError(f"unsupported operation: {operation}", retryable=False)
    except Exception as e:
        err = e if isinstance(e, MigraError) else AdapterError(str(e), cause=e)
        err.with_context(
            service=service.name,
            tenant=tenant.id if tenant else None,
            operation=operation.value,
            adapter=getattr(adapter, "name", None),
        )
        logger.warning("adapter.failed", **err.to_dict())
        return OperationResult(
            success=False,
            error=err.message,
            duration=time.monotonic() - start,
        )

    if not result.duration:
        result.duration = time.monotonic() - start
    return result


__all__ = ["DRY_RUN_OUTPUT", "invoke_operation"]
