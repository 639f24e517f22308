"""Sequential engine: services run one at a time in input order."""

from __future__ import annotations

import time
from collections.abc import Sequence

from migra.core.cancellation import CancellationToken
from migra.core.logging import get_logger
from migra.engine.base import BaseEngine
from migra.models import Operation, Service, ServiceResult

logger = get_logger(__name__)


class SequentialEngine(BaseEngine):
    """Run services strictly in order.

    With ``stop_on_failure`` the run halts after the first failing service;
    the returned list ends with that failure and later services are never
    attempted. A cancelled token stops further services from starting.
    """

    def execute(
        self,
        services: Sequence[Service],
        operation: Operation,
        *,
        token: CancellationToken | None = None,
    ) -> list[ServiceResult]:
        start = time.monotonic()
        logger.info(
            "engine.sequential.start",
            services=len(services),
            operation=operation.value,
            dry_run=self.dry_run,
        )

        results: list[ServiceResult] = []
        for service in services:
            if token is not None and token.cancelled:
                logger.warning(
                    "engine.sequential.cancelled",
                    remaining=len(services) - len(results),
                    reason=token.reason,
                )
                break

            result = self.execute_service(service, operation, token)
            results.append(result)

            if not result.success and self.stop_on_failure:
                logger.error("engine.sequential.stopping_on_failure", service=service.name)
                break

        logger.info(
            "engine.sequential.done",
            attempted=len(results),
            failed=sum(1 for r in results if not r.success),
            duration_seconds=round(time.monotonic() - start, 3),
        )
        return results


__all__ = ["SequentialEngine"]
