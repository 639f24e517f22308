"""Bounded fan-out with cooperative stop-on-failure.

Both the parallel engine (fan-out over services) and the tenant executor
(fan-out over tenants) run through ``run_bounded``:

::

    items ──► ThreadPoolExecutor(max_workers=limit) ──► results[index]
                     │                                     │
                     │ run token (child of caller token)   │ lock
                     ▼                                     ▼
          queued task sees token cancelled ──► skipped (no result)

- At most ``limit`` tasks are admitted at once; the pool's worker count is
  the admission gate and queued tasks wait for a free worker.
- With ``stop_on_failure`` the first failing result cancels the run token.
  Admitted tasks finish normally; queued tasks return without running and
  their futures are cancelled where still possible.
- Tasks receive the *caller's* token, so a sibling failure never interrupts
  work that is already in flight. Cancelling the caller's token (SIGINT)
  also stops queued tasks, because the run token is its child.
- Results are written by index under a lock and compacted before return,
  so order follows input position among tasks that actually ran.
- An unexpected exception inside a task is re-raised to the caller after
  the run token is cancelled.
- The run token is detached from the caller's token on return, so a
  long-lived caller token does not accumulate callbacks across runs.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import TypeVar

from migra.core.cancellation import CancellationToken
from migra.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_PARALLEL = 5

T = TypeVar("T")
R = TypeVar("R")


def effective_limit(max_parallel: int) -> int:
    """Non-positive ceilings fall back to the default of 5."""
    return max_parallel if max_parallel > 0 else DEFAULT_MAX_PARALLEL


def run_bounded(
    items: Sequence[T],
    task: Callable[[T, CancellationToken | None], R],
    *,
    max_parallel: int,
    stop_on_failure: bool,
    failed: Callable[[R], bool],
    token: CancellationToken | None = None,
    name: str = "migra",
) -> list[R]:
    """Run ``task`` over ``items`` with at most ``max_parallel`` in flight.

    Args:
        items: Work units; result order follows this order.
        task: Called as ``task(item, token)`` where ``token`` is the caller's.
        max_parallel: Admission ceiling; ``<= 0`` means 5.
        stop_on_failure: Cancel unstarted work after the first failure.
        failed: Predicate deciding whether a result counts as a failure.
        token: Caller cancellation token.
        name: Thread name prefix, also used in log events.

    Returns:
        Results of tasks that ran, in input order. Skipped tasks are absent.
    """
    if not items:
        return []

    limit = effective_limit(max_parallel)
    run_token = token.child() if token is not None else CancellationToken()
    results: list[R | None] = [None] * len(items)
    lock = threading.Lock()

    def worker(index: int, item: T) -> None:
        if run_token.cancelled:
            logger.debug(f"{name}.skipped", index=index, reason=run_token.reason)
            return
        result = task(item, token)
        with lock:
            results[index] = result
        if stop_on_failure and failed(result) and not run_token.cancelled:
            logger.info(f"{name}.stopping_on_failure", index=index)
            run_token.cancel("stop_on_failure")

    try:
        with ThreadPoolExecutor(max_workers=limit, thread_name_prefix=name) as pool:
            futures: list[Future[None]] = [
                pool.submit(worker, index, item) for index, item in enumerate(items)
            ]

            def cancel_pending() -> None:
                for future in futures:
                    future.cancel()

            run_token.add_callback(cancel_pending)

            try:
                for future in as_completed(futures):
                    if future.cancelled():
                        continue
                    future.result()
            except BaseException:
                run_token.cancel("error")
                raise
    finally:
        run_token.detach()

    return [result for result in results if result is not None]


__all__ = ["DEFAULT_MAX_PARALLEL", "effective_limit", "run_bounded"]
