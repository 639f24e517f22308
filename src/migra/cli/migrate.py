"""
CLI: service-level commands ``deploy``, ``rollback``, ``status`` and ``history``.

Usage::

    migra deploy                          # all services, configured strategy
    migra deploy --service billing        # one service
    migra deploy --dry-run --parallel     # plan only, parallel engine
    migra rollback --service billing --steps 2
    migra rollback --tenant acme          # one tenant, all services
    migra status                          # live applied/pending counts
    migra history                         # persisted run history
"""

from __future__ import annotations

import time

import typer
from rich.table import Table

from migra.cli.utils import (
    CliState,
    Runtime,
    cancel_on_signals,
    console,
    err_console,
    fail,
    filter_services,
    finish,
    format_ago,
    get_state,
    load_runtime,
    print_json,
)
from migra.config.models import STRATEGY_PARALLEL
from migra.core.cancellation import CancellationToken
from migra.core.errors import MigraError
from migra.engine.base import BaseEngine
from migra.engine.parallel import ParallelEngine
from migra.engine.result import summarize_results
from migra.engine.sequential import SequentialEngine
from migra.models import Operation


def build_engine(
    runtime: Runtime,
    *,
    parallel: bool = False,
    dry_run: bool = False,
    stop_on_failure: bool | None = None,
    rollback_steps: int = 1,
) -> BaseEngine:
    """Pick the engine from ``--parallel`` or ``execution.strategy``."""
    execution = runtime.config.execution
    stop = execution.stop_on_failure if stop_on_failure is None else stop_on_failure
    if parallel or execution.strategy == STRATEGY_PARALLEL:
        return ParallelEngine(
            runtime.registry,
            runtime.store,
            stop_on_failure=stop,
            dry_run=dry_run,
            max_parallel=runtime.config.effective_parallel_limit(),
            rollback_steps=rollback_steps,
        )
    return SequentialEngine(
        runtime.registry,
        runtime.store,
        stop_on_failure=stop,
        dry_run=dry_run,
        rollback_steps=rollback_steps,
    )


def run_services(
    state: CliState,
    operation: Operation,
    *,
    service: str | None = None,
    parallel: bool = False,
    dry_run: bool = False,
    stop_on_failure: bool | None = None,
    rollback_steps: int = 1,
) -> None:
    runtime = load_runtime(state)
    services = filter_services(runtime.config.to_services(), service)
    try:
        engine = build_engine(
            runtime,
            parallel=parallel,
            dry_run=dry_run,
            stop_on_failure=stop_on_failure,
            rollback_steps=rollback_steps,
        )
    except MigraError as e:
        raise fail(e.message) from e

    if not state.json_output and not state.quiet:
        mode = "parallel" if isinstance(engine, ParallelEngine) else "sequential"
        suffix = " [yellow](dry run)[/yellow]" if dry_run else ""
        console.print(f"[bold]migra {operation.value}[/]: {len(services)} service(s), {mode}{suffix}")

    token = CancellationToken()
    start = time.monotonic()
    with cancel_on_signals(token):
        results = engine.execute(services, operation, token=token)
    summary = summarize_results(operation.value, len(services), results, time.monotonic() - start)
    finish(summary, state)


def deploy(
    ctx: typer.Context,
    service: str | None = typer.Option(None, "--service", "-s", help="Only this service."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would run without executing."),
    parallel: bool = typer.Option(False, "--parallel", "-p", help="Force the parallel engine."),
) -> None:
    """Deploy pending migrations across services."""
    run_services(
        get_state(ctx),
        Operation.DEPLOY,
        service=service,
        parallel=parallel,
        dry_run=dry_run,
    )


def rollback(
    ctx: typer.Context,
    service: str | None = typer.Option(None, "--service", "-s", help="Only this service."),
    steps: int = typer.Option(1, "--steps", min=1, help="Number of migrations to roll back."),
    tenant: str | None = typer.Option(None, "--tenant", "-t", help="Roll back one tenant."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would run without executing."),
    parallel: bool = typer.Option(False, "--parallel", "-p", help="Force the parallel engine."),
) -> None:
    """Roll back the most recent migrations."""
    state = get_state(ctx)
    if tenant:
        if dry_run:
            raise fail("--dry-run is not supported together with --tenant")
        if parallel:
            raise fail("--parallel is not supported together with --tenant")
        from migra.cli.tenants import run_tenants

        run_tenants(state, Operation.ROLLBACK, service=service, tenant_ids=[tenant], rollback_steps=steps)
        return

    run_services(
        state,
        Operation.ROLLBACK,
        service=service,
        parallel=parallel,
        dry_run=dry_run,
        rollback_steps=steps,
    )


def status(
    ctx: typer.Context,
    service: str | None = typer.Option(None, "--service", "-s", help="Only this service."),
    parallel: bool = typer.Option(False, "--parallel", "-p", help="Query services in parallel."),
) -> None:
    """Query each service's applied and pending migrations."""
    run_services(
        get_state(ctx),
        Operation.STATUS,
        service=service,
        parallel=parallel,
        stop_on_failure=False,
    )


def history(ctx: typer.Context) -> None:
    """Show persisted run history per service."""
    state = get_state(ctx)
    runtime = load_runtime(state, validate=False)
    snapshot = runtime.store.get_state()
    names = [svc.name for svc in runtime.config.to_services()]
    names += sorted(name for name in snapshot.services if name not in names)

    if state.json_output:
        print_json(snapshot.model_dump(mode="json"))
        return

    if not snapshot.services and not snapshot.tenants:
        err_console.print("[dim]No state recorded yet - no migrations have been run.[/dim]")

    table = Table(title="Migration History")
    table.add_column("Service", style="bold")
    table.add_column("Last Run")
    table.add_column("Result")
    table.add_column("Success", justify="right")
    table.add_column("Failures", justify="right")
    table.add_column("Last Duration", justify="right")

    for name in names:
        record = snapshot.services.get(name)
        if record is None:
            table.add_row(name, "never", "-", "0", "0", "-")
            continue
        result = record.last_result or "-"
        colour = {"success": "green", "failure": "red"}.get(result, "white")
        table.add_row(
            name,
            format_ago(record.last_run),
            f"[{colour}]{result}[/{colour}]",
            str(record.success_count),
            str(record.failure_count),
            record.last_duration,
        )

    console.print(table)
    if snapshot.tenants:
        console.print(f"\nTenant Summary: {len(snapshot.tenants)} tenant(s) processed")
