"""
CLI: ``migra tenants``: run operations across every tenant.

Usage::

    migra tenants deploy                      # all tenants, all services
    migra tenants deploy --max-parallel 20 --stop-on-failure
    migra tenants rollback --steps 1
    migra tenants status
    migra tenants list
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
    fail,
    filter_services,
    finish,
    get_state,
    load_runtime,
    print_json,
)
from migra.core.cancellation import CancellationToken
from migra.core.errors import MigraError
from migra.models import Operation
from migra.tenant.executor import TenantExecutor, TenantSummary
from migra.tenant.sources import FilteredTenantSource, TenantSource, build_tenant_source

app = typer.Typer(no_args_is_help=True)


def build_source(runtime: Runtime) -> TenantSource:
    tenancy = runtime.config.tenancy
    settings = runtime.settings
    file_path = settings.tenants_file
    if not file_path.is_absolute():
        file_path = runtime.base_dir / file_path
    return build_tenant_source(
        tenancy.tenant_source or "env",
        env_var=settings.tenants_env_var,
        file_path=file_path,
        command=settings.tenants_command,
    )


def run_tenants(
    state: CliState,
    operation: Operation,
    *,
    service: str | None = None,
    tenant_ids: list[str] | None = None,
    max_parallel: int | None = None,
    stop_on_failure: bool | None = None,
    rollback_steps: int = 1,
) -> None:
    runtime = load_runtime(state)
    tenancy = runtime.config.tenancy
    if not tenancy.enabled:
        raise fail("multi-tenancy is not enabled in configuration")

    services = filter_services(runtime.config.to_services(), service)
    try:
        source = build_source(runtime)
        if tenant_ids:
            source = FilteredTenantSource(source, tenant_ids)
        executor = TenantExecutor(
            source,
            runtime.registry,
            runtime.store,
            stop_on_failure=tenancy.stop_on_failure if stop_on_failure is None else stop_on_failure,
            max_parallel=max_parallel or tenancy.max_parallel,
            rollback_steps=rollback_steps,
        )
    except MigraError as e:
        raise fail(e.message) from e

    if not state.json_output and not state.quiet:
        console.print(
            f"[bold]migra tenants {operation.value}[/]: {len(services)} service(s), "
            f"max {executor.max_parallel} tenant(s) in parallel"
        )

    token = CancellationToken()
    start = time.monotonic()
    with cancel_on_signals(token):
        try:
            results = executor.execute(services, operation, token=token)
        except MigraError as e:
            raise fail(f"failed to load tenants: {e.message}") from e

    summary = TenantSummary(
        operation=operation.value,
        requested=executor.last_tenant_count,
        results=results,
        duration=time.monotonic() - start,
    )
    finish(summary, state, title="TENANT MIGRATION SUMMARY")


_MAX_PARALLEL = typer.Option(None, "--max-parallel", min=1, help="Maximum tenants in flight.")
_STOP = typer.Option(
    None,
    "--stop-on-failure/--continue-on-failure",
    help="Stop starting tenants after the first failing one.",
)
_SERVICE = typer.Option(None, "--service", "-s", help="Only this service.")


@app.command("deploy")
def tenants_deploy(
    ctx: typer.Context,
    service: str | None = _SERVICE,
    max_parallel: int | None = _MAX_PARALLEL,
    stop_on_failure: bool | None = _STOP,
) -> None:
    """Deploy migrations to every tenant."""
    run_tenants(
        get_state(ctx),
        Operation.DEPLOY,
        service=service,
        max_parallel=max_parallel,
        stop_on_failure=stop_on_failure,
    )


@app.command("rollback")
def tenants_rollback(
    ctx: typer.Context,
    service: str | None = _SERVICE,
    steps: int = typer.Option(1, "--steps", min=1, help="Number of migrations to roll back."),
    max_parallel: int | None = _MAX_PARALLEL,
    stop_on_failure: bool | None = _STOP,
) -> None:
    """Roll back migrations for every tenant."""
    run_tenants(
        get_state(ctx),
        Operation.ROLLBACK,
        service=service,
        max_parallel=max_parallel,
        stop_on_failure=stop_on_failure,
        rollback_steps=steps,
    )


@app.command("status")
def tenants_status(
    ctx: typer.Context,
    service: str | None = _SERVICE,
    max_parallel: int | None = _MAX_PARALLEL,
) -> None:
    """Query migration status for every tenant."""
    run_tenants(
        get_state(ctx),
        Operation.STATUS,
        service=service,
        max_parallel=max_parallel,
        stop_on_failure=False,
    )


@app.command("list")
def tenants_list(ctx: typer.Context) -> None:
    """List tenants from the configured source (connection values hidden)."""
    state = get_state(ctx)
    runtime = load_runtime(state)
    try:
        tenants = build_source(runtime).load_tenants()
    except MigraError as e:
        raise fail(e.message) from e

    if state.json_output:
        print_json([{"id": t.id, "connection_keys": sorted(t.connection)} for t in tenants])
        return

    table = Table(title=f"Tenants ({len(tenants)})")
    table.add_column("Tenant", style="bold")
    table.add_column("Connection keys")
    for tenant in tenants:
        table.add_row(tenant.id, ", ".join(sorted(tenant.connection)) or "-")
    console.print(table)
