"""
CLI utility helpers: runtime assembly, signal handling and output formatting.
"""

from __future__ import annotations

import json
import signal
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from migra.adapters.registry import AdapterRegistry, default_registry
from migra.config.loader import ConfigLoader
from migra.config.models import MigraConfig
from migra.config.settings import MigraSettings
from migra.config.validator import validate_config
from migra.core.cancellation import CancellationToken
from migra.core.errors import MigraError, StateLoadError
from migra.core.logging import configure_logging, get_logger
from migra.engine.result import ExecutionSummary
from migra.models import Service
from migra.state.store import ExecutionStateStore
from migra.tenant.executor import TenantSummary

console = Console()
err_console = Console(stderr=True)

logger = get_logger(__name__)


# ── Global options ───────────────────────────────────────────────────────


@dataclass
class CliState:
    """Values of the root callback's global options."""

    config_path: Path = Path("migra.yaml")
    verbose: bool = False
    quiet: bool = False
    json_output: bool = False


def get_state(ctx: typer.Context) -> CliState:
    obj = ctx.find_root().obj
    return obj if isinstance(obj, CliState) else CliState()


# ── Runtime assembly ─────────────────────────────────────────────────────


@dataclass
class Runtime:
    """Everything a command needs to run an operation."""

    config: MigraConfig
    settings: MigraSettings
    registry: AdapterRegistry
    store: ExecutionStateStore
    base_dir: Path


def fail(message: str, *, code: int = 1) -> typer.Exit:
    err_console.print(f"[bold red]Error:[/bold red] {message}")
    return typer.Exit(code=code)


def load_runtime(state: CliState, *, validate: bool = True) -> Runtime:
    """Load config, configure logging, and open the state store.

    A state file that cannot be read is reported as a warning; the run
    continues with empty in-memory state.
    """
    loader = ConfigLoader(state.config_path)
    try:
        config = loader.load()
        if validate:
            validate_config(config, loader.base_dir)
    except MigraError as e:
        raise fail(e.message) from e

    level = config.logging.level
    if state.verbose:
        level = "debug"
    elif state.quiet:
        level = "error"
    configure_logging(
        level=level,
        json_format=config.logging.format == "json",
        log_file=config.logging.file,
    )

    settings = MigraSettings()
    work_dir = settings.work_dir or loader.base_dir
    store = ExecutionStateStore(work_dir)
    try:
        store.load()
    except StateLoadError as e:
        logger.warning("state.load_failed", error=e.message)
        if not state.quiet:
            err_console.print(f"[yellow]Warning:[/yellow] {e.message}; continuing with empty state")

    return Runtime(
        config=config,
        settings=settings,
        registry=default_registry(settings.command_timeout),
        store=store,
        base_dir=loader.base_dir,
    )


def filter_services(services: list[Service], name: str | None) -> list[Service]:
    if not name:
        return services
    selected = [svc for svc in services if svc.name == name]
    if not selected:
        raise fail(f"service not found: {name}")
    return selected


@contextmanager
def cancel_on_signals(token: CancellationToken) -> Iterator[CancellationToken]:
    """Cancel ``token`` on SIGINT/SIGTERM for the duration of the block."""
    previous: dict[int, Any] = {}

    def handler(signum: int, frame: Any) -> None:
        name = signal.Signals(signum).name
        err_console.print(f"\n[yellow]Received {name}, cancelling...[/yellow]")
        token.cancel(name)

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            previous[sig] = signal.signal(sig, handler)
        except ValueError:
            # Not the main thread; signals stay with the host.
            break
    try:
        yield token
    finally:
        for sig, old in previous.items():
            signal.signal(sig, old)


# ── Output helpers ───────────────────────────────────────────────────────


def format_ago(moment: datetime, now: datetime | None = None) -> str:
    """Relative time for the history table."""
    now = now or datetime.now(UTC)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    seconds = (now - moment).total_seconds()
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{int(seconds // 60)} min ago"
    if seconds < 86400:
        return f"{int(seconds // 3600)} hours ago"
    return f"{int(seconds // 86400)} days ago"


def print_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def print_summary(summary: ExecutionSummary | TenantSummary, *, title: str = "MIGRATION SUMMARY") -> None:
    """Render per-unit results followed by the totals block."""
    is_tenant = isinstance(summary, TenantSummary)
    table = Table(title=title, show_lines=False)
    table.add_column("Tenant" if is_tenant else "Service", style="bold")
    table.add_column("Status")
    table.add_column("Duration", justify="right")
    table.add_column("Detail", overflow="fold")

    for result in summary.results:
        name = result.tenant_id if is_tenant else result.service_name
        status = "[green]✓ ok[/green]" if result.success else "[red]✗ failed[/red]"
        if result.success:
            detail = (
                f"{result.succeeded}/{result.service_count} services"
                if is_tenant
                else _first_line(result.output)
            )
        else:
            detail = result.error
        table.add_row(name, status, f"{result.duration:.2f}s", detail)

    console.print(table)
    console.print(f"  Total:      {summary.total}")
    console.print(f"  Successful: [green]{summary.succeeded}[/green]")
    console.print(f"  Failed:     [red]{summary.failed}[/red]" if summary.failed else "  Failed:     0")
    if summary.skipped:
        console.print(f"  Skipped:    [yellow]{summary.skipped}[/yellow]")
    console.print(f"  Duration:   {summary.duration:.2f}s")


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


def finish(summary: ExecutionSummary | TenantSummary, state: CliState, *, title: str = "MIGRATION SUMMARY") -> None:
    """Print the summary in the selected format and exit 1 on any failure or skip."""
    if state.json_output:
        print_json(summary.to_dict())
    else:
        print_summary(summary, title=title)
    if not summary.success:
        raise typer.Exit(code=1)
