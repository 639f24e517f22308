"""
CLI: ``migra validate``: check the configuration file without running anything.
"""

from __future__ import annotations

import typer
from rich.table import Table

from migra.cli.utils import console, err_console, get_state, print_json
from migra.config.loader import ConfigLoader
from migra.config.validator import ConfigValidator
from migra.core.errors import MigraError


def validate(ctx: typer.Context) -> None:
    """Validate the configuration and list the resolved services."""
    state = get_state(ctx)
    loader = ConfigLoader(state.config_path)

    try:
        config = loader.load()
    except MigraError as e:
        if state.json_output:
            print_json({"valid": False, "errors": [e.message]})
        else:
            err_console.print(f"[bold red]✗ {e.message}[/bold red]")
        raise typer.Exit(code=1) from e

    validator = ConfigValidator(config, loader.base_dir)
    try:
        validator.validate()
    except MigraError:
        if state.json_output:
            print_json({"valid": False, "errors": validator.errors})
        else:
            err_console.print("[bold red]✗ configuration validation failed:[/bold red]")
            for error in validator.errors:
                err_console.print(f"  - {error}")
        raise typer.Exit(code=1)

    services = config.to_services()
    if state.json_output:
        print_json(
            {
                "valid": True,
                "strategy": config.execution.strategy,
                "services": [svc.model_dump(exclude={"env"}) for svc in services],
                "tenancy": config.tenancy.enabled,
            }
        )
        return

    console.print(f"[bold green]✓ configuration is valid[/bold green] ({state.config_path})")
    table = Table()
    table.add_column("Service", style="bold")
    table.add_column("Type")
    table.add_column("Path")
    for svc in services:
        table.add_row(svc.name, svc.type, svc.path)
    console.print(table)
    console.print(f"  strategy: {config.execution.strategy}")
    if config.tenancy.enabled:
        console.print(
            f"  tenancy:  {config.tenancy.mode} via {config.tenancy.tenant_source} "
            f"(max {config.tenancy.max_parallel} parallel)"
        )
