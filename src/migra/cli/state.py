"""
CLI: ``migra state``: inspect or reset the persisted execution state.
"""

from __future__ import annotations

import typer

from migra.cli.utils import console, fail, get_state, load_runtime, print_json
from migra.core.errors import StateError

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def state_show(ctx: typer.Context) -> None:
    """Print the raw state document."""
    runtime = load_runtime(get_state(ctx), validate=False)
    print_json(runtime.store.get_state().model_dump(mode="json"))


@app.command("reset")
def state_reset(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Erase all recorded history."""
    runtime = load_runtime(get_state(ctx), validate=False)
    if not yes:
        typer.confirm(f"Erase all history in {runtime.store.state_file}?", abort=True)
    try:
        runtime.store.reset()
    except StateError as e:
        raise fail(e.message) from e
    console.print("[green]State reset.[/green]")
