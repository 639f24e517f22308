"""
Root Typer application for the migra CLI.

Global options are parsed once by the root callback and stored on the
context; every command reads them through :func:`migra.cli.utils.get_state`.
"""

from __future__ import annotations

from pathlib import Path

import typer
from typer import Typer

from migra import __version__
from migra.cli import migrate, validate
from migra.cli.state import app as state_app
from migra.cli.tenants import app as tenants_app
from migra.cli.utils import CliState

app = Typer(
    name="migra",
    help="migra: orchestrate database migrations across services and tenants.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"migra {__version__}")
        raise typer.Exit()


@app.callback()
def root(
    ctx: typer.Context,
    config: Path = typer.Option(Path("migra.yaml"), "--config", "-c", help="Config file path."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Errors only."),
    json_output: bool = typer.Option(False, "--json", help="Machine-readable JSON output."),
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Deploy, roll back and inspect migrations for Django, Laravel and Prisma services."""
    ctx.obj = CliState(
        config_path=config,
        verbose=verbose,
        quiet=quiet,
        json_output=json_output,
    )


app.command("deploy")(migrate.deploy)
app.command("rollback")(migrate.rollback)
app.command("status")(migrate.status)
app.command("history")(migrate.history)
app.command("validate")(validate.validate)

app.add_typer(tenants_app, name="tenants", help="Multi-tenant operations.")
app.add_typer(state_app, name="state", help="Inspect or reset execution state.")


def main() -> None:
    app()
