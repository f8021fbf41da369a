"""Main Typer application for the FlintMC CLI.

This module defines the root CLI app and registers all commands.
"""

import typer
from rich.console import Console

from flintmc.cli import run as run_cmd
from flintmc.cli import sandbox as sandbox_cmd

console = Console()

app = typer.Typer(
    name="flint",
    help="FlintMC - tick-stepped world tests for a live game server.",
    rich_markup_mode="rich",
    no_args_is_help=True,
)

app.command(name="run")(run_cmd.run)
app.command(name="list")(run_cmd.list_tests)
app.add_typer(sandbox_cmd.app, name="sandbox", help="Run the local sandbox world")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from importlib.metadata import PackageNotFoundError, version as get_version

        try:
            v = get_version("flintmc")
        except PackageNotFoundError:
            v = "0.1.0"
        console.print(f"[bold]FlintMC[/bold] v{v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        is_eager=True,
        callback=version_callback,
    ),
) -> None:
    """FlintMC - tick-stepped world tests for a live game server."""
