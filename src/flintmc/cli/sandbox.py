"""Sandbox server command.

Serves an in-memory world over the agent websocket protocol so tests can be
run locally without a game server.
"""

import typer
import uvicorn
from rich.console import Console

from flintmc.cli.config import SANDBOX_HOST, SANDBOX_PORT
from flintmc.cli.utils import configure_logging
from flintmc.sandbox.server import create_app

app = typer.Typer(
    name="sandbox",
    help="Run the local sandbox world.",
)

console = Console()


@app.callback(invoke_without_command=True)
def serve(
    host: str = typer.Option(SANDBOX_HOST, "--host", help="Interface to bind"),
    port: int = typer.Option(SANDBOX_PORT, "--port", "-p", help="Port to listen on"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every command"),
) -> None:
    """Start the sandbox world server.

    Examples:
        flint sandbox                 # ws://127.0.0.1:8765/ws
        flint sandbox -p 9000         # Different port
    """
    configure_logging(verbose)
    console.print(f"[bold]Sandbox:[/bold] [cyan]ws://{host}:{port}/ws[/cyan]")
    uvicorn.run(create_app(), host=host, port=port, log_level="debug" if verbose else "info")
