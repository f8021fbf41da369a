"""Commands that load and run test files."""

import asyncio
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import typer
from loguru import logger
from rich.console import Console

from flintmc.agent.base import AgentSession
from flintmc.agent.client import AsyncAgentClient
from flintmc.cli.config import EXIT_RUN_ERROR, EXIT_TESTS_FAILED, LOCAL_ENV_FILE
from flintmc.cli.utils import (
    configure_logging,
    load_settings,
    print_header,
    print_results,
    print_test_table,
)
from flintmc.core.errors import CommandError, SetupError, TestSpecError
from flintmc.core.loader import filter_tests, load_tests
from flintmc.core.offsets import Offset, layout_offsets
from flintmc.core.results import TestResult, summarize
from flintmc.core.scheduler import TickScheduler
from flintmc.core.settings import Settings
from flintmc.core.test_spec import TestSpec

console = Console()


async def run_suite(
    tests: Sequence[Tuple[TestSpec, Offset]],
    settings: Settings,
    *,
    sequential: bool = False,
    agent: Optional[AgentSession] = None,
) -> List[TestResult]:
    """Connect an agent and run the given tests.

    Args:
        tests: (test, offset) pairs in scheduling order
        settings: Server address, timings and username
        sequential: Run each test on its own freeze/cleanup cycle
        agent: Pre-built agent (defaults to a websocket client)

    Returns:
        One result per test, in the order given
    """
    agent = agent or AsyncAgentClient(settings.username, settings=settings)
    try:
        await agent.connect(settings.server)
        scheduler = TickScheduler(agent, settings)
        if sequential:
            return await scheduler.run_sequential(tests)
        return await scheduler.run(tests)
    finally:
        await agent.close()


def _select_tests(paths: List[Path], pattern: Optional[str]) -> List[TestSpec]:
    tests = filter_tests(load_tests(paths), pattern)
    if not tests:
        console.print("[yellow]No tests found.[/yellow]")
        raise typer.Exit(code=EXIT_RUN_ERROR)
    return tests


def run(
    paths: List[Path] = typer.Argument(..., help="Test files or directories"),
    server: Optional[str] = typer.Option(
        None,
        "--server",
        "-s",
        help="Server address (ws://host:port/ws, http://host:port or host:port)",
    ),
    sequential: bool = typer.Option(
        False,
        "--sequential",
        help="Run tests one at a time instead of on one merged timeline",
    ),
    pattern: Optional[str] = typer.Option(
        None,
        "--filter",
        "-k",
        help="Only run tests whose name matches this glob",
    ),
    gap: Optional[int] = typer.Option(
        None,
        "--gap",
        help="Blocks left empty between neighbouring tests",
    ),
    env: str = typer.Option(
        LOCAL_ENV_FILE,
        "--env",
        "-e",
        help="Environment file to load before reading FLINT_* settings",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Run tests against a live server.

    Examples:
        flint run flint-tests/                     # Run every test in parallel
        flint run flint-tests/ -k "lever*"         # Filter by test name
        flint run flint-tests/ --sequential        # One test at a time
        flint run t.json -s localhost:8765         # Explicit server
    """
    configure_logging(verbose)
    try:
        settings = load_settings(env).with_overrides(server=server, layout_gap=gap)
        tests = _select_tests(paths, pattern)
    except (TestSpecError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=EXIT_RUN_ERROR)

    offsets = layout_offsets(tests, gap=settings.layout_gap)
    print_header(console, settings, len(tests), "sequential" if sequential else "parallel")

    try:
        results = asyncio.run(
            run_suite(list(zip(tests, offsets)), settings, sequential=sequential)
        )
    except SetupError as exc:
        console.print(f"[red]Setup failed:[/red] {exc}")
        raise typer.Exit(code=EXIT_RUN_ERROR)
    except CommandError as exc:
        console.print(f"[red]Run aborted:[/red] {exc}")
        raise typer.Exit(code=EXIT_RUN_ERROR)
    except KeyboardInterrupt:
        logger.info("INTERRUPTED by user")
        raise typer.Exit(code=130)

    console.print()
    print_results(console, results)
    if not summarize(results).success:
        raise typer.Exit(code=EXIT_TESTS_FAILED)


def list_tests(
    paths: List[Path] = typer.Argument(..., help="Test files or directories"),
    pattern: Optional[str] = typer.Option(
        None,
        "--filter",
        "-k",
        help="Only list tests whose name matches this glob",
    ),
    gap: Optional[int] = typer.Option(
        None,
        "--gap",
        help="Blocks left empty between neighbouring tests",
    ),
    env: str = typer.Option(
        LOCAL_ENV_FILE,
        "--env",
        "-e",
        help="Environment file to load before reading FLINT_* settings",
    ),
) -> None:
    """List discovered tests with their tick span and world offset."""
    configure_logging(False)
    try:
        settings = load_settings(env).with_overrides(layout_gap=gap)
        tests = _select_tests(paths, pattern)
        offsets = layout_offsets(tests, gap=settings.layout_gap)
    except (TestSpecError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=EXIT_RUN_ERROR)
    print_test_table(console, tests, offsets)
