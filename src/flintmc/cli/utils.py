"""Utility functions for the FlintMC CLI."""

import os
import sys
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from flintmc.cli.config import LOCAL_ENV_FILE
from flintmc.core.offsets import Offset
from flintmc.core.results import TestResult, summarize
from flintmc.core.settings import Settings
from flintmc.core.test_spec import TestSpec


def get_project_root() -> Path:
    """Get the project root directory.

    Walks up from current working directory looking for pyproject.toml.
    Falls back to cwd if not found.
    """
    current = Path.cwd()
    for parent in [current, *current.parents]:
        if (parent / "pyproject.toml").exists():
            return parent
    return current


def configure_logging(verbose: bool = False) -> None:
    """Route loguru output to stderr at the requested level.

    ``--verbose`` forces DEBUG; otherwise ``LOGURU_LEVEL`` (default INFO) wins.
    """
    level = "DEBUG" if verbose else os.getenv("LOGURU_LEVEL", "INFO").upper()
    logger.configure(
        handlers=[
            {
                "sink": sys.stderr,
                "level": level,
                "format": "<dim>{time:HH:mm:ss.SSS}</dim> <level>{level: <7}</level> {message}",
            }
        ]
    )


def load_settings(env: str = LOCAL_ENV_FILE) -> Settings:
    """Load an optional env file, then read ``FLINT_*`` settings."""
    env_path = Path(env)
    if not env_path.is_absolute():
        env_path = get_project_root() / env_path
    if env_path.exists():
        load_dotenv(env_path, override=False)
        logger.debug("Loaded environment from {}", env_path)
    return Settings.from_env()


def print_header(console: Console, settings: Settings, test_count: int, mode: str) -> None:
    """Print the run banner."""
    console.print(f"[bold]Server:[/bold] [cyan]{settings.server}[/cyan]")
    console.print(f"[bold]Tests:[/bold] [cyan]{test_count}[/cyan] ({mode})")
    console.print()


def print_test_table(
    console: Console, tests: Sequence[TestSpec], offsets: Sequence[Offset]
) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Test")
    table.add_column("Ticks", justify="right")
    table.add_column("Assertions", justify="right")
    table.add_column("Offset")
    table.add_column("Source", style="dim")
    for test, offset in zip(tests, offsets):
        table.add_row(
            test.name,
            str(test.max_tick),
            str(test.assertion_count),
            f"{offset[0]}, {offset[1]}, {offset[2]}",
            test.source or "",
        )
    console.print(table)


def print_results(console: Console, results: Sequence[TestResult]) -> None:
    """Print per-test verdicts followed by a one-line summary."""
    for result in results:
        label = escape(f"[{result.test_name}]")
        if result.success:
            console.print(
                f"  [green]✓[/green] {label} Test passed: {result.passed} assertions"
            )
        else:
            console.print(
                f"  [red]✗[/red] {label} Test failed: "
                f"{result.passed} passed, {result.failed} failed"
            )

    summary = summarize(results)
    console.print()
    if summary.success:
        console.print(f"[green]✓ All {summary.total} tests passed[/green]")
    else:
        console.print(
            f"[red]✗ {summary.failed_tests} of {summary.total} tests failed[/red]"
        )
