"""FlintMC CLI.

A command-line interface for running tick-stepped world tests.

Usage:
    uv sync --extra test
    uv run flint --help
"""

from flintmc.cli.app import app

__all__ = ["app"]
