"""Entry point for running the CLI as a module.

Usage:
    python -m flintmc.cli
"""

from flintmc.cli.app import app

if __name__ == "__main__":
    app()
