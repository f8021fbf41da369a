"""Error types raised by the test runner."""

from __future__ import annotations

from typing import Optional


class FlintError(RuntimeError):
    """Base class for runner errors."""


class SetupError(FlintError):
    """Raised when the agent cannot connect or never reaches a ready session.

    Fatal: the run is aborted before any test is scheduled.
    """


class CommandError(FlintError):
    """Raised when a command or query cannot be delivered to the backend."""

    def __init__(self, command: str, detail: str, status: Optional[int] = None) -> None:
        super().__init__(f"{command!r} failed: {detail}")
        self.command = command
        self.detail = detail
        self.status = status


class TestSpecError(FlintError, ValueError):
    """Raised when a test definition is malformed or violates its invariants."""

    __test__ = False  # not a pytest test class

    def __init__(self, message: str, *, source: Optional[str] = None) -> None:
        if source:
            message = f"{source}: {message}"
        super().__init__(message)
        self.source = source


__all__ = ["FlintError", "SetupError", "CommandError", "TestSpecError"]
