"""Local reference backend for running tests without a game server."""

from flintmc.sandbox.world import Block, SandboxCommandError, SandboxWorld, parse_block

__all__ = ["Block", "SandboxCommandError", "SandboxWorld", "parse_block"]
