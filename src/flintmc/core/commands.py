"""Text commands understood by the backend."""

from __future__ import annotations

from flintmc.core.test_spec import Position, Region

AIR = "air"
COMMAND_PREFIX = "/"

TICK_FREEZE = "tick freeze"
TICK_UNFREEZE = "tick unfreeze"


def tick_step(ticks: int = 1) -> str:
    return f"tick step {ticks}"


def setblock(pos: Position, block: str) -> str:
    x, y, z = pos
    return f"setblock {x} {y} {z} {block}"


def fill(region: Region, block: str) -> str:
    (x1, y1, z1), (x2, y2, z2) = region
    return f"fill {x1} {y1} {z1} {x2} {y2} {z2} {block}"


def with_prefix(command: str) -> str:
    """Add the command marker if the text does not already carry it."""
    if command.startswith(COMMAND_PREFIX):
        return command
    return f"{COMMAND_PREFIX}{command}"


__all__ = [
    "AIR",
    "COMMAND_PREFIX",
    "TICK_FREEZE",
    "TICK_UNFREEZE",
    "fill",
    "setblock",
    "tick_step",
    "with_prefix",
]
