"""In-memory block world that understands the runner's command grammar.

Supported commands (leading ``/`` optional)::

    fill x1 y1 z1 x2 y2 z2 <block>
    setblock x y z <block>
    tick freeze | tick unfreeze | tick step <n> | tick query

Block ids may carry properties, e.g. ``minecraft:lever[powered=true]``.
Unset positions read as air.
"""

from __future__ import annotations

import re
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, List, Tuple

from flintmc.core.test_spec import Position, Region, normalize_region

DEFAULT_NAMESPACE = "minecraft"
AIR_ID = "minecraft:air"
MAX_FILL_VOLUME = 32768
HISTORY_LIMIT = 1024

_BLOCK_RE = re.compile(r"^(?P<id>[a-z0-9_.\-]+(?::[a-z0-9_./\-]+)?)(?:\[(?P<props>[^\]]*)\])?$")


class SandboxCommandError(ValueError):
    """Raised when a command is unknown or malformed."""


@dataclass(frozen=True)
class Block:
    id: str
    properties: Tuple[Tuple[str, str], ...] = ()

    @property
    def is_air(self) -> bool:
        return self.id == AIR_ID

    def debug_string(self) -> str:
        parts = [f"id: {self.id}"]
        parts.extend(f"{key}: {value}" for key, value in self.properties)
        return "BlockState { " + ", ".join(parts) + " }"


AIR = Block(AIR_ID)


def parse_block(text: str) -> Block:
    match = _BLOCK_RE.match(text.strip().lower())
    if match is None:
        raise SandboxCommandError(f"Invalid block {text!r}")

    block_id = match.group("id")
    if ":" not in block_id:
        block_id = f"{DEFAULT_NAMESPACE}:{block_id}"

    properties: List[Tuple[str, str]] = []
    raw_props = match.group("props")
    if raw_props:
        for item in raw_props.split(","):
            key, sep, value = item.partition("=")
            if not sep or not key.strip() or not value.strip():
                raise SandboxCommandError(f"Invalid block property {item!r} in {text!r}")
            properties.append((key.strip(), value.strip()))
    return Block(block_id, tuple(sorted(properties)))


def _parse_coords(tokens: List[str]) -> Position:
    try:
        x, y, z = (int(token) for token in tokens)
    except ValueError as exc:
        raise SandboxCommandError(f"Invalid coordinates {' '.join(tokens)!r}") from exc
    return (x, y, z)


class SandboxWorld:
    """Sparse block storage with a freezable tick counter.

    ``history`` keeps only the most recent ``history_limit`` commands.
    """

    def __init__(self, history_limit: int = HISTORY_LIMIT) -> None:
        self._blocks: Dict[Position, Block] = {}
        self.tick = 0
        self.frozen = False
        self.history: Deque[str] = deque(maxlen=history_limit)

    def __len__(self) -> int:
        return len(self._blocks)

    def get_block(self, pos: Position) -> Block:
        return self._blocks.get(tuple(pos), AIR)

    def set_block(self, pos: Position, block: Block) -> None:
        key = tuple(pos)
        if block.is_air:
            self._blocks.pop(key, None)
        else:
            self._blocks[key] = block

    def block_state(self, pos: Position) -> str:
        return self.get_block(pos).debug_string()

    def fill(self, region: Region, block: Block) -> int:
        (x1, y1, z1), (x2, y2, z2) = normalize_region(region)
        volume = (x2 - x1 + 1) * (y2 - y1 + 1) * (z2 - z1 + 1)
        if volume > MAX_FILL_VOLUME:
            raise SandboxCommandError(
                f"Too many blocks in the specified area (maximum {MAX_FILL_VOLUME}, specified {volume})"
            )
        for x in range(x1, x2 + 1):
            for y in range(y1, y2 + 1):
                for z in range(z1, z2 + 1):
                    self.set_block((x, y, z), block)
        return volume

    def execute(self, command: str) -> Dict[str, Any]:
        """Run one command and return a result payload."""

        text = command.strip()
        if text.startswith("/"):
            text = text[1:]
        tokens = text.split()
        if not tokens:
            raise SandboxCommandError("Empty command")

        name, args = tokens[0].lower(), tokens[1:]
        if name == "setblock":
            if len(args) != 4:
                raise SandboxCommandError("Usage: setblock <x> <y> <z> <block>")
            pos = _parse_coords(args[:3])
            self.set_block(pos, parse_block(args[3]))
            result: Dict[str, Any] = {"changed": 1}
        elif name == "fill":
            if len(args) != 7:
                raise SandboxCommandError("Usage: fill <x1> <y1> <z1> <x2> <y2> <z2> <block>")
            region = (_parse_coords(args[:3]), _parse_coords(args[3:6]))
            result = {"changed": self.fill(region, parse_block(args[6]))}
        elif name == "tick":
            result = self._tick_command(args)
        else:
            raise SandboxCommandError(f"Unknown command {name!r}")

        self.history.append(text)
        return result

    def _tick_command(self, args: List[str]) -> Dict[str, Any]:
        if not args:
            raise SandboxCommandError("Usage: tick <freeze|unfreeze|step|query>")
        sub = args[0].lower()
        if sub == "freeze" and len(args) == 1:
            self.frozen = True
        elif sub == "unfreeze" and len(args) == 1:
            self.frozen = False
        elif sub == "step" and len(args) <= 2:
            if not self.frozen:
                raise SandboxCommandError("Can only step when the game is frozen")
            try:
                count = int(args[1]) if len(args) == 2 else 1
            except ValueError as exc:
                raise SandboxCommandError(f"Invalid step count {args[1]!r}") from exc
            if count < 1:
                raise SandboxCommandError("Step count must be at least 1")
            self.tick += count
        elif sub == "query" and len(args) == 1:
            pass
        else:
            raise SandboxCommandError(f"Invalid tick command {' '.join(args)!r}")
        return {"tick": self.tick, "frozen": self.frozen}


__all__ = [
    "AIR",
    "AIR_ID",
    "Block",
    "SandboxCommandError",
    "SandboxWorld",
    "parse_block",
]
