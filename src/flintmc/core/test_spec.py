"""In-memory test definitions.

A test is a named timeline of actions and assertions keyed by world tick.
Positions are always test-local; the scheduler maps them into the world with
an offset (see ``flintmc.core.offsets``) and never mutates these objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from flintmc.core.errors import TestSpecError

Position = Tuple[int, int, int]
Region = Tuple[Position, Position]


@dataclass(frozen=True)
class BlockPlacement:
    pos: Position
    block: str


@dataclass(frozen=True)
class BlockCheck:
    pos: Position
    expected: str


@dataclass(frozen=True)
class Place:
    pos: Position
    block: str


@dataclass(frozen=True)
class PlaceEach:
    blocks: Tuple[BlockPlacement, ...]


@dataclass(frozen=True)
class Fill:
    region: Region
    block: str


@dataclass(frozen=True)
class Remove:
    pos: Position


@dataclass(frozen=True)
class Assert:
    checks: Tuple[BlockCheck, ...]


@dataclass(frozen=True)
class AssertState:
    """Check a block state property; one expected value per firing tick."""

    pos: Position
    state: str
    values: Tuple[str, ...]


Action = Union[Place, PlaceEach, Fill, Remove, Assert, AssertState]

ASSERTION_TYPES = (Assert, AssertState)


@dataclass(frozen=True)
class TimelineEntry:
    """One action fired at each tick listed in ``at``.

    The occurrence index of a firing is its position in ``at``; AssertState
    uses it to pick the expected value for that firing.
    """

    at: Tuple[int, ...]
    action: Action

    def __post_init__(self) -> None:
        if not self.at:
            raise TestSpecError("timeline entry must fire on at least one tick")
        for tick in self.at:
            if isinstance(tick, bool) or not isinstance(tick, int) or tick < 0:
                raise TestSpecError(f"tick must be a nonnegative integer, got {tick!r}")
        if isinstance(self.action, AssertState) and len(self.action.values) != len(self.at):
            raise TestSpecError(
                f"assert_state on {self.action.state!r} lists {len(self.action.values)} "
                f"values for {len(self.at)} ticks"
            )

    @property
    def is_assertion(self) -> bool:
        return isinstance(self.action, ASSERTION_TYPES)


@dataclass(frozen=True)
class TestSpec:
    """A single world-state test."""

    __test__ = False

    name: str
    timeline: Tuple[TimelineEntry, ...]
    cleanup_region: Region
    description: Optional[str] = None
    source: Optional[str] = field(default=None, compare=False)

    @property
    def max_tick(self) -> int:
        """Highest tick referenced by the timeline (0 when empty)."""
        return max((tick for entry in self.timeline for tick in entry.at), default=0)

    @property
    def assertion_count(self) -> int:
        """Number of assertion firings the test will produce."""
        return sum(len(entry.at) for entry in self.timeline if entry.is_assertion)


def action_positions(action: Action) -> list[Position]:
    """Return every position an action touches, in test-local coordinates."""

    if isinstance(action, (Place, Remove, AssertState)):
        return [action.pos]
    if isinstance(action, PlaceEach):
        return [placement.pos for placement in action.blocks]
    if isinstance(action, Fill):
        return list(action.region)
    if isinstance(action, Assert):
        return [check.pos for check in action.checks]
    raise TypeError(f"Unknown action type {type(action).__name__}")


def bounding_region(positions: list[Position]) -> Region:
    """Smallest region containing every position."""

    if not positions:
        raise TestSpecError("cannot derive a cleanup region from an empty timeline")
    xs, ys, zs = zip(*positions)
    return (min(xs), min(ys), min(zs)), (max(xs), max(ys), max(zs))


def normalize_region(region: Region) -> Region:
    """Order region corners so the first is the minimum on every axis."""

    (x1, y1, z1), (x2, y2, z2) = region
    return (min(x1, x2), min(y1, y2), min(z1, z2)), (max(x1, x2), max(y1, y2), max(z1, z2))


__all__ = [
    "Action",
    "Assert",
    "AssertState",
    "BlockCheck",
    "BlockPlacement",
    "Fill",
    "Place",
    "PlaceEach",
    "Position",
    "Region",
    "Remove",
    "TestSpec",
    "TimelineEntry",
    "action_positions",
    "bounding_region",
    "normalize_region",
]
