"""Mapping between test-local and world coordinates.

Every test runs inside its own slice of the shared world. An offset is added
to each position before it is sent to the backend; the test definition itself
is never rewritten.
"""

from __future__ import annotations

from typing import Sequence, Tuple

from flintmc.core.test_spec import Position, Region, TestSpec, normalize_region

Offset = Tuple[int, int, int]

ORIGIN: Offset = (0, 0, 0)


def translate(pos: Position, offset: Offset) -> Position:
    return (pos[0] + offset[0], pos[1] + offset[1], pos[2] + offset[2])


def untranslate(pos: Position, offset: Offset) -> Position:
    return (pos[0] - offset[0], pos[1] - offset[1], pos[2] - offset[2])


def translate_region(region: Region, offset: Offset) -> Region:
    return translate(region[0], offset), translate(region[1], offset)


def layout_offsets(
    tests: Sequence[TestSpec],
    *,
    gap: int = 4,
    origin: Offset = ORIGIN,
) -> list[Offset]:
    """Lay tests out side by side along the X axis.

    Each test's cleanup region is shifted so its minimum X lands on a running
    cursor, with ``gap`` empty blocks between neighbours. Y and Z are only
    moved by ``origin``, so tests keep their authored heights.

    Args:
        tests: Tests in scheduling order.
        gap: Number of untouched blocks between adjacent regions.
        origin: World position where the first region starts on X.

    Returns:
        One offset per test, in the same order.
    """
    if gap < 0:
        raise ValueError("gap must be nonnegative")

    offsets: list[Offset] = []
    cursor = origin[0]
    for test in tests:
        (min_x, _, _), (max_x, _, _) = normalize_region(test.cleanup_region)
        offsets.append((cursor - min_x, origin[1], origin[2]))
        cursor += (max_x - min_x + 1) + gap
    return offsets


__all__ = [
    "ORIGIN",
    "Offset",
    "layout_offsets",
    "translate",
    "translate_region",
    "untranslate",
]
