"""Merge per-test timelines into one tick-indexed schedule."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Sequence, Tuple

from flintmc.core.offsets import Offset
from flintmc.core.test_spec import TestSpec, TimelineEntry


@dataclass(frozen=True)
class ScheduledAction:
    """A single firing of a timeline entry on behalf of one test."""

    test_index: int
    entry: TimelineEntry
    occurrence: int


@dataclass
class GlobalTimeline:
    """Actions bucketed by tick for one run.

    Within a tick, actions keep test order, then entry declaration order,
    then occurrence order. That order is what makes two runs against the
    same backend issue identical command streams.
    """

    buckets: Dict[int, List[ScheduledAction]] = field(default_factory=dict)
    max_tick: int = 0

    def due(self, tick: int) -> List[ScheduledAction]:
        return self.buckets.get(tick, [])

    def ticks(self) -> range:
        """Every tick the scheduler visits, including empty ones."""
        return range(0, self.max_tick + 1)

    @property
    def active_ticks(self) -> int:
        return len(self.buckets)

    def __iter__(self) -> Iterator[Tuple[int, List[ScheduledAction]]]:
        for tick in self.ticks():
            yield tick, self.due(tick)


def build_global_timeline(tests: Sequence[Tuple[TestSpec, Offset]]) -> GlobalTimeline:
    buckets: Dict[int, List[ScheduledAction]] = defaultdict(list)
    max_tick = 0

    for test_index, (test, _offset) in enumerate(tests):
        max_tick = max(max_tick, test.max_tick)
        for entry in test.timeline:
            for occurrence, tick in enumerate(entry.at):
                buckets[tick].append(ScheduledAction(test_index, entry, occurrence))

    return GlobalTimeline(buckets=dict(buckets), max_tick=max_tick)


__all__ = ["GlobalTimeline", "ScheduledAction", "build_global_timeline"]
