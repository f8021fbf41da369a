"""Apply timeline actions to the backend and evaluate assertions."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional, Union

from loguru import logger

from flintmc.agent.base import AgentSession
from flintmc.core import commands
from flintmc.core.offsets import Offset, translate, translate_region
from flintmc.core.settings import Settings
from flintmc.core.test_spec import (
    Assert,
    AssertState,
    Fill,
    Place,
    PlaceEach,
    Position,
    Remove,
    TimelineEntry,
)

NAMESPACE_PREFIX = "minecraft:"
SEPARATORS = ("_",)


@dataclass(frozen=True)
class Passed:
    pass


@dataclass(frozen=True)
class Neutral:
    pass


@dataclass(frozen=True)
class Failed:
    reason: str


Outcome = Union[Passed, Neutral, Failed]

PASSED = Passed()
NEUTRAL = Neutral()


def normalize_block_id(value: str) -> str:
    """Case-fold a block id and drop its namespace and separator characters."""
    text = value.strip().casefold().replace(NAMESPACE_PREFIX, "")
    for separator in SEPARATORS:
        text = text.replace(separator, "")
    return text


def blocks_match(expected: str, actual: Optional[str]) -> bool:
    if actual is None:
        return False
    want = normalize_block_id(expected)
    got = normalize_block_id(actual)
    if not want or not got:
        return False
    return want in got or got in want


def _fmt(pos: Position) -> str:
    return f"[{pos[0]}, {pos[1]}, {pos[2]}]"


class ActionExecutor:
    """Runs one timeline firing against the agent.

    Building actions are always ``Neutral``; an Assert or AssertState entry
    yields exactly one ``Passed`` or ``Failed``. Transport errors from the
    agent are not caught here.
    """

    def __init__(self, agent: AgentSession, settings: Optional[Settings] = None) -> None:
        self.agent = agent
        self.settings = settings or Settings()

    async def execute(
        self,
        tick: int,
        entry: TimelineEntry,
        occurrence: int,
        offset: Offset,
        *,
        test_name: str = "",
    ) -> Outcome:
        action = entry.action

        if isinstance(action, Place):
            await self.agent.send_command(
                commands.setblock(translate(action.pos, offset), action.block)
            )
            logger.info(
                "PLACE test={} tick={} pos={} block={}",
                test_name, tick, _fmt(action.pos), action.block,
            )
            return NEUTRAL

        if isinstance(action, PlaceEach):
            for placement in action.blocks:
                await self.agent.send_command(
                    commands.setblock(translate(placement.pos, offset), placement.block)
                )
                logger.info(
                    "PLACE test={} tick={} pos={} block={}",
                    test_name, tick, _fmt(placement.pos), placement.block,
                )
                await asyncio.sleep(self.settings.place_each_pacing)
            return NEUTRAL

        if isinstance(action, Fill):
            await self.agent.send_command(
                commands.fill(translate_region(action.region, offset), action.block)
            )
            logger.info(
                "FILL test={} tick={} from={} to={} block={}",
                test_name, tick, _fmt(action.region[0]), _fmt(action.region[1]), action.block,
            )
            return NEUTRAL

        if isinstance(action, Remove):
            await self.agent.send_command(
                commands.setblock(translate(action.pos, offset), commands.AIR)
            )
            logger.info("REMOVE test={} tick={} pos={}", test_name, tick, _fmt(action.pos))
            return NEUTRAL

        if isinstance(action, Assert):
            return await self._assert_blocks(tick, action, offset, test_name)

        if isinstance(action, AssertState):
            return await self._assert_state(tick, action, occurrence, offset, test_name)

        raise TypeError(f"Unknown action type {type(action).__name__}")

    async def _assert_blocks(
        self, tick: int, action: Assert, offset: Offset, test_name: str
    ) -> Outcome:
        # Block updates reach the agent asynchronously.
        await asyncio.sleep(self.settings.assert_settle)

        for check in action.checks:
            actual = await self.agent.get_block(translate(check.pos, offset))
            if not blocks_match(check.expected, actual):
                return Failed(
                    f"Block at {_fmt(check.pos)} is not {check.expected} (got {actual!r})"
                )
            logger.info(
                "ASSERT_OK test={} tick={} pos={} is={}",
                test_name, tick, _fmt(check.pos), check.expected,
            )
        return PASSED

    async def _assert_state(
        self,
        tick: int,
        action: AssertState,
        occurrence: int,
        offset: Offset,
        test_name: str,
    ) -> Outcome:
        if occurrence < 0 or occurrence >= len(action.values):
            raise IndexError(
                f"occurrence {occurrence} out of range for {len(action.values)} "
                f"expected values of state {action.state!r}"
            )
        expected = action.values[occurrence]

        await asyncio.sleep(self.settings.assert_settle)

        actual = await self.agent.get_block_state_property(
            translate(action.pos, offset), action.state
        )
        if actual is None or expected not in actual:
            return Failed(
                f"Block at {_fmt(action.pos)} state {action.state} is not {expected} "
                f"(got {actual!r})"
            )
        logger.info(
            "ASSERT_OK test={} tick={} pos={} state={} value={}",
            test_name, tick, _fmt(action.pos), action.state, expected,
        )
        return PASSED


__all__ = [
    "NEUTRAL",
    "PASSED",
    "ActionExecutor",
    "Failed",
    "Neutral",
    "Outcome",
    "Passed",
    "blocks_match",
    "normalize_block_id",
]
