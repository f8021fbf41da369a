"""Tick-step scheduler.

Drives the shared world clock for a batch of tests:

    IDLE -> AREA_PREPARED -> FROZEN -> STEPPING <-> ADVANCING
         -> UNFROZEN -> CLEANED -> DONE

All commands go out one at a time over the single agent connection, in the
order fixed by the global timeline. An assertion failure only marks its own
test as failed; a ``CommandError`` aborts the whole run.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from loguru import logger

from flintmc.agent.base import AgentSession
from flintmc.core import commands
from flintmc.core.executor import ActionExecutor, Failed
from flintmc.core.offsets import ORIGIN, Offset, translate_region
from flintmc.core.results import ResultAggregator, TestResult
from flintmc.core.settings import Settings
from flintmc.core.test_spec import TestSpec
from flintmc.core.timeline import build_global_timeline


class SchedulerState(str, Enum):
    IDLE = "idle"
    AREA_PREPARED = "area_prepared"
    FROZEN = "frozen"
    STEPPING = "stepping"
    ADVANCING = "advancing"
    UNFROZEN = "unfrozen"
    CLEANED = "cleaned"
    DONE = "done"


class TickScheduler:
    """Runs tests against one agent, stepping a frozen clock tick by tick."""

    def __init__(
        self,
        agent: AgentSession,
        settings: Optional[Settings] = None,
        *,
        executor: Optional[ActionExecutor] = None,
    ) -> None:
        self.agent = agent
        self.settings = settings or Settings()
        self.executor = executor or ActionExecutor(agent, self.settings)
        self.state = SchedulerState.IDLE
        self.current_tick: int = 0

    def _transition(self, state: SchedulerState) -> None:
        logger.debug("SCHEDULER {} -> {}", self.state.value, state.value)
        self.state = state

    async def run(self, tests: Sequence[Tuple[TestSpec, Offset]]) -> List[TestResult]:
        """Run every test in one merged timeline and return their results.

        Args:
            tests: (test, offset) pairs; offsets place each test in the world.

        Returns:
            One result per test, in the order given.

        Raises:
            CommandError: The backend could not be reached mid-run.
            IndexError: An AssertState firing had no expected value.
        """
        self.state = SchedulerState.IDLE
        self.current_tick = 0

        timeline = build_global_timeline(tests)
        aggregator = ResultAggregator([test.name for test, _ in tests])
        logger.info(
            "RUN tests={} max_tick={} active_ticks={}",
            len(tests), timeline.max_tick, timeline.active_ticks,
        )

        await self._clear_regions(tests)
        self._transition(SchedulerState.AREA_PREPARED)

        await self.agent.send_command(commands.TICK_FREEZE)
        await asyncio.sleep(self.settings.freeze_settle)
        self._transition(SchedulerState.FROZEN)

        for tick, due in timeline:
            self.current_tick = tick
            self._transition(SchedulerState.STEPPING)
            if due:
                logger.debug("TICK {} actions={}", tick, len(due))

            for item in due:
                test, offset = tests[item.test_index]
                outcome = await self.executor.execute(
                    tick, item.entry, item.occurrence, offset, test_name=test.name
                )
                aggregator.record(item.test_index, outcome)
                if isinstance(outcome, Failed):
                    logger.error(
                        "ASSERT_FAIL test={} tick={} {}", test.name, tick, outcome.reason
                    )

            if tick < timeline.max_tick:
                self._transition(SchedulerState.ADVANCING)
                await self.agent.send_command(commands.tick_step(1))
                await asyncio.sleep(self.settings.step_settle)

        await self.agent.send_command(commands.TICK_UNFREEZE)
        self._transition(SchedulerState.UNFROZEN)

        await self._clear_regions(tests)
        self._transition(SchedulerState.CLEANED)

        results = aggregator.finalize()
        for result in results:
            if result.success:
                logger.info("PASS test={} assertions={}", result.test_name, result.passed)
            else:
                logger.warning(
                    "FAIL test={} passed={} failed={}",
                    result.test_name, result.passed, result.failed,
                )
        self._transition(SchedulerState.DONE)
        return results

    async def run_single(self, test: TestSpec, offset: Offset = ORIGIN) -> TestResult:
        """Run one test on its own clock cycle."""
        if test.description:
            logger.info("TEST {} - {}", test.name, test.description)
        results = await self.run([(test, offset)])
        return results[0]

    async def run_sequential(
        self, tests: Sequence[Tuple[TestSpec, Offset]]
    ) -> List[TestResult]:
        """Run tests one after another, each with its own freeze/cleanup cycle."""
        results: List[TestResult] = []
        for test, offset in tests:
            results.append(await self.run_single(test, offset))
        return results

    async def _clear_regions(self, tests: Sequence[Tuple[TestSpec, Offset]]) -> None:
        for test, offset in tests:
            region = translate_region(test.cleanup_region, offset)
            await self.agent.send_command(commands.fill(region, commands.AIR))
        logger.info("CLEANUP regions={}", len(tests))
        await asyncio.sleep(self.settings.cleanup_settle)


__all__ = ["SchedulerState", "TickScheduler"]
