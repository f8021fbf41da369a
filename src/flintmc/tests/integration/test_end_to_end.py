"""Run the bundled test files through a real websocket agent."""

import pytest

from conftest import EXAMPLE_TESTS_DIR
from flintmc.cli.run import run_suite
from flintmc.core.loader import load_tests, parse_test
from flintmc.core.offsets import layout_offsets

pytestmark = pytest.mark.integration


def _laid_out(tests, gap=4):
    return list(zip(tests, layout_offsets(tests, gap=gap)))


@pytest.mark.asyncio
async def test_example_suite_passes_in_parallel(sandbox_server, world, fast_settings):
    tests = load_tests([EXAMPLE_TESTS_DIR])
    settings = fast_settings.with_overrides(server=sandbox_server)

    results = await run_suite(_laid_out(tests), settings)

    assert [r.test_name for r in results] == [t.name for t in tests]
    assert all(r.success for r in results), results
    assert [r.passed for r in results] == [1, 2, 3]
    assert world.tick == 4
    assert world.frozen is False
    assert len(world) == 0


@pytest.mark.asyncio
async def test_example_suite_passes_sequentially(sandbox_server, world, fast_settings):
    tests = load_tests([EXAMPLE_TESTS_DIR])
    settings = fast_settings.with_overrides(server=sandbox_server)

    results = await run_suite(_laid_out(tests), settings, sequential=True)

    assert all(r.success for r in results)
    assert world.tick == 2 + 3 + 4
    assert world.history.count("tick freeze") == 3


@pytest.mark.asyncio
async def test_failing_test_is_reported_next_to_passing_one(
    sandbox_server, world, fast_settings
):
    broken = parse_test(
        {
            "name": "wrong_block",
            "timeline": [
                {"at": 0, "do": "place", "pos": [0, 0, 0], "block": "minecraft:dirt"},
                {"at": 1, "do": "assert", "checks": [{"pos": [0, 0, 0], "is": "stone"}]},
            ],
        }
    )
    tests = [broken, *load_tests([EXAMPLE_TESTS_DIR / "basic_placement.json"])]
    settings = fast_settings.with_overrides(server=sandbox_server)

    results = await run_suite(_laid_out(tests), settings)

    assert (results[0].passed, results[0].failed) == (0, 1)
    assert results[1].success
    assert len(world) == 0
