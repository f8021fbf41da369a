"""Load test definitions from JSON files."""

from __future__ import annotations

import fnmatch
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from loguru import logger

from flintmc.core.errors import TestSpecError
from flintmc.core.test_spec import (
    Action,
    Assert,
    AssertState,
    BlockCheck,
    BlockPlacement,
    Fill,
    Place,
    PlaceEach,
    Position,
    Region,
    Remove,
    TestSpec,
    TimelineEntry,
    action_positions,
    bounding_region,
    normalize_region,
)

TEST_FILE_GLOB = "*.json"


def _position(value: Any, what: str) -> Position:
    if (
        not isinstance(value, (list, tuple))
        or len(value) != 3
        or not all(isinstance(v, int) and not isinstance(v, bool) for v in value)
    ):
        raise TestSpecError(f"{what} must be a list of three integers, got {value!r}")
    return (value[0], value[1], value[2])


def _region(value: Any, what: str) -> Region:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise TestSpecError(f"{what} must be a pair of positions, got {value!r}")
    return _position(value[0], f"{what}[0]"), _position(value[1], f"{what}[1]")


def _string(data: Dict[str, Any], key: str, what: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise TestSpecError(f"{what} requires a non-empty string '{key}'")
    return value


def _objects(value: Any, what: str) -> List[Dict[str, Any]]:
    if not isinstance(value, list) or not value or not all(isinstance(v, dict) for v in value):
        raise TestSpecError(f"{what} must be a non-empty list of objects")
    return value


def _ticks(value: Any) -> tuple[int, ...]:
    if isinstance(value, int) and not isinstance(value, bool):
        return (value,)
    if isinstance(value, list):
        return tuple(value)
    raise TestSpecError(f"'at' must be a tick or a list of ticks, got {value!r}")


def parse_action(data: Dict[str, Any]) -> Action:
    kind = data.get("do")

    if kind == "place":
        return Place(_position(data.get("pos"), "place.pos"), _string(data, "block", "place"))

    if kind == "place_each":
        blocks = _objects(data.get("blocks"), "place_each.blocks")
        return PlaceEach(
            tuple(
                BlockPlacement(
                    _position(item.get("pos"), f"place_each.blocks[{index}].pos"),
                    _string(item, "block", f"place_each.blocks[{index}]"),
                )
                for index, item in enumerate(blocks)
            )
        )

    if kind == "fill":
        return Fill(_region(data.get("region"), "fill.region"), _string(data, "with", "fill"))

    if kind == "remove":
        return Remove(_position(data.get("pos"), "remove.pos"))

    if kind == "assert":
        checks = _objects(data.get("checks"), "assert.checks")
        return Assert(
            tuple(
                BlockCheck(
                    _position(item.get("pos"), f"assert.checks[{index}].pos"),
                    _string(item, "is", f"assert.checks[{index}]"),
                )
                for index, item in enumerate(checks)
            )
        )

    if kind == "assert_state":
        values = data.get("values")
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise TestSpecError("assert_state requires a 'values' list of strings")
        return AssertState(
            _position(data.get("pos"), "assert_state.pos"),
            _string(data, "state", "assert_state"),
            tuple(values),
        )

    raise TestSpecError(f"unknown action {kind!r}")


def parse_test(data: Dict[str, Any], *, source: Optional[str] = None) -> TestSpec:
    """Build a ``TestSpec`` from decoded JSON."""

    if not isinstance(data, dict):
        raise TestSpecError("test file must contain a JSON object", source=source)

    try:
        name = _string(data, "name", "test")
        raw_timeline = data.get("timeline")
        if not isinstance(raw_timeline, list):
            raise TestSpecError("test requires a 'timeline' list")

        timeline: List[TimelineEntry] = []
        for index, raw_entry in enumerate(raw_timeline):
            if not isinstance(raw_entry, dict):
                raise TestSpecError(f"timeline[{index}] must be an object")
            try:
                timeline.append(
                    TimelineEntry(at=_ticks(raw_entry.get("at")), action=parse_action(raw_entry))
                )
            except TestSpecError as exc:
                raise TestSpecError(f"timeline[{index}]: {exc}") from exc

        cleanup = data.get("cleanup")
        if cleanup is not None:
            if not isinstance(cleanup, dict):
                raise TestSpecError("'cleanup' must be an object")
            region = normalize_region(_region(cleanup.get("region"), "cleanup.region"))
        else:
            positions = [
                pos for entry in timeline for pos in action_positions(entry.action)
            ]
            region = bounding_region(positions)
    except TestSpecError as exc:
        if source and exc.source is None:
            raise TestSpecError(str(exc), source=source) from exc
        raise

    description = data.get("description")
    return TestSpec(
        name=name,
        description=description if isinstance(description, str) else None,
        timeline=tuple(timeline),
        cleanup_region=region,
        source=source,
    )


def load_test_file(path: Path | str) -> TestSpec:
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise TestSpecError(f"invalid JSON: {exc}", source=str(path)) from exc
    except OSError as exc:
        raise TestSpecError(f"cannot read file: {exc}", source=str(path)) from exc
    return parse_test(data, source=str(path))


def discover_test_files(paths: Iterable[Path | str]) -> List[Path]:
    """Expand files and directories into a sorted list of test files."""

    found: List[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            found.extend(sorted(path.rglob(TEST_FILE_GLOB)))
        elif path.is_file():
            found.append(path)
        else:
            raise TestSpecError("no such file or directory", source=str(path))
    return found


def load_tests(paths: Iterable[Path | str]) -> List[TestSpec]:
    files = discover_test_files(paths)
    tests = [load_test_file(path) for path in files]
    logger.debug("Loaded {} tests from {} files", len(tests), len(files))
    return tests


def filter_tests(tests: Sequence[TestSpec], pattern: Optional[str]) -> List[TestSpec]:
    """Keep tests whose name matches a shell-style pattern."""

    if not pattern:
        return list(tests)
    return [test for test in tests if fnmatch.fnmatchcase(test.name, pattern)]


__all__ = [
    "discover_test_files",
    "filter_tests",
    "load_test_file",
    "load_tests",
    "parse_action",
    "parse_test",
]
