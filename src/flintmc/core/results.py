"""Per-test pass/fail accounting."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from flintmc.core.executor import Failed, Outcome, Passed


@dataclass(frozen=True)
class TestResult:
    __test__ = False

    test_name: str
    passed: int
    failed: int

    @property
    def success(self) -> bool:
        return self.failed == 0


@dataclass(frozen=True)
class RunSummary:
    total: int
    passed_tests: int
    failed_tests: int

    @property
    def success(self) -> bool:
        return self.failed_tests == 0


class ResultAggregator:
    """Accumulates outcomes per test index while a run is in progress."""

    def __init__(self, test_names: Sequence[str]) -> None:
        self._names = list(test_names)
        self._passed = [0] * len(self._names)
        self._failed = [0] * len(self._names)

    def record(self, test_index: int, outcome: Outcome) -> None:
        if isinstance(outcome, Passed):
            self._passed[test_index] += 1
        elif isinstance(outcome, Failed):
            self._failed[test_index] += 1

    def counts(self, test_index: int) -> tuple[int, int]:
        return self._passed[test_index], self._failed[test_index]

    def finalize(self) -> List[TestResult]:
        """Results in the order the tests were given, not arrival order."""
        return [
            TestResult(test_name=name, passed=passed, failed=failed)
            for name, passed, failed in zip(self._names, self._passed, self._failed)
        ]


def summarize(results: Sequence[TestResult]) -> RunSummary:
    passed_tests = sum(1 for result in results if result.success)
    return RunSummary(
        total=len(results),
        passed_tests=passed_tests,
        failed_tests=len(results) - passed_tests,
    )


__all__ = ["ResultAggregator", "RunSummary", "TestResult", "summarize"]
