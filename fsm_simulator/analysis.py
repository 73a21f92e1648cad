from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .automata import Automaton

DEFAULT_MAX_STEPS = 10_000


@dataclass(frozen=True)
class TestCase:
    __test__ = False

    word: str
    expected: bool
    label: str = ""


@dataclass(frozen=True)
class TestResult:
    __test__ = False

    case: TestCase
    actual: Optional[bool]
    steps: int

    @property
    def passed(self) -> bool:
        return self.actual is not None and self.actual == self.case.expected

    @property
    def halted(self) -> bool:
        return self.actual is not None


def run_to_completion(
    machine: Automaton,
    word: str,
    max_steps: int = DEFAULT_MAX_STEPS,
) -> Optional[bool]:
    """Run ``word`` until the machine decides or ``max_steps`` steps pass.

    Returns None when the step budget ran out first, which only happens for
    Turing machines that loop.
    """
    machine.start_computation(word)
    taken = 0
    while not machine.is_finished() and taken < max_steps:
        machine.step()
        taken += 1
    return machine.accepts()


def run_test_cases(
    machine: Automaton,
    test_cases: Sequence[TestCase],
    max_steps: int = DEFAULT_MAX_STEPS,
) -> List[TestResult]:
    results: List[TestResult] = []
    for case in test_cases:
        actual = run_to_completion(machine, case.word, max_steps)
        results.append(TestResult(case=case, actual=actual, steps=machine.steps_taken))
    return results


def summarize_results(results: Sequence[TestResult]) -> Dict[str, int]:
    summary = {"total": len(results), "passed": 0, "failed": 0, "undecided": 0}
    for result in results:
        if result.passed:
            summary["passed"] += 1
        else:
            summary["failed"] += 1
        if not result.halted:
            summary["undecided"] += 1
    return summary
