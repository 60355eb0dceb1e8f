"""
Test case evaluation.

A batch runs the same submission once per test case, feeding the case's
input on stdin and comparing the program output with the expected output
after trimming leading and trailing whitespace.  Nothing else is
normalised: case, inner whitespace and line endings must match exactly.

Cases execute in the order they were submitted.  Their ``order`` field is
presentation metadata only; results are sorted by it at the end.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from typing import List, Optional, Sequence

from ..workspace import SourceFile, prepare_files
from .base import ExecutionResult
from .orchestrator import CodeExecutor

logger = logging.getLogger(__name__)


@dataclass
class TestCase:
    __test__ = False

    input: str = ""
    expected_output: str = ""
    order: Optional[int] = None


@dataclass(frozen=True)
class TestCaseResult:
    __test__ = False

    input: str
    expected_output: str
    order: int
    actual_output: str
    stderr: str
    compilation_output: str
    execution_time_ms: int
    exit_code: int
    passed: bool
    success: bool

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class TestSummary:
    __test__ = False

    total_tests: int
    passed_tests: int
    failed_tests: int
    success_rate: float
    total_execution_time_ms: int
    avg_execution_time_ms: float
    all_passed: bool

    def to_dict(self) -> dict:
        return asdict(self)


def outputs_match(actual: str, expected: str) -> bool:
    return (actual or "").strip() == (expected or "").strip()


class TestCaseEvaluator:
    """Run a submission against a list of test cases."""

    __test__ = False

    def __init__(self, executor: CodeExecutor, max_workers: int = 1) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.executor = executor
        self.max_workers = max_workers

    def evaluate(
        self,
        language: str,
        files: Sequence[SourceFile],
        test_cases: Sequence[TestCase],
        timeout_ms: Optional[int] = None,
    ) -> List[TestCaseResult]:
        # Problems with the request itself apply to every case; report them once.
        self.executor.registry.resolve(language)
        prepared = prepare_files(files)

        cases = [
            (case, index if case.order is None else case.order)
            for index, case in enumerate(test_cases)
        ]
        logger.info("Executing %d test case(s) for %s", len(cases), language)

        def run(item) -> TestCaseResult:
            case, order = item
            return self._run_case(language, prepared, case, order, timeout_ms)

        if self.max_workers == 1 or len(cases) <= 1:
            results = [run(item) for item in cases]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                results = list(pool.map(run, cases))

        results.sort(key=lambda r: r.order)
        return results

    def _run_case(
        self,
        language: str,
        files: List[SourceFile],
        case: TestCase,
        order: int,
        timeout_ms: Optional[int],
    ) -> TestCaseResult:
        logger.info("Executing test case (order: %s)", order)
        try:
            result: ExecutionResult = self.executor.execute(
                language, files, case.input or "", timeout_ms=timeout_ms
            )
        except Exception as exc:
            logger.exception("Test case execution error (order: %s)", order)
            return TestCaseResult(
                input=case.input,
                expected_output=case.expected_output,
                order=order,
                actual_output="",
                stderr=str(exc),
                compilation_output="",
                execution_time_ms=0,
                exit_code=1,
                passed=False,
                success=False,
            )

        passed = outputs_match(result.stdout, case.expected_output)
        return TestCaseResult(
            input=case.input,
            expected_output=case.expected_output,
            order=order,
            actual_output=result.stdout,
            stderr=result.stderr,
            compilation_output=result.compilation_output,
            execution_time_ms=result.execution_time_ms,
            exit_code=result.exit_code,
            passed=passed,
            success=result.success and passed,
        )


def calculate_summary(results: Sequence[TestCaseResult]) -> TestSummary:
    total = len(results)
    passed = sum(1 for r in results if r.passed)
    total_time = sum(r.execution_time_ms for r in results)
    return TestSummary(
        total_tests=total,
        passed_tests=passed,
        failed_tests=total - passed,
        success_rate=(passed / total) * 100 if total else 0.0,
        total_execution_time_ms=total_time,
        avg_execution_time_ms=total_time / total if total else 0.0,
        all_passed=passed == total,
    )
