"""
Execution engine for the code runner.

``ProcessRunner`` starts child processes under a wall-clock deadline,
``CodeExecutor`` drives one submission through stage -> compile -> run,
and ``TestCaseEvaluator`` repeats that across a batch of test cases.
"""

from .base import ExecutionResult, ProcessResult, ProcessRunner
from .orchestrator import CodeExecutor
from .testcases import TestCase, TestCaseEvaluator, TestCaseResult, TestSummary, calculate_summary

__all__ = [
    "ExecutionResult",
    "ProcessResult",
    "ProcessRunner",
    "CodeExecutor",
    "TestCase",
    "TestCaseEvaluator",
    "TestCaseResult",
    "TestSummary",
    "calculate_summary",
]
