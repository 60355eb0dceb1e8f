"""Code runner package.

This package compiles and runs untrusted submissions in one of several
languages and reports their output, exit status and timing, optionally
across a batch of test cases.  It is meant to run inside a disposable
container; it orchestrates processes but does not sandbox them.

The top-level modules include:

* ``config`` – configuration handling for environment variables.
* ``settings`` – pull API for runtime settings, with a TTL cache.
* ``errors`` – the exception hierarchy.
* ``languages`` – language profiles and the registry resolving them.
* ``workspace`` – per-execution scratch directories.
* ``executor`` – process runner, orchestrator and test case evaluator.
* ``health`` – toolchain availability checks.
* ``models`` – Pydantic models defining request and response schemas.
* ``api`` – FastAPI application exposing HTTP endpoints.
"""

from .executor import CodeExecutor, ExecutionResult, TestCase, TestCaseEvaluator, calculate_summary
from .languages import LanguageRegistry, build_registry
from .workspace import SourceFile, WorkspaceManager

__all__ = [
    "CodeExecutor",
    "ExecutionResult",
    "LanguageRegistry",
    "SourceFile",
    "TestCase",
    "TestCaseEvaluator",
    "WorkspaceManager",
    "build_registry",
    "calculate_summary",
]
