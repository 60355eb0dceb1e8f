"""Pydantic models for request and response bodies.

Field names are snake_case in Python and camelCase on the wire
(``isMain``, ``expectedOutput``, ``executionTimeMs``); both spellings are
accepted on input.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .executor import ExecutionResult, TestCaseResult, TestSummary
from .health import LanguageHealth, SystemHealth


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FileModel(CamelModel):
    """One source file of a submission."""

    name: str = Field(..., description="Relative file name, e.g. 'Main.java' or 'lib/util.py'.")
    content: str = Field(..., description="File contents, base64 encoded if isBase64Encoded is set.")
    is_main: bool = Field(default=False, description="Entry point. The first file is used if none is flagged.")


class ExecuteRequest(CamelModel):
    """Request body for a single execution."""

    language: str = Field(..., description="Language key, e.g. 'python', 'java', 'cpp'.")
    files: List[FileModel] = Field(default_factory=list)
    code: Optional[str] = Field(
        default=None, description="Single-file source, used when files is empty."
    )
    stdin: Optional[str] = Field(default=None, description="Standard input to pass to the program.")
    is_base64_encoded: bool = Field(
        default=False, description="Whether file contents, code and stdin are base64 encoded."
    )


class TestCaseModel(CamelModel):
    input: str = ""
    expected_output: str = ""
    order: Optional[int] = None


class TestsRequest(CamelModel):
    """Request body for running a submission against test cases."""

    language: str
    files: List[FileModel] = Field(default_factory=list)
    code: Optional[str] = None
    test_cases: List[TestCaseModel] = Field(default_factory=list)
    is_base64_encoded: bool = False


class ExecuteResponse(CamelModel):
    """Response body for code execution."""

    stdout: str
    stderr: str
    compilation_output: str
    exit_code: int
    execution_time_ms: int
    success: bool

    @classmethod
    def from_result(cls, result: ExecutionResult) -> "ExecuteResponse":
        return cls(**result.to_dict())


class TestCaseResultModel(CamelModel):
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


class TestSummaryModel(CamelModel):
    total_tests: int
    passed_tests: int
    failed_tests: int
    success_rate: float
    total_execution_time_ms: int
    avg_execution_time_ms: float
    all_passed: bool


class TestsResponse(CamelModel):
    test_cases: List[TestCaseResultModel]
    summary: TestSummaryModel

    @classmethod
    def from_results(cls, results: List[TestCaseResult], summary: TestSummary) -> "TestsResponse":
        return cls(
            test_cases=[TestCaseResultModel(**r.to_dict()) for r in results],
            summary=TestSummaryModel(**summary.to_dict()),
        )


class LanguagesResponse(BaseModel):
    languages: List[str]


class LanguageHealthModel(CamelModel):
    name: str
    display_name: Optional[str] = None
    status: str
    version: Optional[str] = None
    expected_version: Optional[str] = None
    details: Optional[str] = None

    @classmethod
    def from_health(cls, health: LanguageHealth) -> "LanguageHealthModel":
        return cls(
            name=health.name,
            display_name=health.display_name,
            status=health.status,
            version=health.version,
            expected_version=health.expected_version,
            details=health.details,
        )


class SystemHealthModel(BaseModel):
    status: str
    timestamp: str
    detail: str
    languages: List[LanguageHealthModel]

    @classmethod
    def from_health(cls, health: SystemHealth) -> "SystemHealthModel":
        return cls(
            status=health.status,
            timestamp=health.timestamp,
            detail=health.detail,
            languages=[LanguageHealthModel.from_health(lang) for lang in health.languages],
        )
