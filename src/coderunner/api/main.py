"""
FastAPI application for the code runner service.

This module configures the FastAPI application and registers routes for
single executions, test case batches, the supported language list and
toolchain health.  It is the network face of the split-service
deployment; the same engine can be used in-process through
:class:`coderunner.executor.CodeExecutor`.
"""

from __future__ import annotations

import base64
import binascii
import logging
import time
import uuid
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException

from ..config import Config
from ..errors import CodeRunnerError, MissingFiles, UnsupportedLanguage
from ..executor import CodeExecutor, ProcessRunner, TestCase, TestCaseEvaluator, calculate_summary
from ..health import check_language_health, system_health
from ..languages import build_registry
from ..models import (
    ExecuteRequest,
    ExecuteResponse,
    FileModel,
    LanguageHealthModel,
    LanguagesResponse,
    SystemHealthModel,
    TestsRequest,
    TestsResponse,
)
from ..settings import CachedSettings, EnvSettings
from ..workspace import SourceFile, WorkspaceManager


logger = logging.getLogger("coderunner")

if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("[coderunner] %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)


config = Config.from_env()
logger.setLevel(config.log_level)

registry = build_registry(config)

logger.info(
    "Loaded config: temp_dir=%s, languages=%s, max_execution_ms=%s, max_output_bytes=%s, test_concurrency=%s",
    config.temp_dir,
    registry.keys(),
    config.max_execution_ms,
    config.max_output_bytes,
    config.test_concurrency,
)

env_settings = EnvSettings(prefix="CODERUNNER_")
settings = CachedSettings(env_settings.snapshot, ttl_seconds=config.settings_ttl_seconds)
runner = ProcessRunner(max_output_bytes=config.max_output_bytes)
workspaces = WorkspaceManager(config.temp_dir)
executor = CodeExecutor(registry, workspaces, runner=runner, settings=settings)
evaluator = TestCaseEvaluator(executor, max_workers=config.test_concurrency)


app = FastAPI(title="Code Runner Service", version="0.1.0")


@app.middleware("http")
async def log_requests(request, call_next):
    """Tag every request with an id and log its outcome."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    client = getattr(request.client, "host", "unknown")
    logger.info("[%s] Incoming request: %s %s from %s", request_id, request.method, request.url.path, client)
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = int((time.perf_counter() - start) * 1000)
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "[%s] Response: %s %s -> %s (%s ms)",
        request_id,
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


def _decode(value: Optional[str], encoded: bool, what: str) -> Optional[str]:
    if value is None or not encoded:
        return value
    try:
        return base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise HTTPException(status_code=400, detail=f"Error decoding {what}: {exc}")


def _source_files(files: List[FileModel], encoded: bool) -> List[SourceFile]:
    return [
        SourceFile(name=f.name, content=_decode(f.content, encoded, f"file {f.name!r}"), is_main=f.is_main)
        for f in files
    ]


def _submission(language: str, files: List[FileModel], code: Optional[str], encoded: bool) -> List[SourceFile]:
    """Source files of a request; a bare ``code`` string becomes the main file."""
    if files:
        return _source_files(files, encoded)
    if not code:
        raise MissingFiles("Either code or files must be provided")
    profile = registry.resolve(language)
    return [SourceFile(name=profile.default_file_name, content=_decode(code, encoded, "code"), is_main=True)]


def _raise_http(exc: CodeRunnerError, where: str) -> None:
    if exc.status_code >= 500:
        logger.error("[%s] Execution infrastructure error: %s", where, exc)
    else:
        logger.warning("[%s] Rejected request: %s", where, exc)
    raise HTTPException(status_code=exc.status_code, detail=str(exc))


@app.get("/health")
async def health() -> Dict[str, str]:
    """Return a simple health check response."""
    return {"status": "ok"}


@app.get("/health/languages", response_model=SystemHealthModel)
def languages_health() -> SystemHealthModel:
    """Check every enabled toolchain."""
    return SystemHealthModel.from_health(system_health(registry, runner, settings))


@app.get("/health/language/{language}", response_model=LanguageHealthModel)
def language_health(language: str) -> LanguageHealthModel:
    try:
        profile = registry.resolve(language)
    except UnsupportedLanguage as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return LanguageHealthModel.from_health(check_language_health(profile, runner, settings))


@app.get("/execute/languages", response_model=LanguagesResponse)
async def list_languages() -> LanguagesResponse:
    return LanguagesResponse(languages=registry.keys())


@app.post("/execute/code", response_model=ExecuteResponse)
def execute_code(req: ExecuteRequest) -> ExecuteResponse:
    """Compile (if needed) and run a submission once."""
    try:
        files = _submission(req.language, req.files, req.code, req.is_base64_encoded)
    except CodeRunnerError as exc:
        _raise_http(exc, "/execute/code")
    stdin = _decode(req.stdin, req.is_base64_encoded, "stdin")
    logger.info("[/execute/code] Executing %d file(s) as %s", len(files), req.language)
    try:
        result = executor.execute(req.language, files, stdin)
    except CodeRunnerError as exc:
        _raise_http(exc, "/execute/code")
    except Exception as exc:
        logger.exception("[/execute/code] Unhandled error during execution: %s", exc)
        raise HTTPException(status_code=500, detail="Execution error")
    logger.info(
        "[/execute/code] Execution finished: success=%s, exit_code=%s, execution_time_ms=%s",
        result.success,
        result.exit_code,
        result.execution_time_ms,
    )
    return ExecuteResponse.from_result(result)


@app.post("/execute/tests", response_model=TestsResponse)
def execute_tests(req: TestsRequest) -> TestsResponse:
    """Run a submission against every test case and summarise."""
    try:
        files = _submission(req.language, req.files, req.code, req.is_base64_encoded)
    except CodeRunnerError as exc:
        _raise_http(exc, "/execute/tests")
    cases = [
        TestCase(
            input=_decode(tc.input, req.is_base64_encoded, f"test case {i} input") or "",
            expected_output=_decode(
                tc.expected_output, req.is_base64_encoded, f"test case {i} expected output"
            )
            or "",
            order=tc.order,
        )
        for i, tc in enumerate(req.test_cases)
    ]
    try:
        results = evaluator.evaluate(req.language, files, cases)
    except CodeRunnerError as exc:
        _raise_http(exc, "/execute/tests")
    except Exception as exc:
        logger.exception("[/execute/tests] Unhandled error during evaluation: %s", exc)
        raise HTTPException(status_code=500, detail="Execution error")
    summary = calculate_summary(results)
    logger.info(
        "[/execute/tests] %d/%d test case(s) passed",
        summary.passed_tests,
        summary.total_tests,
    )
    return TestsResponse.from_results(results, summary)
