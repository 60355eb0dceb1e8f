"""Shared fixtures for the code runner tests."""

from __future__ import annotations

import os
import sys
import tempfile

import pytest

# The API module reads its configuration at import time.
os.environ.setdefault("CODERUNNER_PYTHON_COMMAND", sys.executable)
os.environ.setdefault("CODERUNNER_TEMP_DIR", os.path.join(tempfile.gettempdir(), "coderunner-tests"))

from coderunner.config import Config
from coderunner.executor import CodeExecutor, TestCaseEvaluator
from coderunner.languages import build_registry
from coderunner.workspace import WorkspaceManager


@pytest.fixture
def config(tmp_path, monkeypatch) -> Config:
    monkeypatch.setenv("CODERUNNER_TEMP_DIR", str(tmp_path / "workspaces"))
    monkeypatch.setenv("CODERUNNER_PYTHON_COMMAND", sys.executable)
    monkeypatch.delenv("CODERUNNER_ALLOWED_LANGS", raising=False)
    monkeypatch.delenv("CODERUNNER_MAX_EXECUTION_MS", raising=False)
    return Config.load()


@pytest.fixture
def workspaces(config) -> WorkspaceManager:
    return WorkspaceManager(config.temp_dir)


@pytest.fixture
def executor(config, workspaces) -> CodeExecutor:
    return CodeExecutor(build_registry(config), workspaces)


@pytest.fixture
def evaluator(executor) -> TestCaseEvaluator:
    return TestCaseEvaluator(executor)
