"""Tests for toolchain health checks."""

from __future__ import annotations

import sys
from dataclasses import replace

from coderunner.executor import ProcessResult, ProcessRunner
from coderunner.health import check_language_health, system_health
from coderunner.languages import LanguageRegistry, build_registry, builtin_profiles
from coderunner.settings import StaticSettings


class CannedRunner(ProcessRunner):
    def __init__(self, result):
        self.result = result

    def run(self, args, cwd, timeout_ms, stdin_path=None):
        return self.result


def test_python_toolchain_is_available():
    profile = builtin_profiles(sys.executable)["python"]
    health = check_language_health(profile, settings=StaticSettings({"PYTHON_VERSION": "3"}))
    assert health.status == "available"
    assert health.version.startswith("Python")
    assert health.display_name == "Python"
    assert health.expected_version == "3"


def test_missing_toolchain_is_unavailable():
    profile = replace(builtin_profiles()["c"], version_command=("no-such-compiler", "--version"))
    health = check_language_health(profile)
    assert health.status == "unavailable"
    assert "no-such-compiler" in health.details


def test_java_version_is_read_from_stderr():
    runner = CannedRunner(ProcessResult("", 'openjdk version "21"\n', 0, False, 3))
    health = check_language_health(builtin_profiles()["java"], runner)
    assert health.version == 'openjdk version "21"'


def test_failing_version_command():
    runner = CannedRunner(ProcessResult("", "boom", 2, False, 3))
    health = check_language_health(builtin_profiles()["nodejs"], runner)
    assert health.status == "unavailable"
    assert health.details == "boom"


def test_system_health_is_degraded_when_any_language_missing():
    profiles = builtin_profiles(sys.executable)
    registry = LanguageRegistry(
        {
            "python": profiles["python"],
            "c": replace(profiles["c"], version_command=("no-such-compiler",)),
        }
    )
    report = system_health(registry)
    assert report.status == "degraded"
    assert report.detail == "1 language(s) unavailable"
    assert [lang.name for lang in report.languages] == ["python", "c"]


def test_system_health_is_healthy(config):
    config.allowed_langs = ["python"]
    report = system_health(build_registry(config))
    assert report.status == "healthy"
    assert report.detail == "All languages are available"
