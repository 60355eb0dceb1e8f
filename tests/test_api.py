"""
Basic API tests for the code runner service.

These tests exercise the HTTP endpoints using FastAPI's TestClient.  They
verify that code can be executed, that test case batches are evaluated
and summarised, that request errors map to the right status codes, and
that the health checks are operational.
"""

from __future__ import annotations

import base64
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from coderunner.api.main import app, workspaces


@pytest.fixture(autouse=True)
def isolate_workspaces(tmp_path, monkeypatch):
    """Provide a temporary base directory for workspaces during tests."""
    monkeypatch.setattr(workspaces, "base_dir", Path(tmp_path))
    yield


def b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def test_health():
    client = TestClient(app)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["x-request-id"]


def test_request_id_is_echoed():
    client = TestClient(app)
    response = client.get("/health", headers={"x-request-id": "abc-123"})
    assert response.headers["x-request-id"] == "abc-123"


def test_languages():
    client = TestClient(app)
    response = client.get("/execute/languages")
    assert response.status_code == 200
    assert "python" in response.json()["languages"]


def test_language_health():
    client = TestClient(app)
    response = client.get("/health/language/python")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "python"
    assert data["status"] == "available"
    assert data["displayName"] == "Python"
    assert "expectedVersion" in data


def test_language_health_unknown_language():
    client = TestClient(app)
    assert client.get("/health/language/cobol").status_code == 400


def test_languages_health_report():
    client = TestClient(app)
    response = client.get("/health/languages")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] in {"healthy", "degraded"}
    assert {lang["name"] for lang in data["languages"]} >= {"python"}


def test_execute_python_simple(tmp_path):
    client = TestClient(app)
    payload = {"language": "python", "files": [{"name": "main.py", "content": "print(1 + 1)"}]}
    res = client.post("/execute/code", json=payload)
    assert res.status_code == 200
    data = res.json()
    assert data["stdout"] == "2\n"
    assert data["exitCode"] == 0
    assert data["success"] is True
    assert data["compilationOutput"] == ""
    assert "executionTimeMs" in data
    assert list(tmp_path.iterdir()) == []


def test_execute_with_stdin_and_main_flag():
    client = TestClient(app)
    payload = {
        "language": "python",
        "files": [
            {"name": "util.py", "content": "def shout(s):\n    return s.upper()\n"},
            {"name": "main.py", "content": "from util import shout\nprint(shout(input()))", "isMain": True},
        ],
        "stdin": "abc",
    }
    data = client.post("/execute/code", json=payload).json()
    assert data["stdout"] == "ABC\n"


def test_execute_base64_encoded():
    client = TestClient(app)
    payload = {
        "language": "python",
        "files": [{"name": "main.py", "content": b64("print(input()[::-1])")}],
        "stdin": b64("abc"),
        "isBase64Encoded": True,
    }
    data = client.post("/execute/code", json=payload).json()
    assert data["stdout"] == "cba\n"


def test_execute_single_code_field(tmp_path):
    client = TestClient(app)
    res = client.post("/execute/code", json={"language": "python", "code": "print(1)"})
    assert res.status_code == 200
    data = res.json()
    assert data["stdout"] == "1\n"
    assert data["success"] is True
    assert list(tmp_path.iterdir()) == []


def test_execute_single_code_field_base64():
    client = TestClient(app)
    payload = {"language": "python", "code": b64("print(input() * 2)"), "stdin": b64("ab"), "isBase64Encoded": True}
    data = client.post("/execute/code", json=payload).json()
    assert data["stdout"] == "abab\n"


def test_files_take_precedence_over_code():
    client = TestClient(app)
    payload = {
        "language": "python",
        "code": "print('from code')",
        "files": [{"name": "main.py", "content": "print('from files')"}],
    }
    data = client.post("/execute/code", json=payload).json()
    assert data["stdout"] == "from files\n"


def test_execute_invalid_base64():
    client = TestClient(app)
    payload = {
        "language": "python",
        "files": [{"name": "main.py", "content": "not base64!"}],
        "isBase64Encoded": True,
    }
    assert client.post("/execute/code", json=payload).status_code == 400


def test_execute_failing_program_is_still_200():
    client = TestClient(app)
    payload = {"language": "python", "files": [{"name": "main.py", "content": "raise ValueError('bad')"}]}
    res = client.post("/execute/code", json=payload)
    assert res.status_code == 200
    data = res.json()
    assert data["success"] is False
    assert data["exitCode"] == 1
    assert "ValueError" in data["stderr"]


@pytest.mark.parametrize(
    "payload",
    [
        {"language": "cobol", "files": [{"name": "main.cob", "content": "x"}]},
        {"language": "python", "files": []},
        {"language": "python"},
        {"language": "python", "code": ""},
        {"language": "cobol", "code": "x"},
        {"language": "python", "files": [{"name": "../main.py", "content": "print(1)"}]},
    ],
)
def test_execute_bad_requests(payload):
    client = TestClient(app)
    res = client.post("/execute/code", json=payload)
    assert res.status_code == 400
    assert res.json()["detail"]


def test_execute_tests_batch():
    client = TestClient(app)
    payload = {
        "language": "python",
        "files": [{"name": "main.py", "content": "print(int(input()) * 2)"}],
        "testCases": [
            {"input": "3", "expectedOutput": "6", "order": 2},
            {"input": "1", "expectedOutput": "2", "order": 0},
            {"input": "2", "expectedOutput": "5", "order": 1},
        ],
    }
    res = client.post("/execute/tests", json=payload)
    assert res.status_code == 200
    data = res.json()
    assert [tc["order"] for tc in data["testCases"]] == [0, 1, 2]
    assert [tc["passed"] for tc in data["testCases"]] == [True, False, True]
    assert data["testCases"][1]["actualOutput"] == "4\n"
    summary = data["summary"]
    assert summary["totalTests"] == 3
    assert summary["passedTests"] == 2
    assert summary["failedTests"] == 1
    assert summary["allPassed"] is False


def test_execute_tests_unsupported_language():
    client = TestClient(app)
    payload = {
        "language": "cobol",
        "files": [{"name": "main.cob", "content": "x"}],
        "testCases": [{"input": "", "expectedOutput": ""}],
    }
    assert client.post("/execute/tests", json=payload).status_code == 400


def test_execute_tests_base64_decodes_expected_output():
    client = TestClient(app)
    payload = {
        "language": "python",
        "files": [{"name": "main.py", "content": b64("print(int(input()) * 2)")}],
        "testCases": [{"input": b64("3"), "expectedOutput": b64("6")}],
        "isBase64Encoded": True,
    }
    res = client.post("/execute/tests", json=payload)
    assert res.status_code == 200
    case = res.json()["testCases"][0]
    assert case["passed"] is True
    assert case["input"] == "3"
    assert case["expectedOutput"] == "6"


def test_execute_tests_invalid_base64_expected_output():
    client = TestClient(app)
    payload = {
        "language": "python",
        "files": [{"name": "main.py", "content": b64("print(1)")}],
        "testCases": [{"input": b64("1"), "expectedOutput": "not base64!"}],
        "isBase64Encoded": True,
    }
    res = client.post("/execute/tests", json=payload)
    assert res.status_code == 400
    assert "expected output" in res.json()["detail"]


def test_execute_tests_single_code_field():
    client = TestClient(app)
    payload = {
        "language": "python",
        "code": "print(input().upper())",
        "testCases": [{"input": "hi", "expectedOutput": "HI"}, {"input": "x", "expectedOutput": "y"}],
    }
    res = client.post("/execute/tests", json=payload)
    assert res.status_code == 200
    data = res.json()
    assert [tc["passed"] for tc in data["testCases"]] == [True, False]
    assert data["summary"]["passedTests"] == 1


def test_execute_tests_without_code_or_files():
    client = TestClient(app)
    payload = {"language": "python", "testCases": [{"input": "", "expectedOutput": ""}]}
    res = client.post("/execute/tests", json=payload)
    assert res.status_code == 400
    assert res.json()["detail"] == "Either code or files must be provided"
