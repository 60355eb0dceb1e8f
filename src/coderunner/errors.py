"""Exception hierarchy for the code runner.

Only two classes of failure leave the engine as exceptions: caller input
errors (``InvalidRequest``, mapped to HTTP 400) and infrastructure faults
(``InfrastructureFault``, mapped to HTTP 500).  A submission that fails to
compile, crashes or times out is not an error here; it is reported as an
``ExecutionResult`` with ``success=False``.
"""

from __future__ import annotations


class CodeRunnerError(Exception):
    """Base class for all errors raised by the engine."""

    status_code = 500


class InvalidRequest(CodeRunnerError):
    """The request cannot be executed as submitted."""

    status_code = 400


class UnsupportedLanguage(InvalidRequest):
    def __init__(self, language: str) -> None:
        super().__init__(f"Unsupported language: {language}")
        self.language = language


class MissingFiles(InvalidRequest):
    def __init__(self, message: str = "Files are required") -> None:
        super().__init__(message)


class InvalidFileName(InvalidRequest):
    def __init__(self, file_name: str, reason: str) -> None:
        super().__init__(f"Invalid file name {file_name!r}: {reason}")
        self.file_name = file_name


class InfrastructureFault(CodeRunnerError):
    """The host failed to stage or spawn the execution."""

    status_code = 500


class WorkspaceCreateError(InfrastructureFault):
    pass


class FileWriteError(InfrastructureFault):
    def __init__(self, file_name: str, reason: str) -> None:
        super().__init__(f'Failed to write file "{file_name}": {reason}')
        self.file_name = file_name


class ProcessSpawnError(InfrastructureFault):
    def __init__(self, command: str, reason: str) -> None:
        super().__init__(f"Failed to start {command!r}: {reason}")
        self.command = command
