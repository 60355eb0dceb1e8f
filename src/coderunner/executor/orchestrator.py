"""
Execution orchestrator.

:class:`CodeExecutor` drives one submission through
stage -> compile (optional) -> run and turns the outcome into an
:class:`~coderunner.executor.base.ExecutionResult`.  Compile errors,
crashes and timeouts of the submitted program are ordinary results with
``success=False``; only invalid requests and infrastructure faults are
raised.  The workspace is removed before :meth:`CodeExecutor.execute`
returns or raises.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..errors import ProcessSpawnError
from ..languages import LanguageProfile, LanguageRegistry
from ..settings import SettingsProvider
from ..workspace import SourceFile, WorkspaceManager, main_file, prepare_files
from .base import ExecutionResult, ProcessRunner

logger = logging.getLogger(__name__)

TIMEOUT_SETTING = "TIMEOUT_OVERRIDE_MS"


class CodeExecutor:
    """Compile and run submissions in throwaway workspaces."""

    def __init__(
        self,
        registry: LanguageRegistry,
        workspaces: WorkspaceManager,
        runner: Optional[ProcessRunner] = None,
        settings: Optional[SettingsProvider] = None,
    ) -> None:
        self.registry = registry
        self.workspaces = workspaces
        self.runner = runner or ProcessRunner()
        self.settings = settings

    def timeout_for(self, profile: LanguageProfile, timeout_ms: Optional[int] = None) -> int:
        """Timeout precedence: explicit argument, settings, profile default."""
        if timeout_ms is not None:
            return int(timeout_ms)
        if self.settings is not None:
            value = self.settings.get_number(TIMEOUT_SETTING)
            if value is not None and value > 0:
                return int(value)
        return profile.timeout_ms

    def execute(
        self,
        language: str,
        files: Sequence[SourceFile],
        stdin: Optional[str] = None,
        timeout_ms: Optional[int] = None,
    ) -> ExecutionResult:
        profile = self.registry.resolve(language)
        prepared = prepare_files(files)
        main = main_file(prepared)
        timeout = self.timeout_for(profile, timeout_ms)

        with self.workspaces.open() as workspace:
            execution_id = workspace.id
            stdin_path = self.workspaces.stage(
                workspace, prepared, stdin, executable=profile.is_compiled
            )
            logger.info(
                "[%s] Staged %d file(s) for %s, main=%s",
                execution_id,
                len(prepared),
                profile.key,
                main.name,
            )

            compilation_output = ""
            compile_cmd = profile.compile_command(main.name)
            if compile_cmd is not None:
                logger.info("[%s] Compiling: %s", execution_id, " ".join(compile_cmd))
                try:
                    compiled = self.runner.run(compile_cmd, workspace.path, timeout)
                except ProcessSpawnError as exc:
                    logger.warning("[%s] Compiler could not be started: %s", execution_id, exc)
                    return ExecutionResult(
                        stdout="",
                        stderr=str(exc),
                        compilation_output=str(exc),
                        exit_code=1,
                        execution_time_ms=0,
                        success=False,
                    )
                # Any compiler stderr counts as failure, warnings included.
                if not compiled.ok or compiled.stderr:
                    logger.info(
                        "[%s] Compilation failed: exit_code=%s, timed_out=%s",
                        execution_id,
                        compiled.exit_code,
                        compiled.timed_out,
                    )
                    return ExecutionResult(
                        stdout="",
                        stderr=compiled.stderr,
                        compilation_output=_join_output(compiled.stdout, compiled.stderr),
                        exit_code=compiled.exit_code or 1,
                        execution_time_ms=0,
                        success=False,
                    )
                compilation_output = compiled.stdout

            run_cmd = profile.run_command(main.name)
            logger.info(
                "[%s] Executing: %s%s",
                execution_id,
                " ".join(run_cmd),
                " < stdin" if stdin_path is not None else "",
            )
            ran = self.runner.run(run_cmd, workspace.path, timeout, stdin_path=stdin_path)
            logger.info(
                "[%s] Execution finished: exit_code=%s, timed_out=%s, duration_ms=%s",
                execution_id,
                ran.exit_code,
                ran.timed_out,
                ran.duration_ms,
            )
            return ExecutionResult(
                stdout=ran.stdout,
                stderr=ran.stderr,
                compilation_output=compilation_output,
                exit_code=ran.exit_code,
                execution_time_ms=ran.duration_ms,
                success=ran.ok,
            )


def _join_output(stdout: str, stderr: str) -> str:
    if stdout and stderr:
        separator = "" if stdout.endswith("\n") else "\n"
        return stdout + separator + stderr
    return stdout or stderr
