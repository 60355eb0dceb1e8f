"""
Result types and the bounded-time process runner.

:class:`ProcessRunner` is the only place where child processes are
started.  Each child runs in its own session so that a timeout can kill
the whole process group (compilers and interpreters like to fork), and
its outputs are captured as text.  Capture is bounded: once a stream
produces more than ``max_output_bytes`` the process group is killed and
the rest of the output is discarded.  The returned :class:`ProcessResult`
always carries a usable exit code and, on timeout or overflow, a human
readable notice appended to ``stderr``.

Processes are assumed to run inside an already isolated container; the
runner orchestrates, it does not sandbox.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import IO, List, Optional

from ..errors import ProcessSpawnError

logger = logging.getLogger(__name__)

TIMEOUT_MARKER = "Execution timed out"
OUTPUT_LIMIT_MARKER = "Output limit exceeded"

DEFAULT_MAX_OUTPUT_BYTES = 1024 * 1024
_CHUNK_SIZE = 64 * 1024


@dataclass
class ProcessResult:
    """Outcome of one child process.

    Attributes
    ----------
    stdout: str
        Standard output captured from the process.
    stderr: str
        Standard error captured from the process, plus the timeout or
        output limit notice if either applied.
    exit_code: int
        Exit status.  ``1`` when the process was killed by a signal.
    timed_out: bool
        Whether the wall-clock deadline killed the process.
    duration_ms: int
        Wall-clock time in milliseconds.
    output_limit_exceeded: bool
        Whether the process was killed for writing too much output.
    """

    stdout: str
    stderr: str
    exit_code: int
    timed_out: bool
    duration_ms: int
    output_limit_exceeded: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out and not self.output_limit_exceeded


@dataclass(frozen=True)
class ExecutionResult:
    """Result of compiling and running one submission.

    ``success`` is true only when compilation (if any) produced no
    diagnostics and the program exited with status 0 before its deadline.
    ``execution_time_ms`` covers the run step only.
    """

    stdout: str
    stderr: str
    compilation_output: str
    exit_code: int
    execution_time_ms: int
    success: bool

    def to_dict(self) -> dict:
        return asdict(self)


class _BoundedReader(threading.Thread):
    """Drain one pipe, keeping at most ``limit`` bytes."""

    def __init__(self, stream: IO[bytes], limit: Optional[int], on_overflow) -> None:
        super().__init__(daemon=True)
        self.stream = stream
        self.limit = limit
        self.on_overflow = on_overflow
        self.buffer = bytearray()
        self.overflowed = False

    def run(self) -> None:
        fd = self.stream.fileno()
        while True:
            chunk = os.read(fd, _CHUNK_SIZE)
            if not chunk:
                break
            if self.overflowed:
                continue
            self.buffer.extend(chunk)
            if self.limit is not None and len(self.buffer) > self.limit:
                del self.buffer[self.limit:]
                self.overflowed = True
                self.on_overflow()
        self.stream.close()


class ProcessRunner:
    """Run commands with a hard wall-clock deadline and bounded output."""

    def __init__(self, max_output_bytes: Optional[int] = DEFAULT_MAX_OUTPUT_BYTES) -> None:
        self.max_output_bytes = max_output_bytes

    def run(
        self,
        args: List[str],
        cwd: Optional[Path],
        timeout_ms: int,
        stdin_path: Optional[Path] = None,
    ) -> ProcessResult:
        """
        Run ``args`` in ``cwd`` and capture its output.

        Parameters
        ----------
        args: list[str]
            Command and arguments.  Never passed through a shell.
        cwd: Path, optional
            Working directory for the process.
        timeout_ms: int
            Deadline in milliseconds after which the process group is
            killed.
        stdin_path: Path, optional
            File to connect to standard input.  When omitted the process
            reads from ``/dev/null``.

        Returns
        -------
        ProcessResult
            Contains the process outputs and exit status.

        Raises
        ------
        ProcessSpawnError
            If the process could not be started at all.
        """
        start_time = time.perf_counter()
        try:
            stdin_file = open(stdin_path, "rb") if stdin_path is not None else None
        except OSError as exc:
            raise ProcessSpawnError(" ".join(args), f"cannot open stdin: {exc}") from exc
        try:
            try:
                process = subprocess.Popen(
                    args,
                    cwd=str(cwd) if cwd is not None else None,
                    stdin=stdin_file if stdin_file is not None else subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    start_new_session=True,
                )
            except OSError as exc:
                raise ProcessSpawnError(" ".join(args), str(exc)) from exc

            timed_out = False

            def kill_proc() -> None:
                nonlocal timed_out
                # A program that already exited is not a timeout, but its
                # children may still hold the pipes open.
                if process.poll() is None:
                    timed_out = True
                _kill_group(process)

            readers = [
                _BoundedReader(process.stdout, self.max_output_bytes, lambda: _kill_group(process)),
                _BoundedReader(process.stderr, self.max_output_bytes, lambda: _kill_group(process)),
            ]
            for reader in readers:
                reader.start()

            # Start timer thread to enforce wall clock timeout
            timer = threading.Timer(timeout_ms / 1000.0, kill_proc)
            timer.daemon = True
            timer.start()
            try:
                process.wait()
                for reader in readers:
                    reader.join()
            finally:
                timer.cancel()
                duration = int((time.perf_counter() - start_time) * 1000)
        finally:
            if stdin_file is not None:
                stdin_file.close()

        out_reader, err_reader = readers
        stdout = _decode(out_reader.buffer)
        stderr = _decode(err_reader.buffer)
        overflowed = out_reader.overflowed or err_reader.overflowed
        returncode = process.returncode
        # Negative return codes mean "killed by signal"; there is no exit code to report.
        exit_code = returncode if returncode is not None and returncode >= 0 else 1
        if overflowed:
            stderr = stderr + f"\n{OUTPUT_LIMIT_MARKER} ({self.max_output_bytes} bytes)"
        if timed_out:
            stderr = stderr + f"\n{TIMEOUT_MARKER} after {timeout_ms} ms"
        if (timed_out or overflowed) and exit_code == 0:
            exit_code = 1
        logger.debug(
            "Command %s finished: exit_code=%s, timed_out=%s, output_limit_exceeded=%s, duration_ms=%s",
            args,
            exit_code,
            timed_out,
            overflowed,
            duration,
        )
        return ProcessResult(stdout, stderr, exit_code, timed_out, duration, overflowed)


def _decode(raw: Optional[bytes]) -> str:
    if not raw:
        return ""
    return bytes(raw).decode("utf-8", errors="replace")


def _kill_group(process: subprocess.Popen) -> None:
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    except OSError:
        logger.warning("Could not kill process group %s; killing process only", process.pid)
        try:
            process.kill()
        except ProcessLookupError:
            pass
