"""Configuration loader.

The code runner reads its configuration from environment variables so the
same container image can serve as an in-process library or as the split
executor service.  Reasonable defaults are provided so that local
development works out of the box.

Environment variables:

``CODERUNNER_TEMP_DIR``
    Base directory under which per-execution workspaces are created.
    Defaults to ``code-execution`` inside the system temp directory.

``CODERUNNER_ALLOWED_LANGS``
    Comma-separated list of languages enabled for execution.  Defaults to
    ``nodejs,python,java,cpp,c``.  Every entry must name a built-in
    language profile.

``CODERUNNER_MAX_EXECUTION_MS``
    Wall-clock timeout (in milliseconds) applied to every compile and run
    step.  When unset each language keeps its own default (10 s, 15 s for
    Java).

``CODERUNNER_MAX_OUTPUT_BYTES``
    Largest amount of stdout (and, separately, stderr) kept per process.
    A process that writes more is killed and reported as failed.  Default
    is 1048576 (1 MiB).

``CODERUNNER_TIMEOUT_OVERRIDE_MS``
    Not part of :class:`Config`.  Read at execution time through the
    settings provider (see ``settings.py``), so it can change without a
    restart; when set it takes precedence over ``CODERUNNER_MAX_EXECUTION_MS``
    and the per-language defaults.  ``CODERUNNER_MAX_EXECUTION_MS`` is fixed
    when the language registry is built at startup.

``CODERUNNER_PYTHON_COMMAND``
    Interpreter used for the ``python`` language.  Defaults to ``python3``.

``CODERUNNER_TEST_CONCURRENCY``
    Maximum number of test cases evaluated at once.  Defaults to 1, which
    runs a batch strictly sequentially.

``CODERUNNER_SETTINGS_TTL_SECONDS``
    How long the settings snapshot is cached.  Default is 60.

``CODERUNNER_LOG_LEVEL``
    Level of the ``coderunner`` logger.  Default is ``INFO``.

``PORT``
    The port on which the API server listens.  Defaults to 8080.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from typing import List, Optional

DEFAULT_LANGS = "nodejs,python,java,cpp,c"


def _int_var(name: str, default: Optional[int]) -> Optional[int]:
    val = os.getenv(name)
    if val is None or val.strip() == "":
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"Invalid integer for {name}: {val}")


@dataclass
class Config:
    """Centralised configuration object."""

    temp_dir: str
    allowed_langs: List[str]
    max_execution_ms: Optional[int]
    max_output_bytes: int
    python_command: str
    test_concurrency: int
    settings_ttl_seconds: int
    log_level: str
    port: int

    @classmethod
    def load(cls) -> "Config":
        temp_dir = os.getenv(
            "CODERUNNER_TEMP_DIR", os.path.join(tempfile.gettempdir(), "code-execution")
        )

        allowed_langs_env = os.getenv("CODERUNNER_ALLOWED_LANGS", DEFAULT_LANGS)
        allowed_langs = [lang.strip().lower() for lang in allowed_langs_env.split(",") if lang.strip()]
        if not allowed_langs:
            raise ValueError("CODERUNNER_ALLOWED_LANGS must name at least one language")

        max_execution_ms = _int_var("CODERUNNER_MAX_EXECUTION_MS", None)
        if max_execution_ms is not None and max_execution_ms <= 0:
            raise ValueError(f"CODERUNNER_MAX_EXECUTION_MS must be positive, got {max_execution_ms}")

        max_output_bytes = _int_var("CODERUNNER_MAX_OUTPUT_BYTES", 1024 * 1024)
        if max_output_bytes <= 0:
            raise ValueError(f"CODERUNNER_MAX_OUTPUT_BYTES must be positive, got {max_output_bytes}")

        test_concurrency = _int_var("CODERUNNER_TEST_CONCURRENCY", 1)
        if test_concurrency < 1:
            raise ValueError(f"CODERUNNER_TEST_CONCURRENCY must be at least 1, got {test_concurrency}")

        return cls(
            temp_dir=temp_dir,
            allowed_langs=allowed_langs,
            max_execution_ms=max_execution_ms,
            max_output_bytes=max_output_bytes,
            python_command=os.getenv("CODERUNNER_PYTHON_COMMAND", "python3"),
            test_concurrency=test_concurrency,
            settings_ttl_seconds=_int_var("CODERUNNER_SETTINGS_TTL_SECONDS", 60),
            log_level=os.getenv("CODERUNNER_LOG_LEVEL", "INFO").upper(),
            port=_int_var("PORT", 8080),
        )

    @classmethod
    def from_env(cls) -> "Config":
        """
        Alternate constructor used by the API to load configuration.

        This wrapper calls :meth:`load` to construct the configuration.
        It exists to provide a more intuitive name when consumed in
        application code.
        """
        return cls.load()
