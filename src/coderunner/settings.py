"""Runtime settings providers.

The engine pulls a handful of tunables (timeouts, expected toolchain
versions) from a settings collaborator instead of module globals.  Two
providers are included:

* ``EnvSettings`` – reads values straight from environment variables.

* ``CachedSettings`` – keeps a snapshot produced by an arbitrary loader
  (a database query, a remote config call, ...) and refreshes it once the
  snapshot is older than ``ttl_seconds``.

Values are always strings; ``get_bool`` and ``get_number`` interpret them.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from typing import Callable, Dict, Mapping, Optional

logger = logging.getLogger(__name__)


class SettingsProvider:
    """Protocol for settings providers."""

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        raise NotImplementedError

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key)
        if value is None:
            return default
        return value.strip().lower() in {"1", "true", "t", "yes", "y"}

    def get_number(self, key: str, default: Optional[float] = None) -> Optional[float]:
        value = self.get(key)
        if value is None or value.strip() == "":
            return default
        try:
            return float(value)
        except ValueError:
            logger.warning("Setting %s has non-numeric value %r; using default", key, value)
            return default


class StaticSettings(SettingsProvider):
    """Settings backed by a fixed mapping."""

    def __init__(self, values: Optional[Mapping[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(values or {})

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._values.get(key, default)


class EnvSettings(SettingsProvider):
    """Read settings from environment variables, optionally prefixed."""

    def __init__(self, prefix: str = "") -> None:
        self.prefix = prefix

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return os.environ.get(f"{self.prefix}{key}", default)

    def snapshot(self) -> Dict[str, str]:
        return {
            name[len(self.prefix):]: value
            for name, value in os.environ.items()
            if name.startswith(self.prefix)
        }


class CachedSettings(SettingsProvider):
    """TTL cache in front of a settings loader.

    The loader returns the complete key/value mapping.  When it raises,
    the previous snapshot is kept and the error is logged so that a flaky
    settings store never breaks an execution.
    """

    def __init__(
        self,
        loader: Callable[[], Mapping[str, str]],
        ttl_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._loader = loader
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._cache: Dict[str, str] = {}
        self._loaded_at: Optional[float] = None
        self._lock = threading.Lock()

    def _expired(self) -> bool:
        return self._loaded_at is None or self._clock() - self._loaded_at > self.ttl_seconds

    def refresh(self) -> None:
        try:
            values = dict(self._loader())
        except Exception:
            logger.exception("Error refreshing settings cache")
            return
        with self._lock:
            self._cache = values
            self._loaded_at = self._clock()

    def invalidate(self) -> None:
        with self._lock:
            self._cache = {}
            self._loaded_at = None

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        if self._expired():
            self.refresh()
        with self._lock:
            return self._cache.get(key, default)
