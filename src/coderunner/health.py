"""Toolchain health checks.

Each language profile names a version command (``python3 --version``,
``java -version``, ...).  Running it tells us whether
the toolchain is installed in the container and which version it is; the
expected version, if any, comes from the settings provider under
``<LANGUAGE>_VERSION``.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from .errors import ProcessSpawnError
from .executor.base import ProcessRunner
from .languages import LanguageProfile, LanguageRegistry
from .settings import SettingsProvider

logger = logging.getLogger(__name__)

VERSION_CHECK_TIMEOUT_MS = 5000


@dataclass
class LanguageHealth:
    name: str
    display_name: Optional[str] = None
    status: str = "unknown"
    version: Optional[str] = None
    expected_version: Optional[str] = None
    details: Optional[str] = None


@dataclass
class SystemHealth:
    status: str
    timestamp: str
    detail: str
    languages: List[LanguageHealth] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def check_language_health(
    profile: LanguageProfile,
    runner: Optional[ProcessRunner] = None,
    settings: Optional[SettingsProvider] = None,
) -> LanguageHealth:
    runner = runner or ProcessRunner()
    health = LanguageHealth(name=profile.key, display_name=profile.display_name)
    if settings is not None:
        health.expected_version = settings.get(f"{profile.key.upper()}_VERSION") or None
    if not profile.version_command:
        health.details = "No version command configured"
        return health

    try:
        result = runner.run(list(profile.version_command), None, VERSION_CHECK_TIMEOUT_MS)
    except ProcessSpawnError as exc:
        health.status = "unavailable"
        health.details = str(exc)
        return health

    if result.ok:
        # java -version writes to stderr
        output = result.stderr if profile.key == "java" else (result.stdout or result.stderr)
        health.status = "available"
        health.version = output.strip()
        health.details = "Language is properly installed"
    else:
        health.status = "unavailable"
        health.details = result.stderr.strip() or "Failed to execute language command"
    return health


def system_health(
    registry: LanguageRegistry,
    runner: Optional[ProcessRunner] = None,
    settings: Optional[SettingsProvider] = None,
) -> SystemHealth:
    languages = [check_language_health(p, runner, settings) for p in registry.profiles()]
    unavailable = sum(1 for lang in languages if lang.status != "available")
    if unavailable:
        logger.warning("%d language(s) unavailable", unavailable)
    return SystemHealth(
        status="healthy" if unavailable == 0 else "degraded",
        timestamp=datetime.now(timezone.utc).isoformat(),
        detail="All languages are available" if unavailable == 0 else f"{unavailable} language(s) unavailable",
        languages=languages,
    )
