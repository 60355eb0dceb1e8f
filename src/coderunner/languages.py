"""Language profiles and the registry that resolves them.

A profile describes how one language is built and started: the source
extension, an optional compile command and the run command.  Commands are
produced by templates that receive the name of the main source file and
return an argument list, so only the (validated) file name ever reaches
the command line, never the file contents, and no shell is involved.

The registry is built once at startup by :func:`build_registry` and is
read-only afterwards, which makes lookups safe from any number of
concurrent executions.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from .config import Config
from .errors import UnsupportedLanguage

CommandTemplate = Callable[[str], List[str]]

DEFAULT_TIMEOUT_MS = 10000
JAVA_TIMEOUT_MS = 15000


def _stem(file_name: str) -> str:
    return posixpath.splitext(file_name)[0]


@dataclass(frozen=True)
class LanguageProfile:
    """How to compile (optionally) and run one language."""

    key: str
    display_name: str
    extension: str
    run_template: CommandTemplate
    compile_template: Optional[CommandTemplate] = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    version_command: Tuple[str, ...] = ()
    main_stem: str = "main"

    @property
    def default_file_name(self) -> str:
        """Name given to a submission sent as a single ``code`` string."""
        return self.main_stem + self.extension

    @property
    def is_compiled(self) -> bool:
        return self.compile_template is not None

    def compile_command(self, main_file: str) -> Optional[List[str]]:
        if self.compile_template is None:
            return None
        return self.compile_template(main_file)

    def run_command(self, main_file: str) -> List[str]:
        return self.run_template(main_file)


def _interpreted(command: str) -> CommandTemplate:
    return lambda main_file: [command, main_file]


def _native_compile(compiler: str) -> CommandTemplate:
    return lambda main_file: [compiler, "-o", _stem(main_file), main_file]


def _native_run(main_file: str) -> List[str]:
    return ["./" + _stem(main_file)]


def _java_compile(main_file: str) -> List[str]:
    return ["javac", main_file]


def _java_run(main_file: str) -> List[str]:
    # The JVM takes a class name, not a file name.
    return ["java", "-cp", posixpath.dirname(main_file) or ".", posixpath.basename(_stem(main_file))]


def builtin_profiles(python_command: str = "python3") -> Dict[str, LanguageProfile]:
    """Return the built-in language table keyed by language key."""
    return {
        "nodejs": LanguageProfile(
            key="nodejs",
            display_name="Node.js",
            extension=".js",
            run_template=_interpreted("node"),
            version_command=("node", "--version"),
        ),
        "python": LanguageProfile(
            key="python",
            display_name="Python",
            extension=".py",
            run_template=_interpreted(python_command),
            version_command=(python_command, "--version"),
        ),
        "java": LanguageProfile(
            key="java",
            display_name="Java",
            extension=".java",
            compile_template=_java_compile,
            run_template=_java_run,
            timeout_ms=JAVA_TIMEOUT_MS,
            version_command=("java", "-version"),
            main_stem="Main",
        ),
        "cpp": LanguageProfile(
            key="cpp",
            display_name="C++",
            extension=".cpp",
            compile_template=_native_compile("g++"),
            run_template=_native_run,
            version_command=("g++", "--version"),
        ),
        "c": LanguageProfile(
            key="c",
            display_name="C",
            extension=".c",
            compile_template=_native_compile("gcc"),
            run_template=_native_run,
            version_command=("gcc", "--version"),
        ),
    }


class LanguageRegistry:
    """Immutable lookup table of language profiles."""

    def __init__(self, profiles: Mapping[str, LanguageProfile]) -> None:
        for key, profile in profiles.items():
            if profile.run_template is None:
                raise ValueError(f"Language profile {key!r} has no run command")
        self._profiles: Dict[str, LanguageProfile] = {key.lower(): p for key, p in profiles.items()}

    def resolve(self, language: Optional[str]) -> LanguageProfile:
        key = (language or "").strip().lower()
        try:
            return self._profiles[key]
        except KeyError:
            raise UnsupportedLanguage(language or "") from None

    def keys(self) -> List[str]:
        return list(self._profiles)

    def profiles(self) -> List[LanguageProfile]:
        return list(self._profiles.values())

    def __contains__(self, language: str) -> bool:
        return (language or "").strip().lower() in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)


def build_registry(config: Config) -> LanguageRegistry:
    """Build the registry for the languages enabled in ``config``.

    Unknown language keys are rejected here, at load time, rather than
    surfacing as unsupported-language errors on every request.
    """
    available = builtin_profiles(config.python_command)
    unknown = [lang for lang in config.allowed_langs if lang not in available]
    if unknown:
        raise ValueError(
            f"Unknown languages in CODERUNNER_ALLOWED_LANGS: {', '.join(unknown)}. "
            f"Supported: {', '.join(available)}"
        )
    profiles: Dict[str, LanguageProfile] = {}
    for lang in config.allowed_langs:
        profile = available[lang]
        if config.max_execution_ms is not None:
            profile = replace(profile, timeout_ms=config.max_execution_ms)
        profiles[lang] = profile
    return LanguageRegistry(profiles)
