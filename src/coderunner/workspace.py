"""Ephemeral per-execution workspaces.

Every execution gets its own directory under a configurable base path,
named after a random identifier.  The directory holds the submitted source
files and, when standard input was supplied, a ``.stdin`` file that the
run step reads from.  Uniqueness of the directory name is the only thing
that keeps concurrent executions apart, so no locking is needed.

Workspaces are always removed when the execution finishes, whatever the
outcome; use :meth:`WorkspaceManager.open` to get that guarantee::

    with manager.open() as workspace:
        manager.stage(workspace, files, stdin)
        ...
"""

from __future__ import annotations

import contextlib
import logging
import re
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from .errors import FileWriteError, InvalidFileName, MissingFiles, WorkspaceCreateError

logger = logging.getLogger(__name__)

STDIN_FILENAME = ".stdin"

_SEGMENT_RE = re.compile(r"^[A-Za-z0-9._-]+$")


@dataclass
class SourceFile:
    """One submitted source file."""

    name: str
    content: str
    is_main: bool = False


@dataclass(frozen=True)
class Workspace:
    id: str
    path: Path

    @property
    def stdin_path(self) -> Path:
        return self.path / STDIN_FILENAME


def validate_file_name(name: str) -> str:
    """Return ``name`` if it is a safe relative path, else raise.

    Names may contain nested directories but every segment is limited to
    letters, digits, ``.``, ``_`` and ``-`` and may not be ``.`` or ``..``.
    """
    if not name:
        raise InvalidFileName(name, "name is empty")
    if name.startswith("/"):
        raise InvalidFileName(name, "absolute paths are not allowed")
    for segment in name.split("/"):
        if segment in ("", ".", ".."):
            raise InvalidFileName(name, "path traversal segments are not allowed")
        if not _SEGMENT_RE.match(segment):
            raise InvalidFileName(name, "only letters, digits, '.', '_' and '-' are allowed")
    if name == STDIN_FILENAME:
        raise InvalidFileName(name, "name is reserved")
    return name


def prepare_files(files: Optional[Sequence[SourceFile]]) -> List[SourceFile]:
    """Validate a submission and make sure exactly one file is main.

    The first flagged file wins; if nothing is flagged the first file is
    promoted.  The input objects are not modified.
    """
    if not files:
        raise MissingFiles()
    seen = set()
    for file in files:
        validate_file_name(file.name)
        if file.name in seen:
            raise InvalidFileName(file.name, "duplicate file name")
        seen.add(file.name)
    main_index = next((i for i, f in enumerate(files) if f.is_main), 0)
    return [
        SourceFile(name=f.name, content=f.content, is_main=(i == main_index))
        for i, f in enumerate(files)
    ]


def main_file(files: Sequence[SourceFile]) -> SourceFile:
    return next((f for f in files if f.is_main), files[0])


class WorkspaceManager:
    """Create, populate and remove execution workspaces."""

    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir)

    def create(self) -> Workspace:
        workspace_id = uuid.uuid4().hex
        path = self.base_dir / workspace_id
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True, mode=0o755)
            path.mkdir(mode=0o755)
        except OSError as exc:
            raise WorkspaceCreateError(f"Failed to create workspace {path}: {exc}") from exc
        # Trust the filesystem, not the mkdir call.
        if not path.is_dir():
            raise WorkspaceCreateError(f"Failed to create workspace {path}: directory missing after creation")
        logger.info("Created workspace %s", path)
        return Workspace(id=workspace_id, path=path)

    def stage(
        self,
        workspace: Workspace,
        files: Sequence[SourceFile],
        stdin: Optional[str] = None,
        executable: bool = False,
    ) -> Optional[Path]:
        """Write ``files`` (and ``stdin``) into ``workspace``.

        Returns the path of the stdin file, or ``None`` when no input was
        given.  Partially staged workspaces are left as-is on failure; the
        caller discards the whole directory anyway.
        """
        for file in files:
            validate_file_name(file.name)
            dest = workspace.path / file.name
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                dest.write_text(file.content, encoding="utf-8")
                if executable:
                    dest.chmod(0o755)
            except OSError as exc:
                raise FileWriteError(file.name, str(exc)) from exc
        if not stdin:
            return None
        try:
            workspace.stdin_path.write_text(stdin, encoding="utf-8")
        except OSError as exc:
            raise FileWriteError(STDIN_FILENAME, str(exc)) from exc
        return workspace.stdin_path

    def destroy(self, workspace: Workspace) -> None:
        """Remove ``workspace``; failures are logged, never raised."""
        try:
            shutil.rmtree(workspace.path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.error("Failed to clean up workspace %s: %s", workspace.path, exc)
        else:
            logger.info("Cleaned up workspace %s", workspace.path)

    @contextlib.contextmanager
    def open(self) -> Iterator[Workspace]:
        workspace = self.create()
        try:
            yield workspace
        finally:
            self.destroy(workspace)
