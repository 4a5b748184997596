"""Creation and crash-safe removal of the node's runtime directories.

[PathLifecycle][ovncluster.services.common.lifecycle.PathLifecycle] creates
the runtime directories when the node joins and removes them when it
leaves. Removal is guarded by a backup: the data directories are first
moved into a fresh ``backup_<unix-epoch-seconds>`` directory under the
runtime root, and nothing is removed unless every move succeeded.

Filesystem access goes through the small
[FileSystem][ovncluster.services.common.lifecycle.FileSystem] protocol so
tests can substitute failures without touching a real disk.
"""

from __future__ import annotations

import contextlib
import os
import shutil
import time
from typing import TYPE_CHECKING, Protocol

from ovncluster.core.exceptions import PathError
from ovncluster.core.logger import Logger

from .types import PathOutcome, TeardownPhase, TeardownResult


if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from .configs import PathsConfig


REQUIRED_DIR_MODE = 0o700
BACKUP_DIR_MODE = 0o750
BACKUP_PREFIX = "backup_"


class FileSystem(Protocol):
    """Filesystem operations used by the path lifecycle."""

    def makedirs(self, path: Path, mode: int) -> None:
        """Create ``path`` and missing parents; an existing directory is fine."""
        ...

    def mkdir(self, path: Path, mode: int) -> None:
        """Create exactly ``path``; fail if it exists."""
        ...

    def rename(self, source: Path, destination: Path) -> None: ...

    def rmtree(self, path: Path) -> None:
        """Remove ``path`` recursively; a missing path is not an error."""
        ...


class LocalFileSystem:
    """[FileSystem][ovncluster.services.common.lifecycle.FileSystem] backed by ``os`` and ``shutil``."""

    def makedirs(self, path: Path, mode: int) -> None:
        os.makedirs(path, mode=mode, exist_ok=True)

    def mkdir(self, path: Path, mode: int) -> None:
        os.mkdir(path, mode)

    def rename(self, source: Path, destination: Path) -> None:
        os.rename(source, destination)

    def rmtree(self, path: Path) -> None:
        with contextlib.suppress(FileNotFoundError):
            shutil.rmtree(path)


class PathLifecycle:
    """Bring-up and tear-down of runtime directories.

    Args:
        paths: Runtime directory layout.
        fs: Filesystem implementation. Defaults to the local filesystem.
        clock: Wall clock returning Unix seconds, used to name backups.
    """

    def __init__(
        self,
        paths: PathsConfig,
        *,
        fs: FileSystem | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._paths = paths
        self._fs = fs or LocalFileSystem()
        self._clock = clock
        self._logger = Logger("paths")

    def bootstrap(self) -> list[Path]:
        """Create every required directory (mode 0700). Idempotent.

        Returns:
            The directories ensured, in configuration order.

        Raises:
            PathError: On the first directory that cannot be created. The
                message names the path.
        """
        created: list[Path] = []
        for path in self._paths.required_dirs:
            try:
                self._fs.makedirs(path, REQUIRED_DIR_MODE)
            except OSError as e:
                raise PathError(f"unable to create {path}: {e}") from e
            created.append(path)
        self._logger.debug("paths_created", count=len(created))
        return created

    def backup_path(self) -> Path:
        """Return the backup directory a teardown started now would use."""
        return self._paths.root / f"{BACKUP_PREFIX}{int(self._clock())}"

    def teardown(self) -> TeardownResult:
        """Back up the data directories, then remove all runtime directories.

        Phases:

        1. Create ``backup_<epoch>`` under the root (mode 0750). On failure,
           stop: nothing is moved or removed.
        2. Move each backup directory into it, collecting failures.
        3. If any move failed, stop: nothing is removed.
        4. Remove every required directory recursively, collecting failures.

        Never raises for filesystem errors; call
        [raise_for_failures()][ovncluster.services.common.types.TeardownResult.raise_for_failures]
        on the result to turn failures into exceptions.
        """
        backup_path = self.backup_path()
        try:
            self._fs.mkdir(backup_path, BACKUP_DIR_MODE)
        except OSError as e:
            outcome = PathOutcome(TeardownPhase.BACKUP_ROOT, backup_path, ok=False, error=str(e))
            self._logger.warning("backup_root_failed", path=str(backup_path), error=str(e))
            return TeardownResult(backup_path=None, outcomes=(outcome,))

        outcomes = [PathOutcome(TeardownPhase.BACKUP_ROOT, backup_path, ok=True)]

        for source in self._paths.backup_dirs:
            destination = backup_path / source.name
            try:
                self._fs.rename(source, destination)
            except OSError as e:
                outcomes.append(
                    PathOutcome(
                        TeardownPhase.BACKUP,
                        source,
                        ok=False,
                        error=str(e),
                        destination=destination,
                    )
                )
            else:
                outcomes.append(
                    PathOutcome(TeardownPhase.BACKUP, source, ok=True, destination=destination)
                )

        result = TeardownResult(backup_path=backup_path, outcomes=tuple(outcomes))
        if result.backup_failures:
            self._logger.warning(
                "backup_incomplete",
                path=str(backup_path),
                failed=len(result.backup_failures),
            )
            return result

        self._logger.info("data_backed_up", path=str(backup_path))

        for path in self._paths.required_dirs:
            try:
                self._fs.rmtree(path)
            except OSError as e:
                outcomes.append(PathOutcome(TeardownPhase.REMOVE, path, ok=False, error=str(e)))
            else:
                outcomes.append(PathOutcome(TeardownPhase.REMOVE, path, ok=True))

        result = TeardownResult(
            backup_path=backup_path,
            outcomes=tuple(outcomes),
            removal_attempted=True,
        )
        self._logger.info(
            "paths_removed",
            count=len(self._paths.required_dirs),
            failed=len(result.removal_failures),
        )
        return result
