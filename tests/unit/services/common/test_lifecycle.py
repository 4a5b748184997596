"""
Unit tests for services.common.lifecycle module.
"""

import errno
import stat
from pathlib import Path

import pytest

from ovncluster.core.exceptions import BackupError, PathError
from ovncluster.services.common.lifecycle import (
    BACKUP_DIR_MODE,
    REQUIRED_DIR_MODE,
    LocalFileSystem,
    PathLifecycle,
)
from ovncluster.services.common.types import TeardownPhase


class RecordingFileSystem:
    """In-memory filesystem that records calls and fails on request."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Path]] = []
        self.fail: dict[tuple[str, Path], OSError] = {}

    def _record(self, op: str, path: Path) -> None:
        self.calls.append((op, path))
        if (op, path) in self.fail:
            raise self.fail[(op, path)]

    def makedirs(self, path: Path, mode: int) -> None:
        self._record("makedirs", path)

    def mkdir(self, path: Path, mode: int) -> None:
        self._record("mkdir", path)

    def rename(self, source: Path, destination: Path) -> None:
        self._record("rename", source)

    def rmtree(self, path: Path) -> None:
        self._record("rmtree", path)

    def ops(self, op: str) -> list[Path]:
        return [p for o, p in self.calls if o == op]


@pytest.fixture
def fs():
    return RecordingFileSystem()


@pytest.fixture
def lifecycle(paths_config, fs):
    return PathLifecycle(paths_config, fs=fs, clock=lambda: 1700000000.7)


class TestBootstrap:
    def test_creates_every_required_dir(self, lifecycle, fs, paths_config):
        assert lifecycle.bootstrap() == paths_config.required_dirs
        assert fs.ops("makedirs") == paths_config.required_dirs

    def test_failure_names_path(self, lifecycle, fs, paths_config):
        bad = paths_config.required_dirs[2]
        fs.fail[("makedirs", bad)] = PermissionError(errno.EACCES, "Permission denied")
        with pytest.raises(PathError, match=f"unable to create {bad}"):
            lifecycle.bootstrap()
        assert fs.ops("makedirs") == paths_config.required_dirs[:3]

    def test_real_directories(self, paths_config):
        lifecycle = PathLifecycle(paths_config)
        lifecycle.bootstrap()
        lifecycle.bootstrap()
        for path in paths_config.required_dirs:
            assert path.is_dir()
            assert stat.S_IMODE(path.stat().st_mode) == REQUIRED_DIR_MODE


class TestTeardown:
    def test_backup_name_uses_epoch_seconds(self, lifecycle, paths_config):
        assert lifecycle.backup_path() == paths_config.root / "backup_1700000000"

    def test_successful_teardown(self, lifecycle, fs, paths_config):
        result = lifecycle.teardown()

        assert result.ok
        assert result.removal_attempted
        assert result.backup_path == paths_config.root / "backup_1700000000"
        assert fs.ops("mkdir") == [result.backup_path]
        assert fs.ops("rename") == paths_config.backup_dirs
        assert fs.ops("rmtree") == paths_config.required_dirs
        # every move happens before the first removal
        ops = [o for o, _ in fs.calls]
        assert ops.index("rmtree") > max(i for i, o in enumerate(ops) if o == "rename")

    def test_backup_root_failure_aborts(self, lifecycle, fs, paths_config):
        fs.fail[("mkdir", lifecycle.backup_path())] = FileExistsError(errno.EEXIST, "File exists")
        result = lifecycle.teardown()

        assert result.backup_path is None
        assert not result.removal_attempted
        assert fs.ops("rename") == []
        assert fs.ops("rmtree") == []
        assert result.outcomes[0].phase is TeardownPhase.BACKUP_ROOT
        with pytest.raises(BackupError, match="refusing to continue"):
            result.raise_for_failures()

    def test_failed_move_prevents_all_removal(self, lifecycle, fs, paths_config):
        first = paths_config.backup_dirs[0]
        fs.fail[("rename", first)] = FileNotFoundError(errno.ENOENT, "No such file or directory")
        result = lifecycle.teardown()

        # remaining moves are still attempted, but nothing is removed
        assert fs.ops("rename") == paths_config.backup_dirs
        assert fs.ops("rmtree") == []
        assert not result.removal_attempted
        assert [o.path for o in result.backup_failures] == [first]
        with pytest.raises(BackupError):
            result.raise_for_failures()

    def test_removal_failures_collected(self, lifecycle, fs, paths_config):
        busy = paths_config.required_dirs[0]
        fs.fail[("rmtree", busy)] = OSError(errno.EBUSY, "Device or resource busy")
        result = lifecycle.teardown()

        assert fs.ops("rmtree") == paths_config.required_dirs
        assert [o.path for o in result.removal_failures] == [busy]
        assert not result.ok

    def test_real_teardown_keeps_data(self, paths_config):
        lifecycle = PathLifecycle(paths_config, clock=lambda: 1700000000)
        lifecycle.bootstrap()
        db = paths_config.root / "data/central/db/ovnnb_db.db"
        db.write_text("nb data")

        result = lifecycle.teardown()

        assert result.ok
        assert (result.backup_path / "central/db/ovnnb_db.db").read_text() == "nb data"
        assert stat.S_IMODE(result.backup_path.stat().st_mode) == BACKUP_DIR_MODE
        assert not any(p.exists() for p in paths_config.required_dirs)

    def test_real_teardown_same_second_refuses(self, paths_config):
        lifecycle = PathLifecycle(paths_config, clock=lambda: 1700000000)
        lifecycle.bootstrap()
        lifecycle.teardown()
        lifecycle.bootstrap()

        result = lifecycle.teardown()

        assert result.backup_path is None
        assert all(p.is_dir() for p in paths_config.required_dirs)


def test_local_rmtree_ignores_missing(tmp_path):
    LocalFileSystem().rmtree(tmp_path / "missing")
