"""
Unit tests for services.common.ovsdb module.
"""

import asyncio
import time
from unittest.mock import AsyncMock, MagicMock

import pytest

from ovncluster.core.exceptions import CommandError, DatabaseSpecError, WaitTimeoutError
from ovncluster.models import DatabaseKind, DatabaseState
from ovncluster.services.common.configs import PathsConfig
from ovncluster.services.common.ovsdb import (
    MembershipWaiter,
    create_database_spec,
    parse_database_state,
)


CONNECTED = [{"rows": [{"name": "OVN_Southbound", "connected": True}]}]
DISCONNECTED = [{"rows": [{"name": "OVN_Southbound", "connected": False}]}]
GONE = [{"rows": []}]


class FakeTime:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def clock(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_time():
    return FakeTime()


@pytest.fixture
def control():
    mock = MagicMock()
    mock.ovsdb_query = AsyncMock(return_value=CONNECTED)
    return mock


@pytest.fixture
def waiter(control, paths_config, fake_time):
    return MembershipWaiter(
        control, paths_config, poll_interval=0.5, clock=fake_time.clock, sleep=fake_time.sleep
    )


@pytest.fixture
def sb_spec(paths_config):
    return create_database_spec(DatabaseKind.SB, paths_config, connect="tcp:10.0.0.1:6642")


class TestCreateDatabaseSpec:
    def test_local_northbound(self, paths_config):
        spec = create_database_spec("nb_local", paths_config)
        assert spec.schema == "OVN_Northbound"
        assert spec.control_socket == str(paths_config.nb_control_socket)
        assert spec.target == f"unix:{paths_config.nb_database_socket}"
        assert spec.terminal_state is DatabaseState.REMOVED

    def test_cluster_southbound(self, paths_config):
        spec = create_database_spec(DatabaseKind.SB, paths_config, connect="ssl:[fd00::1]:6642")
        assert spec.schema == "OVN_Southbound"
        assert spec.control_socket == str(paths_config.sb_control_socket)
        assert spec.target == "ssl:[fd00::1]:6642"

    def test_unknown_kind(self, paths_config):
        with pytest.raises(DatabaseSpecError, match="unknown database kind"):
            create_database_spec("ic_nb", paths_config)

    def test_cluster_variant_needs_connect(self, paths_config):
        with pytest.raises(DatabaseSpecError, match="connection string"):
            create_database_spec("nb", paths_config, connect="")

    def test_missing_database_socket(self, tmp_path):
        paths = PathsConfig(root=tmp_path, sb_database_socket=None)
        with pytest.raises(DatabaseSpecError, match="database socket"):
            create_database_spec("sb_local", paths)

    def test_missing_control_socket(self, tmp_path):
        paths = PathsConfig(root=tmp_path, nb_control_socket=None)
        with pytest.raises(DatabaseSpecError, match="control socket"):
            create_database_spec("nb_local", paths)


class TestParseDatabaseState:
    @pytest.mark.parametrize(
        ("reply", "expected"),
        [
            (CONNECTED, DatabaseState.CONNECTED),
            (DISCONNECTED, DatabaseState.UNKNOWN),
            (GONE, DatabaseState.REMOVED),
            ([{"error": "unknown database"}], DatabaseState.UNKNOWN),
            ([], DatabaseState.UNKNOWN),
            (None, DatabaseState.UNKNOWN),
            ([{}], DatabaseState.UNKNOWN),
        ],
    )
    def test_mapping(self, reply, expected):
        assert parse_database_state(reply) is expected


class TestDatabaseState:
    async def test_queries_server_database(self, waiter, control, sb_spec):
        assert await waiter.database_state(sb_spec) is DatabaseState.CONNECTED
        target, database, operations = control.ovsdb_query.await_args.args
        assert target == "tcp:10.0.0.1:6642"
        assert database == "_Server"
        assert operations[0]["where"] == [["name", "==", "OVN_Southbound"]]

    async def test_missing_local_socket_is_removed(self, waiter, control, paths_config):
        spec = create_database_spec("nb_local", paths_config)
        assert await waiter.database_state(spec) is DatabaseState.REMOVED
        control.ovsdb_query.assert_not_awaited()

    async def test_present_local_socket_is_queried(self, waiter, control, paths_config):
        paths_config.nb_database_socket.parent.mkdir(parents=True)
        paths_config.nb_database_socket.touch()
        spec = create_database_spec("nb_local", paths_config)
        assert await waiter.database_state(spec) is DatabaseState.CONNECTED

    async def test_socket_gone_error_is_removed(self, waiter, control, sb_spec):
        control.ovsdb_query.side_effect = CommandError(
            "failed", returncode=1, stderr="ovsdb-client: failed to connect (No such file or directory)"
        )
        assert await waiter.database_state(sb_spec) is DatabaseState.REMOVED

    async def test_other_errors_are_unknown(self, waiter, control, sb_spec):
        control.ovsdb_query.side_effect = CommandError("failed", returncode=1, stderr="Connection refused")
        assert await waiter.database_state(sb_spec) is DatabaseState.UNKNOWN


class TestWaitFor:
    async def test_returns_when_state_reached(self, waiter, control, sb_spec, fake_time):
        control.ovsdb_query.side_effect = [CONNECTED, DISCONNECTED, GONE]
        attempts = await waiter.wait_for(sb_spec, DatabaseState.REMOVED, timeout=10.0)
        assert attempts == 3
        assert fake_time.sleeps == [0.5, 0.5]

    async def test_keeps_polling_through_command_failures(self, waiter, control, sb_spec):
        control.ovsdb_query.side_effect = [
            CommandError("busy", returncode=1, stderr="timeout"),
            GONE,
        ]
        assert await waiter.wait_for(sb_spec, "removed", timeout=5.0) == 2

    async def test_timeout_reports_last_state(self, waiter, control, sb_spec, fake_time):
        with pytest.raises(WaitTimeoutError, match="OVN_Southbound") as exc_info:
            await waiter.wait_for(sb_spec, DatabaseState.REMOVED, timeout=2.0)
        assert exc_info.value.last_state is DatabaseState.CONNECTED
        assert fake_time.now == pytest.approx(2.0)
        assert max(fake_time.sleeps) <= 0.5

    async def test_unresolvable_kind_fails_before_polling(self, waiter, control, fake_time):
        with pytest.raises(DatabaseSpecError):
            await waiter.wait_for(DatabaseKind.NB, DatabaseState.REMOVED, timeout=5.0)
        control.ovsdb_query.assert_not_awaited()
        assert fake_time.sleeps == []

    async def test_resolves_local_kind(self, waiter, control, fake_time):
        # the local socket does not exist under tmp_path, so the database reads as removed
        assert await waiter.wait_for("sb_local", DatabaseState.REMOVED, timeout=5.0) == 1

    async def test_default_interval(self, control, paths_config, sb_spec, fake_time):
        waiter = MembershipWaiter(control, paths_config, clock=fake_time.clock, sleep=fake_time.sleep)
        control.ovsdb_query.side_effect = [CONNECTED, GONE]
        await waiter.wait_for(sb_spec, DatabaseState.REMOVED, timeout=30.0)
        assert fake_time.sleeps == [pytest.approx(0.3)]

    async def test_slow_query_does_not_outlive_deadline(self, control, paths_config, sb_spec):
        async def hung_query(*args, **kwargs):
            await asyncio.sleep(1.0)
            return GONE

        control.ovsdb_query.side_effect = hung_query
        waiter = MembershipWaiter(control, paths_config, poll_interval=0.02)

        start = time.monotonic()
        with pytest.raises(WaitTimeoutError) as exc_info:
            await waiter.wait_for(sb_spec, DatabaseState.REMOVED, timeout=0.2)
        elapsed = time.monotonic() - start

        assert elapsed <= 0.2 + 0.02 + 0.05
        assert exc_info.value.last_state is DatabaseState.UNKNOWN
