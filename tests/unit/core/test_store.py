"""
Unit tests for core.store module.

Tests:
- Configuration and factory methods
- Read transactions and their retry on dropped connections
- Lifecycle delegation to the pool
"""

from unittest.mock import AsyncMock, patch

import asyncpg

from ovncluster.core.pool import Pool
from ovncluster.core.store import MembershipStore, StoreConfig, StoreTimeoutsConfig


class TestConfig:
    def test_defaults(self):
        assert StoreConfig().timeouts.query == 10.0

    def test_query_timeout_none(self):
        assert StoreTimeoutsConfig(query=None).query is None


class TestFactories:
    def test_from_dict_with_pool(self, pool_config_dict):
        store = MembershipStore.from_dict(
            {"pool": pool_config_dict, "timeouts": {"query": 2.5}}
        )
        assert store.pool_config.database.database == "test_db"
        assert store.config.timeouts.query == 2.5

    def test_from_dict_empty(self):
        store = MembershipStore.from_dict({})
        assert store.config.timeouts.query == 10.0
        assert store.pool_config.database.database == "microovn"

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "store.yaml"
        path.write_text("pool:\n  database:\n    host: db.example\ntimeouts:\n  query: 4\n")
        store = MembershipStore.from_yaml(str(path))
        assert store.pool_config.database.host == "db.example"
        assert store.config.timeouts.query == 4.0

    def test_repr(self, mock_store):
        assert repr(mock_store) == (
            "MembershipStore(host=localhost, database=test_db, connected=True)"
        )


class TestRead:
    async def test_runs_in_readonly_serializable_transaction(self, mock_store, mock_connection):
        seen = []

        async def work(conn):
            seen.append(conn)
            return "rows"

        assert await mock_store.read(work) == "rows"
        assert seen == [mock_connection]
        mock_connection.transaction.assert_called_once_with(isolation="serializable", readonly=True)

    async def test_reruns_after_dropped_connection(self, mock_store, mock_connection):
        mock_connection.fetch = AsyncMock(side_effect=[asyncpg.InterfaceError("reset"), ["row"]])

        async def work(conn):
            return await conn.fetch("SELECT member, service FROM services")

        with patch("ovncluster.core.pool.asyncio.sleep", AsyncMock()):
            assert await mock_store.read(work) == ["row"]
        assert mock_connection.transaction.call_count == 2


class TestLifecycle:
    async def test_context_manager(self):
        pool = Pool()
        with (
            patch.object(pool, "connect", AsyncMock()) as connect,
            patch.object(pool, "close", AsyncMock()) as close,
        ):
            async with MembershipStore(pool=pool) as store:
                assert isinstance(store, MembershipStore)
            connect.assert_awaited_once()
            close.assert_awaited_once()
