"""
Unit tests for core.pool module.

Tests:
- Configuration models and password resolution
- Factory methods (from_yaml, from_dict)
- Connection lifecycle with retry
- Transactions with read-only / isolation options
- Transactional work retried on transient connection errors
"""

from unittest.mock import AsyncMock, patch

import asyncpg
import pytest
from pydantic import ValidationError

from ovncluster.core.exceptions import StoreConnectionError
from ovncluster.core.pool import (
    DatabaseConfig,
    Pool,
    PoolConfig,
    PoolLimitsConfig,
    PoolRetryConfig,
    ServerSettingsConfig,
)


class TestDatabaseConfig:
    """DatabaseConfig Pydantic model."""

    def test_defaults(self):
        config = DatabaseConfig()
        assert config.host == "localhost"
        assert config.port == 5432
        assert config.database == "microovn"
        assert config.user == "microovn"
        assert config.password.get_secret_value() == "test_password"

    def test_password_from_custom_env(self, monkeypatch):
        monkeypatch.setenv("OTHER_PASSWORD", "other")
        config = DatabaseConfig(password_env="OTHER_PASSWORD")
        assert config.password.get_secret_value() == "other"

    def test_password_missing_raises(self, monkeypatch):
        monkeypatch.delenv("OVNCLUSTER_STORE_PASSWORD", raising=False)
        with pytest.raises(ValidationError, match="OVNCLUSTER_STORE_PASSWORD"):
            DatabaseConfig()

    @pytest.mark.parametrize("port", [0, 70000])
    def test_invalid_port(self, port):
        with pytest.raises(ValidationError):
            DatabaseConfig(port=port)


class TestLimitsAndRetry:
    def test_limits_defaults(self):
        config = PoolLimitsConfig()
        assert config.min_size == 1
        assert config.max_size == 4

    def test_max_gte_min(self):
        with pytest.raises(ValidationError, match="max_size"):
            PoolLimitsConfig(min_size=5, max_size=2)

    def test_max_delay_gte_initial(self):
        with pytest.raises(ValidationError):
            PoolRetryConfig(initial_delay=5.0, max_delay=2.0)

    def test_server_settings_defaults(self):
        config = ServerSettingsConfig()
        assert config.application_name == "ovncluster"
        assert config.statement_timeout == 30_000


class TestFactories:
    def test_from_dict(self, pool_config_dict):
        pool = Pool.from_dict(pool_config_dict)
        assert pool.config.database.database == "test_db"
        assert pool.config.limits.max_size == 3
        assert pool.is_connected is False

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "pool.yaml"
        path.write_text("database:\n  host: db.example\n  port: 5433\n")
        pool = Pool.from_yaml(str(path))
        assert pool.config.database.host == "db.example"
        assert pool.config.database.port == 5433

    def test_repr(self):
        assert "connected=False" in repr(Pool())


class TestRetryDelay:
    def test_exponential(self):
        pool = Pool(PoolConfig(retry=PoolRetryConfig(initial_delay=1.0, max_delay=5.0)))
        assert [pool._retry_delay(a) for a in range(4)] == [1.0, 2.0, 4.0, 5.0]

    def test_linear(self):
        pool = Pool(
            PoolConfig(
                retry=PoolRetryConfig(initial_delay=1.0, max_delay=10.0, exponential_backoff=False)
            )
        )
        assert [pool._retry_delay(a) for a in range(3)] == [1.0, 2.0, 3.0]


class TestConnect:
    async def test_connect_success(self, mock_asyncpg_pool):
        pool = Pool()
        with patch(
            "ovncluster.core.pool.asyncpg.create_pool", AsyncMock(return_value=mock_asyncpg_pool)
        ) as create:
            await pool.connect()
            await pool.connect()
        assert pool.is_connected is True
        create.assert_awaited_once()
        settings = create.call_args.kwargs["server_settings"]
        assert settings == {"application_name": "ovncluster", "statement_timeout": "30000"}

    async def test_connect_retries_then_fails(self):
        pool = Pool(PoolConfig(retry=PoolRetryConfig(max_attempts=2, initial_delay=0.1)))
        with (
            patch(
                "ovncluster.core.pool.asyncpg.create_pool",
                AsyncMock(side_effect=OSError("refused")),
            ) as create,
            patch("ovncluster.core.pool.asyncio.sleep", AsyncMock()) as sleep,
        ):
            with pytest.raises(StoreConnectionError, match="2 attempts"):
                await pool.connect()
        assert create.await_count == 2
        sleep.assert_awaited_once_with(0.1)
        assert pool.is_connected is False

    async def test_close(self, mock_pool, mock_asyncpg_pool):
        await mock_pool.close()
        mock_asyncpg_pool.close.assert_awaited_once()
        assert mock_pool.is_connected is False
        await mock_pool.close()

    async def test_context_manager(self, mock_asyncpg_pool):
        with patch(
            "ovncluster.core.pool.asyncpg.create_pool", AsyncMock(return_value=mock_asyncpg_pool)
        ):
            async with Pool() as pool:
                assert pool.is_connected
        assert not pool.is_connected


class TestTransaction:
    def test_acquire_requires_connect(self):
        with pytest.raises(RuntimeError, match="not connected"):
            Pool().acquire()

    async def test_readonly_serializable(self, mock_pool, mock_connection):
        async with mock_pool.transaction(readonly=True, isolation="serializable") as conn:
            assert conn is mock_connection
        mock_connection.transaction.assert_called_once_with(isolation="serializable", readonly=True)

    async def test_defaults(self, mock_pool, mock_connection):
        async with mock_pool.transaction():
            pass
        mock_connection.transaction.assert_called_once_with(isolation=None, readonly=False)


class TestRunInTransaction:
    async def test_returns_work_result(self, mock_pool, mock_connection):
        mock_connection.fetchval = AsyncMock(return_value=42)

        async def work(conn):
            return await conn.fetchval("SELECT $1", 42)

        assert await mock_pool.run_in_transaction(work, readonly=True, isolation="serializable") == 42
        mock_connection.transaction.assert_called_once_with(isolation="serializable", readonly=True)

    async def test_retries_transient_error(self, mock_pool, mock_connection):
        mock_connection.fetchval = AsyncMock(side_effect=[asyncpg.InterfaceError("gone"), 1])
        calls = 0

        async def work(conn):
            nonlocal calls
            calls += 1
            return await conn.fetchval("SELECT 1")

        with patch("ovncluster.core.pool.asyncio.sleep", AsyncMock()) as sleep:
            assert await mock_pool.run_in_transaction(work) == 1
        assert calls == 2
        assert mock_connection.transaction.call_count == 2
        sleep.assert_awaited_once()

    async def test_exhausted_retries(self, mock_pool, mock_connection):
        work = AsyncMock(side_effect=asyncpg.ConnectionDoesNotExistError("closed"))
        with (
            patch("ovncluster.core.pool.asyncio.sleep", AsyncMock()),
            pytest.raises(StoreConnectionError, match="transaction failed after 3 attempts"),
        ):
            await mock_pool.run_in_transaction(work)
        assert work.await_count == 3

    async def test_query_error_not_retried(self, mock_pool, mock_connection):
        work = AsyncMock(side_effect=asyncpg.UndefinedTableError("missing"))
        with pytest.raises(asyncpg.UndefinedTableError):
            await mock_pool.run_in_transaction(work)
        assert work.await_count == 1

    async def test_requires_connect(self):
        with pytest.raises(RuntimeError, match="not connected"):
            await Pool().run_in_transaction(AsyncMock())
