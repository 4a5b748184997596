"""
Pytest configuration and shared fixtures for ovncluster tests.

Provides:
- Mock fixtures for asyncpg, Pool and MembershipStore
- An in-memory membership store behind the mocked connection
- Path, node and command configuration fixtures rooted in ``tmp_path``
"""

import logging
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from ovncluster.core.pool import DatabaseConfig, Pool, PoolConfig
from ovncluster.core.store import MembershipStore
from ovncluster.services.common.configs import CommandsConfig, NodeConfig, PathsConfig


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


@pytest.fixture(autouse=True)
def store_password(monkeypatch: pytest.MonkeyPatch) -> None:
    """Provide the store password every DatabaseConfig resolves."""
    monkeypatch.setenv("OVNCLUSTER_STORE_PASSWORD", "test_password")


# ============================================================================
# In-memory membership
# ============================================================================


class FakeMembership:
    """Answers the membership queries the way the SQL store would."""

    def __init__(self) -> None:
        self.services: list[dict[str, Any]] = []
        self.members: dict[str, str] = {}
        self.ca_cert: str | None = None
        self._next_id = 1

    def add_service(self, member: str, service: str) -> None:
        self.services.append({"id": self._next_id, "member": member, "service": service})
        self._next_id += 1

    def add_member(self, name: str, address: str) -> None:
        self.members[name] = address

    async def fetch(self, query: str, *args: Any, timeout: float | None = None) -> list[Any]:
        if "FROM services" in query:
            service, member = args
            rows = [
                r
                for r in self.services
                if (service is None or r["service"] == service)
                and (member is None or r["member"] == member)
            ]
            return sorted(rows, key=lambda r: r["id"])
        if "FROM core_cluster_members" in query:
            return [{"name": n, "address": a} for n, a in sorted(self.members.items())]
        raise AssertionError(f"unexpected query: {query}")

    async def fetchval(self, query: str, *args: Any, timeout: float | None = None) -> Any:
        if "FROM config" in query:
            return self.ca_cert
        return 1


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_connection() -> MagicMock:
    """Create a mock asyncpg connection."""
    conn = MagicMock()
    conn.fetch = AsyncMock(return_value=[])
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetchval = AsyncMock(return_value=1)

    # Mock transaction context manager
    mock_transaction = MagicMock()
    mock_transaction.__aenter__ = AsyncMock(return_value=conn)
    mock_transaction.__aexit__ = AsyncMock(return_value=None)
    conn.transaction = MagicMock(return_value=mock_transaction)

    return conn


@pytest.fixture
def mock_asyncpg_pool(mock_connection: MagicMock) -> MagicMock:
    """Create a mock asyncpg pool."""
    pool = MagicMock()
    pool.close = AsyncMock()

    # Mock acquire context manager
    mock_acquire = MagicMock()
    mock_acquire.__aenter__ = AsyncMock(return_value=mock_connection)
    mock_acquire.__aexit__ = AsyncMock(return_value=None)
    pool.acquire = MagicMock(return_value=mock_acquire)

    return pool


@pytest.fixture
def mock_pool(mock_asyncpg_pool: MagicMock, mock_connection: MagicMock) -> Pool:
    """Create a Pool with mocked internals."""
    config = PoolConfig(
        database=DatabaseConfig(
            host="localhost",
            port=5432,
            database="test_db",
            user="test_user",
        )
    )
    pool = Pool(config=config)
    pool._pool = mock_asyncpg_pool
    pool._is_connected = True

    # Store mock connection for easy access in tests
    pool._mock_connection = mock_connection  # type: ignore[attr-defined]

    return pool


@pytest.fixture
def mock_store(mock_pool: Pool) -> MembershipStore:
    """Create a MembershipStore with mocked pool."""
    return MembershipStore(pool=mock_pool)


@pytest.fixture
def membership(mock_connection: MagicMock) -> FakeMembership:
    """Route the mocked connection's queries to an in-memory membership."""
    fake = FakeMembership()
    mock_connection.fetch = AsyncMock(side_effect=fake.fetch)
    mock_connection.fetchval = AsyncMock(side_effect=fake.fetchval)
    return fake


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def paths_config(tmp_path: Path) -> PathsConfig:
    """Runtime layout rooted in a temporary directory."""
    return PathsConfig(root=tmp_path)


@pytest.fixture
def node_config() -> NodeConfig:
    return NodeConfig(name="node-b", address="10.0.0.2")


@pytest.fixture
def commands_config() -> CommandsConfig:
    return CommandsConfig(timeout=5.0)


@pytest.fixture
def pool_config_dict() -> dict[str, Any]:
    """Sample pool configuration dictionary."""
    return {
        "database": {
            "host": "localhost",
            "port": 5432,
            "database": "test_db",
            "user": "test_user",
        },
        "limits": {
            "min_size": 1,
            "max_size": 3,
            "max_inactive_connection_lifetime": 60.0,
        },
        "timeouts": {
            "acquisition": 5.0,
        },
        "retry": {
            "max_attempts": 2,
            "initial_delay": 0.5,
            "max_delay": 2.0,
            "exponential_backoff": True,
        },
        "server_settings": {
            "application_name": "test_app",
        },
    }
