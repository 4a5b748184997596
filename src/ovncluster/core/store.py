"""
Read facade over the shared membership store.

The membership store is owned by the cluster layer: it records which nodes
are members (``core_cluster_members``), which services each member runs
(``services``) and cluster-wide settings such as the CA certificate
(``config``). This package never writes to it. All domain SQL lives in
[queries][ovncluster.services.common.queries]; this module only provides
connection lifecycle, default timeouts and the retried read transaction the
queries run in.

Uses composition with [Pool][ovncluster.core.pool.Pool] and implements an
async context manager for automatic pool lifecycle handling.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable  # noqa: TC003
from typing import Any, TypeVar

import asyncpg  # noqa: TC002
from pydantic import BaseModel, Field

from .logger import Logger
from .pool import Pool, PoolConfig
from .yaml import load_yaml


T = TypeVar("T")


# ---------------------------------------------------------------------------
# Configuration Models
# ---------------------------------------------------------------------------


class StoreTimeoutsConfig(BaseModel):
    """Timeout settings for store reads (in seconds, None for no limit)."""

    query: float | None = Field(default=10.0, ge=0.1, description="Query timeout (seconds)")


class StoreConfig(BaseModel):
    """Aggregate configuration for the membership store facade."""

    timeouts: StoreTimeoutsConfig = Field(default_factory=StoreTimeoutsConfig)


# ---------------------------------------------------------------------------
# MembershipStore Class
# ---------------------------------------------------------------------------


class MembershipStore:
    """Read-only access to cluster membership.

    Example:
        store = MembershipStore.from_yaml("store.yaml")

        async with store:
            rows = await store.read(
                lambda conn: conn.fetch("SELECT member, service FROM services")
            )
    """

    def __init__(
        self,
        pool: Pool | None = None,
        config: StoreConfig | None = None,
    ) -> None:
        """Initialize the store facade.

        Args:
            pool: Connection pool for database access. Creates a default
                Pool if not provided.
            config: Store configuration (timeouts). Uses defaults if not
                provided.
        """
        self._pool = pool or Pool()
        self._config = config or StoreConfig()
        self._logger = Logger("store")

    @property
    def config(self) -> StoreConfig:
        """The store configuration (read-only)."""
        return self._config

    @property
    def pool_config(self) -> PoolConfig:
        return self._pool.config

    @classmethod
    def from_yaml(cls, config_path: str) -> MembershipStore:
        """Create a store from a YAML file with a ``pool`` key and optional ``timeouts``."""
        return cls.from_dict(load_yaml(config_path))

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> MembershipStore:
        """Create a store from a configuration dictionary.

        Extracts the ``pool`` key to build the Pool and passes remaining
        keys as [StoreConfig][ovncluster.core.store.StoreConfig] fields.
        """
        pool = None
        if "pool" in config_dict:
            pool = Pool.from_dict(config_dict["pool"])

        store_config_dict = {k: v for k, v in config_dict.items() if k != "pool"}
        config = StoreConfig(**store_config_dict) if store_config_dict else None

        return cls(pool=pool, config=config)

    # -------------------------------------------------------------------------
    # Read Facade
    # -------------------------------------------------------------------------

    async def read(
        self,
        work: Callable[[asyncpg.Connection[asyncpg.Record]], Awaitable[T]],
    ) -> T:
        """Run ``work(conn)`` in a ``SERIALIZABLE READ ONLY`` transaction.

        Every membership read runs in one of these so that the records and
        the addresses they resolve to come from the same snapshot. A dropped
        connection reruns ``work`` in a fresh transaction, see
        [run_in_transaction()][ovncluster.core.pool.Pool.run_in_transaction].

        Example:
            async def load(conn):
                services = await conn.fetch("SELECT ... FROM services")
                members = await conn.fetch("SELECT ... FROM core_cluster_members")
                return services, members

            services, members = await store.read(load)
        """
        return await self._pool.run_in_transaction(work, readonly=True, isolation="serializable")

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """Connect the underlying pool. Idempotent."""
        await self._pool.connect()
        self._logger.debug("session_started")

    async def close(self) -> None:
        """Close the underlying pool. Idempotent."""
        self._logger.debug("session_ending")
        await self._pool.close()

    async def __aenter__(self) -> MembershipStore:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        db = self._pool.config.database
        return (
            f"MembershipStore(host={db.host}, database={db.database}, "
            f"connected={self._pool.is_connected})"
        )
