"""
Async PostgreSQL connection pool built on asyncpg.

The membership store (cluster members, the services they run and cluster
configuration) lives in a SQL database shared by every node. This module
manages the pool of connections to it: configurable size limits, automatic
retry with exponential backoff on connection failures, and transactional
context managers with optional read-only / isolation-level settings.

[run_in_transaction()][ovncluster.core.pool.Pool.run_in_transaction] reruns a
whole unit of work on transient connection errors (``InterfaceError``,
``ConnectionDoesNotExistError``) but never on query-level errors such as a
missing table.

Examples:
    ```python
    pool = Pool.from_yaml("store.yaml")

    async with pool:
        async with pool.transaction(readonly=True, isolation="serializable") as conn:
            rows = await conn.fetch("SELECT member, service FROM services")
    ```

See Also:
    [MembershipStore][ovncluster.core.store.MembershipStore]: Read-only
        facade over this pool used by the services layer.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncIterator, Awaitable, Callable  # noqa: TC003
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any, Literal, TypeVar, cast

import asyncpg
from pydantic import BaseModel, Field, SecretStr, ValidationInfo, field_validator, model_validator

from .exceptions import StoreConnectionError
from .logger import Logger
from .yaml import load_yaml


IsolationLevel = Literal["read_committed", "repeatable_read", "serializable"]
T = TypeVar("T")


# ---------------------------------------------------------------------------
# Configuration Models
# ---------------------------------------------------------------------------


class DatabaseConfig(BaseModel):
    """Connection parameters of the membership store.

    The password is loaded from the environment variable named by
    ``password_env`` (default: ``OVNCLUSTER_STORE_PASSWORD``). It is never
    read from configuration files directly.
    """

    host: str = Field(default="localhost", min_length=1, description="Database hostname")
    port: int = Field(default=5432, ge=1, le=65535, description="Database port")
    database: str = Field(default="microovn", min_length=1, description="Database name")
    user: str = Field(default="microovn", min_length=1, description="Database user")
    password_env: str = Field(
        default="OVNCLUSTER_STORE_PASSWORD",  # pragma: allowlist secret
        min_length=1,
        description="Environment variable name for database password",
    )
    password: SecretStr = Field(description="Database password (loaded from password_env)")

    @model_validator(mode="before")
    @classmethod
    def resolve_password(cls, data: Any) -> Any:
        """Resolve the database password from the environment variable."""
        if isinstance(data, dict) and "password" not in data:
            env_var = data.get("password_env", "OVNCLUSTER_STORE_PASSWORD")  # pragma: allowlist secret
            value = os.getenv(env_var)
            if not value:
                raise ValueError(f"{env_var} environment variable not set")
            data["password"] = SecretStr(value)
        return data


class PoolLimitsConfig(BaseModel):
    """Connection pool size limits.

    A node only reads membership a handful of times per cycle, so the
    defaults are deliberately small.
    """

    min_size: int = Field(default=1, ge=1, le=20, description="Minimum connections")
    max_size: int = Field(default=4, ge=1, le=50, description="Maximum connections")
    max_inactive_connection_lifetime: float = Field(
        default=300.0, ge=0.0, description="Idle timeout (seconds)"
    )

    @field_validator("max_size")
    @classmethod
    def validate_max_size(cls, v: int, info: ValidationInfo) -> int:
        """Ensure max_size >= min_size."""
        min_size = info.data.get("min_size", 1)
        if v < min_size:
            raise ValueError(f"max_size ({v}) must be >= min_size ({min_size})")
        return v


class PoolTimeoutsConfig(BaseModel):
    """Timeout settings for pool operations (in seconds)."""

    acquisition: float = Field(default=10.0, ge=0.1, description="Connection acquisition timeout")


class PoolRetryConfig(BaseModel):
    """Retry strategy for failed connection attempts.

    Exponential backoff doubles the delay each attempt
    (``initial_delay * 2^attempt``, capped at ``max_delay``); linear backoff
    uses ``initial_delay * (attempt + 1)``.
    """

    max_attempts: int = Field(default=3, ge=1, le=10, description="Max retry attempts")
    initial_delay: float = Field(default=1.0, ge=0.1, description="Initial retry delay")
    max_delay: float = Field(default=10.0, ge=0.1, description="Maximum retry delay")
    exponential_backoff: bool = Field(default=True, description="Use exponential backoff")

    @field_validator("max_delay")
    @classmethod
    def validate_max_delay(cls, v: float, info: ValidationInfo) -> float:
        """Ensure max_delay >= initial_delay."""
        initial_delay = info.data.get("initial_delay", 1.0)
        if v < initial_delay:
            raise ValueError(f"max_delay ({v}) must be >= initial_delay ({initial_delay})")
        return v


class ServerSettingsConfig(BaseModel):
    """PostgreSQL session settings applied to every pooled connection.

    ``statement_timeout`` is in milliseconds (PostgreSQL convention);
    ``0`` disables it.
    """

    application_name: str = Field(default="ovncluster", description="Application name")
    statement_timeout: int = Field(
        default=30_000, ge=0, description="Max query execution time in milliseconds (0=unlimited)"
    )


class PoolConfig(BaseModel):
    """Aggregate configuration for the connection pool."""

    database: DatabaseConfig = Field(default_factory=lambda: DatabaseConfig.model_validate({}))
    limits: PoolLimitsConfig = Field(default_factory=PoolLimitsConfig)
    timeouts: PoolTimeoutsConfig = Field(default_factory=PoolTimeoutsConfig)
    retry: PoolRetryConfig = Field(default_factory=PoolRetryConfig)
    server_settings: ServerSettingsConfig = Field(default_factory=ServerSettingsConfig)


# ---------------------------------------------------------------------------
# Pool Class
# ---------------------------------------------------------------------------


class Pool:
    """Async PostgreSQL connection pool manager.

    Wraps ``asyncpg.Pool`` to provide retry logic and transactional context
    managers. The pool is created disconnected; call
    [connect()][ovncluster.core.pool.Pool.connect] or use it as an async
    context manager.

    Note:
        Services never use ``Pool`` directly. They go through
        [MembershipStore][ovncluster.core.store.MembershipStore], which
        wraps a private ``Pool`` and exposes typed reads.
    """

    def __init__(self, config: PoolConfig | None = None) -> None:
        self._config = config or PoolConfig()
        self._pool: asyncpg.Pool[asyncpg.Record] | None = None
        self._is_connected: bool = False
        self._connection_lock = asyncio.Lock()
        self._logger = Logger("pool")

    @classmethod
    def from_yaml(cls, config_path: str) -> Pool:
        """Create a Pool from a YAML configuration file."""
        return cls.from_dict(load_yaml(config_path))

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> Pool:
        """Create a Pool from a dictionary matching [PoolConfig][ovncluster.core.pool.PoolConfig]."""
        return cls(config=PoolConfig(**config_dict))

    def _retry_delay(self, attempt: int) -> float:
        """Compute retry backoff delay for the given attempt number."""
        retry = self._config.retry
        if retry.exponential_backoff:
            delay = retry.initial_delay * (2**attempt)
        else:
            delay = retry.initial_delay * (attempt + 1)
        return float(min(delay, retry.max_delay))

    # -------------------------------------------------------------------------
    # Connection Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """Create the asyncpg connection pool with retry on failure.

        Guarded by an internal lock so concurrent callers create a single
        pool. Idempotent once connected.

        Raises:
            StoreConnectionError: If all retry attempts are exhausted.
        """
        async with self._connection_lock:
            if self._is_connected:
                return

            db = self._config.database

            self._logger.info(
                "connection_starting",
                host=db.host,
                port=db.port,
                database=db.database,
            )

            for attempt in range(self._config.retry.max_attempts):
                try:
                    self._pool = await asyncpg.create_pool(
                        host=db.host,
                        port=db.port,
                        database=db.database,
                        user=db.user,
                        password=db.password.get_secret_value(),
                        min_size=self._config.limits.min_size,
                        max_size=self._config.limits.max_size,
                        max_inactive_connection_lifetime=self._config.limits.max_inactive_connection_lifetime,
                        timeout=self._config.timeouts.acquisition,
                        server_settings={
                            "application_name": self._config.server_settings.application_name,
                            "statement_timeout": str(
                                self._config.server_settings.statement_timeout
                            ),
                        },
                    )
                    self._is_connected = True
                    self._logger.info("connection_established")
                    return

                except (asyncpg.PostgresError, OSError, ConnectionError) as e:
                    if attempt + 1 >= self._config.retry.max_attempts:
                        self._logger.error(
                            "connection_failed",
                            attempts=attempt + 1,
                            error=str(e),
                        )
                        raise StoreConnectionError(
                            f"Failed to connect after {attempt + 1} attempts: {e}"
                        ) from e

                    delay = self._retry_delay(attempt)
                    self._logger.warning(
                        "connection_retry",
                        attempt=attempt + 1,
                        delay=delay,
                        error=str(e),
                    )
                    await asyncio.sleep(delay)

    async def close(self) -> None:
        """Close the pool and release all connections. Idempotent."""
        async with self._connection_lock:
            if self._pool is not None:
                try:
                    await self._pool.close()
                    self._logger.info("connection_closed")
                finally:
                    self._pool = None
                    self._is_connected = False

    # -------------------------------------------------------------------------
    # Connection Acquisition
    # -------------------------------------------------------------------------

    def acquire(self) -> AbstractAsyncContextManager[asyncpg.Connection[asyncpg.Record]]:
        """Acquire a connection from the pool.

        Raises:
            RuntimeError: If the pool has not been connected yet.
        """
        if not self._is_connected or self._pool is None:
            raise RuntimeError("Pool not connected. Call connect() first.")
        return cast(
            "AbstractAsyncContextManager[asyncpg.Connection[asyncpg.Record]]",
            self._pool.acquire(),
        )

    @asynccontextmanager
    async def transaction(
        self,
        *,
        readonly: bool = False,
        isolation: IsolationLevel | None = None,
    ) -> AsyncIterator[asyncpg.Connection[asyncpg.Record]]:
        """Acquire a connection with an active database transaction.

        The transaction commits on normal exit and rolls back if an
        exception propagates out of the context manager.

        Args:
            readonly: Open a ``READ ONLY`` transaction.
            isolation: Transaction isolation level; ``None`` keeps the
                server default.

        Raises:
            RuntimeError: If the pool has not been connected yet.
        """
        async with self.acquire() as conn, conn.transaction(isolation=isolation, readonly=readonly):
            yield conn

    # -------------------------------------------------------------------------
    # Transactional Work (with retry for transient connection errors)
    # -------------------------------------------------------------------------

    async def run_in_transaction(
        self,
        work: Callable[[asyncpg.Connection[asyncpg.Record]], Awaitable[T]],
        *,
        readonly: bool = False,
        isolation: IsolationLevel | None = None,
    ) -> T:
        """Run ``work(conn)`` inside a transaction, retrying on transient errors.

        Each attempt acquires a fresh connection and opens a new transaction,
        so a broken socket is not reused and a retried ``work`` never sees a
        half-finished snapshot. ``work`` must therefore be safe to run again.
        Query-level errors propagate immediately.

        Raises:
            StoreConnectionError: When every attempt failed with a
                connection-level error.
        """
        max_attempts = self._config.retry.max_attempts

        for attempt in range(max_attempts):
            try:
                async with self.transaction(readonly=readonly, isolation=isolation) as conn:
                    return await work(conn)
            except (
                asyncpg.InterfaceError,
                asyncpg.ConnectionDoesNotExistError,
            ) as e:
                if attempt < max_attempts - 1:
                    delay = self._retry_delay(attempt)
                    self._logger.warning(
                        "transaction_retry",
                        attempt=attempt + 1,
                        delay_s=delay,
                        error=str(e),
                    )
                    await asyncio.sleep(delay)
                    continue
                self._logger.error(
                    "transaction_failed",
                    attempts=max_attempts,
                    error=str(e),
                )
                raise StoreConnectionError(
                    f"transaction failed after {max_attempts} attempts: {e}"
                ) from e

        raise RuntimeError("Unexpected state in run_in_transaction")

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        """Whether the pool has an active connection to the database."""
        return self._is_connected

    @property
    def config(self) -> PoolConfig:
        """The pool configuration (read-only)."""
        return self._config

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Pool:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any | None,
    ) -> None:
        await self.close()

    def __repr__(self) -> str:
        db = self._config.database
        return f"Pool(host={db.host}, database={db.database}, connected={self._is_connected})"
