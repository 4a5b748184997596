"""Core layer providing the infrastructure for every ovncluster component.

Sits in the middle of the dependency DAG: depends only on
``ovncluster.models`` and is depended upon by ``ovncluster.services``.

Attributes:
    Pool: Async PostgreSQL connection pool with retry/backoff.
        See [Pool][ovncluster.core.pool.Pool].
    MembershipStore: Read-only facade over the cluster membership store.
        Services use [MembershipStore][ovncluster.core.store.MembershipStore],
        never [Pool][ovncluster.core.pool.Pool] directly.
    BaseService: Abstract generic base class with lifecycle management
        ([run()][ovncluster.core.base_service.BaseService.run] /
        [run_forever()][ovncluster.core.base_service.BaseService.run_forever] /
        shutdown) and Prometheus metrics integration.
    Logger: Structured logger supporting key=value and JSON output modes.
    MetricsServer: Prometheus ``/metrics`` HTTP endpoint.
    run_command: Async subprocess runner with timeout and kill.
    load_yaml: Safe YAML loading with ``yaml.safe_load()``.

Examples:
    ```python
    from ovncluster.core import MembershipStore
    from ovncluster.services.common.queries import fetch_service_view

    store = MembershipStore.from_yaml("config/store.yaml")
    async with store:
        view = await fetch_service_view(store)
    ```
"""

from .base_service import (
    BaseService,
    BaseServiceConfig,
    ConfigT,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .metrics import (
    CYCLE_DURATION_SECONDS,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    MetricsConfig,
    MetricsServer,
    start_metrics_server,
)
from .pool import (
    DatabaseConfig,
    Pool,
    PoolConfig,
    PoolLimitsConfig,
    PoolRetryConfig,
    PoolTimeoutsConfig,
    ServerSettingsConfig,
)
from .process import run_command
from .store import MembershipStore, StoreConfig, StoreTimeoutsConfig
from .yaml import load_yaml


__all__ = [
    "CYCLE_DURATION_SECONDS",
    "SERVICE_COUNTER",
    "SERVICE_GAUGE",
    "SERVICE_INFO",
    "BaseService",
    "BaseServiceConfig",
    "ConfigT",
    "DatabaseConfig",
    "Logger",
    "MembershipStore",
    "MetricsConfig",
    "MetricsServer",
    "Pool",
    "PoolConfig",
    "PoolLimitsConfig",
    "PoolRetryConfig",
    "PoolTimeoutsConfig",
    "ServerSettingsConfig",
    "StoreConfig",
    "StoreTimeoutsConfig",
    "StructuredFormatter",
    "format_kv_pairs",
    "load_yaml",
    "run_command",
    "start_metrics_server",
]
