"""Cluster membership services plus shared building blocks.

Services are the top layer of the dependency DAG, depending on
[ovncluster.core][ovncluster.core], [ovncluster.utils][ovncluster.utils]
and [ovncluster.models][ovncluster.models].

Attributes:
    EnvironmentProjector: One-shot projection of membership into ``ovn.env``.
    EnvironmentSync: Continuous re-projection whenever membership changes.
    DepartureOrchestrator: Best-effort departure from both OVN clusters
        followed by a backup-guarded cleanup.
    PathLifecycle: Runtime directory bootstrap and teardown.

See Also:
    [common][ovncluster.services.common]: Shared configs, queries, OVN
        control wrappers and result types.

Examples:
    ```python
    from ovncluster.core import MembershipStore
    from ovncluster.services import EnvironmentProjector

    store = MembershipStore.from_yaml("config/store.yaml")
    async with store:
        await EnvironmentProjector(store, node=node, paths=paths).generate()
    ```
"""

from .common import (
    CommandsConfig,
    DepartureReport,
    MembershipWaiter,
    NodeConfig,
    OvnControl,
    PathLifecycle,
    PathsConfig,
    TeardownResult,
)
from .departure import DepartureConfig, DepartureOrchestrator
from .environment import (
    EnvironmentConfig,
    EnvironmentProjector,
    EnvironmentSync,
    EnvironmentSyncConfig,
)


__all__ = [
    "CommandsConfig",
    "DepartureConfig",
    "DepartureOrchestrator",
    "DepartureReport",
    "EnvironmentConfig",
    "EnvironmentProjector",
    "EnvironmentSync",
    "EnvironmentSyncConfig",
    "MembershipWaiter",
    "NodeConfig",
    "OvnControl",
    "PathLifecycle",
    "PathsConfig",
    "TeardownResult",
]
