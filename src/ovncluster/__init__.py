r"""ovncluster -- membership management for one node of a clustered OVN control plane.

Drives a node's graceful departure from the clustered OVN Northbound and
Southbound databases, watches the departure complete, backs up and clears
local runtime state, and keeps the ``ovn.env`` environment file in line
with cluster membership.

Architecture follows a **diamond DAG** dependency structure where imports
flow strictly downward:

```text
              services         Projection, departure, path lifecycle
             /        \
          core        utils    Store, process, logging | addresses, polling
             \        /
              models           Pure frozen dataclasses (zero I/O)
```

Note:
    Top-level imports (``from ovncluster import DepartureOrchestrator``) use
    lazy loading and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("ovncluster")

__all__ = [
    "BaseService",
    "DatabaseKind",
    "DatabaseSpec",
    "DatabaseState",
    "DepartureConfig",
    "DepartureOrchestrator",
    "EnvironmentDocument",
    "EnvironmentProjector",
    "EnvironmentSync",
    "EnvironmentSyncConfig",
    "Logger",
    "MembershipStore",
    "PathLifecycle",
    "Pool",
    "PoolConfig",
    "ServiceKind",
    "ServiceRecord",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BaseService": ("ovncluster.core", "BaseService"),
    "Logger": ("ovncluster.core", "Logger"),
    "MembershipStore": ("ovncluster.core", "MembershipStore"),
    "Pool": ("ovncluster.core", "Pool"),
    "PoolConfig": ("ovncluster.core", "PoolConfig"),
    "DatabaseKind": ("ovncluster.models", "DatabaseKind"),
    "DatabaseSpec": ("ovncluster.models", "DatabaseSpec"),
    "DatabaseState": ("ovncluster.models", "DatabaseState"),
    "EnvironmentDocument": ("ovncluster.models", "EnvironmentDocument"),
    "ServiceKind": ("ovncluster.models", "ServiceKind"),
    "ServiceRecord": ("ovncluster.models", "ServiceRecord"),
    "DepartureConfig": ("ovncluster.services", "DepartureConfig"),
    "DepartureOrchestrator": ("ovncluster.services", "DepartureOrchestrator"),
    "EnvironmentProjector": ("ovncluster.services", "EnvironmentProjector"),
    "EnvironmentSync": ("ovncluster.services", "EnvironmentSync"),
    "EnvironmentSyncConfig": ("ovncluster.services", "EnvironmentSyncConfig"),
    "PathLifecycle": ("ovncluster.services", "PathLifecycle"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'ovncluster' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
