"""Building blocks shared by the environment and departure services.

Attributes:
    configs: [PathsConfig][ovncluster.services.common.configs.PathsConfig],
        [CommandsConfig][ovncluster.services.common.configs.CommandsConfig],
        [NodeConfig][ovncluster.services.common.configs.NodeConfig].
    queries: Membership store reads, each in its own read-only snapshot.
    control: [OvnControl][ovncluster.services.common.control.OvnControl],
        the OVN administrative command wrapper.
    ovsdb: Database specs and the
        [MembershipWaiter][ovncluster.services.common.ovsdb.MembershipWaiter].
    lifecycle: [PathLifecycle][ovncluster.services.common.lifecycle.PathLifecycle],
        runtime directory bootstrap and backup-guarded teardown.
    types: Result dataclasses shared across services.
"""

from .configs import CommandsConfig, NodeConfig, PathsConfig
from .control import OvnControl
from .lifecycle import FileSystem, LocalFileSystem, PathLifecycle
from .ovsdb import MembershipWaiter, create_database_spec, parse_database_state
from .queries import (
    fetch_ca_certificate,
    fetch_member_addresses,
    fetch_service_view,
    fetch_services,
    local_service_active,
    network_protocol,
)
from .types import (
    DepartureReport,
    MemberAddress,
    PathOutcome,
    ServiceView,
    StepOutcome,
    TeardownPhase,
    TeardownResult,
)


__all__ = [
    "CommandsConfig",
    "DepartureReport",
    "FileSystem",
    "LocalFileSystem",
    "MemberAddress",
    "MembershipWaiter",
    "NodeConfig",
    "OvnControl",
    "PathLifecycle",
    "PathOutcome",
    "PathsConfig",
    "ServiceView",
    "StepOutcome",
    "TeardownPhase",
    "TeardownResult",
    "create_database_spec",
    "fetch_ca_certificate",
    "fetch_member_addresses",
    "fetch_service_view",
    "fetch_services",
    "local_service_active",
    "network_protocol",
    "parse_database_state",
]
