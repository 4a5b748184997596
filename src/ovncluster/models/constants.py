"""Shared constants for the models layer.

Defines the enumerations and fixed values that describe an OVN cluster
member: which services a node can run, which databases it takes part in,
and the states those databases report. Placing them here avoids circular
dependencies between the models, utils and services layers.

See Also:
    [ServiceRecord][ovncluster.models.service.ServiceRecord]: Uses
        [ServiceKind][ovncluster.models.constants.ServiceKind] to validate
        membership rows.
    [DatabaseSpec][ovncluster.models.database.DatabaseSpec]: Uses
        [DatabaseKind][ovncluster.models.constants.DatabaseKind] and
        [DatabaseState][ovncluster.models.constants.DatabaseState].
"""

from __future__ import annotations

from enum import StrEnum


class ServiceKind(StrEnum):
    """Services a cluster member can run.

    The string values match the ``service`` column of the ``services``
    table and the suffix of the system service units (``<prefix>central``).

    Attributes:
        CENTRAL: OVN Northbound/Southbound databases and ``ovn-northd``.
        CHASSIS: ``ovn-controller``, the local agent representing this node
            in the Southbound database.
        SWITCH: Open vSwitch (``ovs-vswitchd`` and its database).
    """

    CENTRAL = "central"
    CHASSIS = "chassis"
    SWITCH = "switch"


class DatabaseKind(StrEnum):
    """OVN databases addressable by this node.

    Each of Northbound and Southbound comes in two variants: the cluster
    variant connects through the cluster-wide connection string, the local
    variant through the unix socket of the database server running on this
    node.

    Attributes:
        NB: Northbound database reached through the cluster.
        SB: Southbound database reached through the cluster.
        NB_LOCAL: Northbound database on the local unix socket.
        SB_LOCAL: Southbound database on the local unix socket.
    """

    NB = "nb"
    SB = "sb"
    NB_LOCAL = "nb_local"
    SB_LOCAL = "sb_local"

    @property
    def is_local(self) -> bool:
        """Whether this variant is addressed through a local unix socket."""
        return self in (DatabaseKind.NB_LOCAL, DatabaseKind.SB_LOCAL)

    @property
    def is_northbound(self) -> bool:
        return self in (DatabaseKind.NB, DatabaseKind.NB_LOCAL)


class DatabaseState(StrEnum):
    """Consensus-group membership status reported by a database server.

    Attributes:
        UNKNOWN: The state could not be determined (server busy, command
            failed, database present but not connected to the cluster).
        CONNECTED: The database is a connected member of its cluster.
        REMOVED: The database is no longer served by the local server,
            which is what a completed ``cluster/leave`` looks like.
    """

    UNKNOWN = "unknown"
    CONNECTED = "connected"
    REMOVED = "removed"


#: OVSDB schema names of the two clustered databases.
NB_SCHEMA = "OVN_Northbound"
SB_SCHEMA = "OVN_Southbound"

#: Fixed client ports of the two clustered databases.
NB_PORT = 6641
SB_PORT = 6642
