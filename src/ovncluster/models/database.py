"""Addressing information for one OVN clustered database."""

from __future__ import annotations

from dataclasses import dataclass

from .constants import DatabaseKind, DatabaseState


@dataclass(frozen=True, slots=True)
class DatabaseSpec:
    """Everything needed to administer and query one OVN database.

    Attributes:
        kind: Which database and connection variant this spec describes.
        schema: OVSDB schema name (``OVN_Northbound`` or ``OVN_Southbound``),
            used both as the ``cluster/leave`` argument and to select the
            database row in the ``_Server`` database.
        control_socket: Path of the ``ovsdb-server`` administrative socket
            that accepts ``ovn-appctl`` commands.
        target: OVSDB connection method used by ``ovsdb-client``: a
            ``unix:<path>`` socket for local variants, the cluster connection
            string for cluster variants.
        terminal_state: State the database reports once this node has left
            its cluster.

    See Also:
        [create_database_spec][ovncluster.services.common.ovsdb.create_database_spec]:
            Factory that resolves a spec from the runtime paths.
    """

    kind: DatabaseKind
    schema: str
    control_socket: str
    target: str
    terminal_state: DatabaseState = DatabaseState.REMOVED

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", DatabaseKind(self.kind))
        object.__setattr__(self, "terminal_state", DatabaseState(self.terminal_state))
        for name in ("schema", "control_socket", "target"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                raise ValueError(f"{name} must be a non-empty string")

    @property
    def is_local(self) -> bool:
        return self.kind.is_local
