"""Pure frozen dataclasses with zero I/O describing an OVN cluster member.

The models layer is the foundation of the package. It has **no
dependencies** on any other ovncluster package, only the Python standard
library. Every model uses ``@dataclass(frozen=True, slots=True)`` and
validates in ``__post_init__`` so invalid instances never escape the
constructor.

Attributes:
    ServiceRecord: One row of the ``services`` membership table.
    DatabaseSpec: Addressing information for one OVN database.
    EnvironmentDocument: The five values written to ``ovn.env``.
    ServiceKind: Enum of services a member can run.
    DatabaseKind: Enum of database/connection variants.
    DatabaseState: Enum of cluster states reported by a database server.
"""

from .constants import (
    NB_PORT,
    NB_SCHEMA,
    SB_PORT,
    SB_SCHEMA,
    DatabaseKind,
    DatabaseState,
    ServiceKind,
)
from .database import DatabaseSpec
from .environment import EnvironmentDocument
from .service import ServiceRecord


__all__ = [
    "NB_PORT",
    "NB_SCHEMA",
    "SB_PORT",
    "SB_SCHEMA",
    "DatabaseKind",
    "DatabaseSpec",
    "DatabaseState",
    "EnvironmentDocument",
    "ServiceKind",
    "ServiceRecord",
]
