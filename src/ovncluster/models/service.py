"""Membership rows: which node runs which service.

[ServiceRecord][ovncluster.models.service.ServiceRecord] is a pure data
container mirroring one row of the ``services`` table. Validation happens
in ``__post_init__`` so invalid instances never escape the constructor.

See Also:
    [fetch_services][ovncluster.services.common.queries.fetch_services]:
        The query that produces these records.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .constants import ServiceKind


@dataclass(frozen=True, slots=True)
class ServiceRecord:
    """A single "this node runs this service" fact.

    Attributes:
        member: Name of the cluster member.
        service: The service the member runs.
        id: Row identifier. Rows are inserted as members register services,
            so ascending ``id`` is registration order.

    Examples:
        ```python
        record = ServiceRecord(member="node-a", service="central", id=1)
        record.service  # ServiceKind.CENTRAL
        ```
    """

    member: str
    service: ServiceKind
    id: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.member, str) or not self.member:
            raise ValueError("member must be a non-empty string")
        if isinstance(self.id, bool) or not isinstance(self.id, int) or self.id < 0:
            raise ValueError(f"id must be a non-negative integer, got {self.id!r}")
        object.__setattr__(self, "service", ServiceKind(self.service))

    @classmethod
    def from_row(cls, row: Any) -> ServiceRecord:
        """Build a record from a mapping-like database row."""
        return cls(member=row["member"], service=row["service"], id=row["id"])
