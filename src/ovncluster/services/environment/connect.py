"""OVN connection strings derived from cluster membership.

Pure functions over a [ServiceView][ovncluster.services.common.types.ServiceView]
plus one convenience coroutine that reads the view first.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ovncluster.core.exceptions import ProjectionError
from ovncluster.models.constants import ServiceKind
from ovncluster.services.common.queries import fetch_service_view
from ovncluster.utils.network import format_endpoint, format_host


if TYPE_CHECKING:
    from ovncluster.core.store import MembershipStore
    from ovncluster.services.common.types import ServiceView


def build_connect_string(view: ServiceView, port: int) -> str:
    """Join ``protocol:host:port`` for every resolved member, in registration order.

    Members without an address are skipped. An empty view yields ``""``.

    Examples:
        ```python
        build_connect_string(view, 6641)
        # 'ssl:10.0.0.1:6641,ssl:[fd00::2]:6641'
        ```
    """
    return ",".join(format_endpoint(view.protocol, m.address, port) for m in view.addresses)


def initial_address(view: ServiceView) -> str:
    """Return the bootstrap address: the first registered member, bracketed if IPv6.

    Raises:
        ProjectionError: If the view has no records or its first member has
            no address.
    """
    if not view.records:
        raise ProjectionError(f"no {view.service} service registered in the cluster")
    first = view.records[0].member
    for member in view.addresses:
        if member.member == first:
            return format_host(member.address)
    raise ProjectionError(f"address of member {first!r} could not be found")


async def connect_string(
    store: MembershipStore,
    port: int,
    service: ServiceKind | str = ServiceKind.CENTRAL,
) -> str:
    """Read the members of ``service`` and build their connection string on ``port``."""
    return build_connect_string(await fetch_service_view(store, service), port)
