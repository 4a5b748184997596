"""Membership store queries for ovncluster services.

All SQL used by services is centralized here. Each public function accepts
a [MembershipStore][ovncluster.core.store.MembershipStore] and opens its
own ``SERIALIZABLE READ ONLY`` transaction; rows from the same call always
come from the same snapshot. A call interrupted by a dropped connection is
rerun from scratch in a new transaction.

Tables read (owned by the cluster layer, never written here):

- ``services(id, member, service)``: which member runs which service.
  Ascending ``id`` is registration order.
- ``core_cluster_members(name, address)``: the address directory,
  ``address`` being ``host:port``.
- ``config(key, value)``: cluster settings; ``ca_cert`` is present when the
  cluster uses TLS.

Warning:
    All queries use ``timeouts.query`` from
    [StoreTimeoutsConfig][ovncluster.core.store.StoreTimeoutsConfig].

See Also:
    [ServiceView][ovncluster.services.common.types.ServiceView]: Snapshot
        returned by [fetch_service_view][ovncluster.services.common.queries.fetch_service_view].
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import asyncpg

from ovncluster.core.exceptions import QueryError
from ovncluster.models.constants import ServiceKind
from ovncluster.models.service import ServiceRecord
from ovncluster.utils.network import parse_member_address

from .types import MemberAddress, ServiceView


if TYPE_CHECKING:
    from ovncluster.core.store import MembershipStore
    from ovncluster.utils.network import IPAddress

logger = logging.getLogger(__name__)

CA_CERT_KEY = "ca_cert"


# =============================================================================
# Private helpers (run inside an open transaction)
# =============================================================================


async def _select_services(
    conn: asyncpg.Connection[asyncpg.Record],
    timeout: float | None,  # noqa: ASYNC109
    *,
    service: ServiceKind | None = None,
    member: str | None = None,
) -> list[ServiceRecord]:
    rows = await conn.fetch(
        """
        SELECT id, member, service
        FROM services
        WHERE ($1::text IS NULL OR service = $1)
          AND ($2::text IS NULL OR member = $2)
        ORDER BY id ASC
        """,
        service.value if service is not None else None,
        member,
        timeout=timeout,
    )
    records: list[ServiceRecord] = []
    for row in rows:
        try:
            records.append(ServiceRecord.from_row(row))
        except (ValueError, TypeError) as e:
            logger.warning("Skipping invalid service row %s: %s", row["id"], e)
    return records


async def _select_member_addresses(
    conn: asyncpg.Connection[asyncpg.Record],
    timeout: float | None,  # noqa: ASYNC109
) -> dict[str, IPAddress]:
    rows = await conn.fetch(
        "SELECT name, address FROM core_cluster_members ORDER BY name",
        timeout=timeout,
    )
    addresses: dict[str, IPAddress] = {}
    for row in rows:
        try:
            addresses[row["name"]] = parse_member_address(row["address"])
        except (ValueError, TypeError) as e:
            logger.warning("Skipping member %s with invalid address: %s", row["name"], e)
    return addresses


async def _select_ca_certificate(
    conn: asyncpg.Connection[asyncpg.Record],
    timeout: float | None,  # noqa: ASYNC109
) -> str | None:
    value = await conn.fetchval(
        "SELECT value FROM config WHERE key = $1",
        CA_CERT_KEY,
        timeout=timeout,
    )
    return value or None


def _protocol(ca_certificate: str | None) -> str:
    return "ssl" if ca_certificate else "tcp"


def _query_error(what: str, e: asyncpg.PostgresError) -> QueryError:
    return QueryError(f"failed to read {what}: {e}")


# =============================================================================
# Service queries
# =============================================================================


async def fetch_services(
    store: MembershipStore,
    *,
    service: ServiceKind | str | None = None,
    member: str | None = None,
) -> list[ServiceRecord]:
    """Fetch service records, optionally filtered by service and/or member.

    Returns:
        [ServiceRecord][ovncluster.models.service.ServiceRecord] instances
        in registration order (ascending ``id``). Rows with an unknown
        service kind are skipped.

    Raises:
        ValueError: If ``service`` is not a known service kind.
        QueryError: If the store rejects the query.
    """
    kind = ServiceKind(service) if service is not None else None
    timeout = store.config.timeouts.query
    try:
        return await store.read(
            lambda conn: _select_services(conn, timeout, service=kind, member=member)
        )
    except asyncpg.PostgresError as e:
        raise _query_error("services", e) from e


async def local_service_active(
    store: MembershipStore,
    member: str,
    service: ServiceKind | str,
) -> bool:
    """Return whether ``member`` has a record for ``service``."""
    records = await fetch_services(store, service=service, member=member)
    return bool(records)


# =============================================================================
# Address directory and cluster settings
# =============================================================================


async def fetch_member_addresses(store: MembershipStore) -> dict[str, IPAddress]:
    """Fetch the address directory as ``{member name: IP address}``.

    Members whose address cannot be parsed are skipped.
    """
    timeout = store.config.timeouts.query
    try:
        return await store.read(lambda conn: _select_member_addresses(conn, timeout))
    except asyncpg.PostgresError as e:
        raise _query_error("cluster members", e) from e


async def fetch_ca_certificate(store: MembershipStore) -> str | None:
    """Return the cluster CA certificate, or ``None`` if TLS is not configured."""
    timeout = store.config.timeouts.query
    try:
        return await store.read(lambda conn: _select_ca_certificate(conn, timeout))
    except asyncpg.PostgresError as e:
        raise _query_error("cluster config", e) from e


async def network_protocol(store: MembershipStore) -> str:
    """Return the OVN connection protocol: ``ssl`` with a cluster CA, else ``tcp``."""
    return _protocol(await fetch_ca_certificate(store))


# =============================================================================
# Snapshot
# =============================================================================


async def fetch_service_view(
    store: MembershipStore,
    service: ServiceKind | str = ServiceKind.CENTRAL,
) -> ServiceView:
    """Read a service's records, their addresses and the protocol in one snapshot.

    Members without an entry in the address directory are left out of
    ``addresses`` but kept in ``records``.

    Raises:
        ValueError: If ``service`` is not a known service kind.
        QueryError: If the store rejects a query.
    """
    kind = ServiceKind(service)
    timeout = store.config.timeouts.query

    async def snapshot(
        conn: asyncpg.Connection[asyncpg.Record],
    ) -> tuple[list[ServiceRecord], dict[str, IPAddress], str | None]:
        return (
            await _select_services(conn, timeout, service=kind),
            await _select_member_addresses(conn, timeout),
            await _select_ca_certificate(conn, timeout),
        )

    try:
        records, directory, ca_certificate = await store.read(snapshot)
    except asyncpg.PostgresError as e:
        raise _query_error(f"{kind} membership", e) from e

    addresses = tuple(
        MemberAddress(member=r.member, address=directory[r.member])
        for r in records
        if r.member in directory
    )
    view = ServiceView(
        service=kind,
        records=tuple(records),
        addresses=addresses,
        protocol=_protocol(ca_certificate),
    )
    if view.unresolved:
        logger.debug("Members without address for %s: %s", kind, ", ".join(view.unresolved))
    return view
