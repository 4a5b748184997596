"""Database specifications and membership state polling.

A database's membership in its consensus group is observed through the
``_Server`` database every ``ovsdb-server`` exposes: the ``Database`` row
for ``OVN_Northbound`` / ``OVN_Southbound`` carries a ``connected`` flag
while the local server takes part in the cluster, and disappears once the
server has left and closed the database.

State mapping:

- row present, ``connected`` is true: ``connected``
- row present otherwise: ``unknown``
- no row, or the local database socket is gone: ``removed``
- any other failure (command error, timeout, bad reply): ``unknown``

See Also:
    [poll_until()][ovncluster.utils.polling.poll_until]: The bounded
        polling combinator the waiter is built on.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ovncluster.core.exceptions import CommandError, DatabaseSpecError, WaitTimeoutError
from ovncluster.core.logger import Logger
from ovncluster.models.constants import NB_SCHEMA, SB_SCHEMA, DatabaseKind, DatabaseState
from ovncluster.models.database import DatabaseSpec
from ovncluster.utils.polling import poll_until


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from .configs import PathsConfig
    from .control import OvnControl


SERVER_DATABASE = "_Server"
UNIX_PREFIX = "unix:"

# ovsdb-client reports a missing unix socket with the strerror text.
_SOCKET_GONE_MARKERS = ("No such file or directory",)


def create_database_spec(
    kind: DatabaseKind | str,
    paths: PathsConfig,
    *,
    connect: str | None = None,
) -> DatabaseSpec:
    """Resolve the [DatabaseSpec][ovncluster.models.database.DatabaseSpec] of ``kind``.

    Local variants target the database unix socket from ``paths``. Cluster
    variants target ``connect``, the comma-separated cluster connection
    string.

    Raises:
        DatabaseSpecError: If ``kind`` is unknown, a required socket is not
            configured, or a cluster variant has no connection string.
    """
    try:
        kind = DatabaseKind(kind)
    except ValueError as e:
        raise DatabaseSpecError(f"unknown database kind: {kind!r}") from e

    northbound = kind.is_northbound
    schema = NB_SCHEMA if northbound else SB_SCHEMA
    control_socket = paths.nb_control_socket if northbound else paths.sb_control_socket
    if control_socket is None:
        raise DatabaseSpecError(f"{kind}: control socket is not configured")

    if kind.is_local:
        db_socket = paths.nb_database_socket if northbound else paths.sb_database_socket
        if db_socket is None:
            raise DatabaseSpecError(f"{kind}: database socket is not configured")
        target = f"{UNIX_PREFIX}{db_socket}"
    else:
        if not connect:
            raise DatabaseSpecError(f"{kind}: cluster connection string is empty")
        target = connect

    return DatabaseSpec(
        kind=kind,
        schema=schema,
        control_socket=str(control_socket),
        target=target,
    )


def parse_database_state(reply: Any) -> DatabaseState:
    """Map an ``ovsdb-client query`` reply on ``_Server.Database`` to a state."""
    try:
        result = reply[0]
        if "error" in result:
            return DatabaseState.UNKNOWN
        rows = result["rows"]
    except (LookupError, TypeError):
        return DatabaseState.UNKNOWN

    if not rows:
        return DatabaseState.REMOVED
    if any(isinstance(row, dict) and row.get("connected") is True for row in rows):
        return DatabaseState.CONNECTED
    return DatabaseState.UNKNOWN


class MembershipWaiter:
    """Poll a database's cluster membership until it reaches a target state.

    Args:
        control: Command runner used for ``ovsdb-client``.
        paths: Runtime paths, used to resolve database kinds into specs.
        poll_interval: Seconds between polls. ``None`` derives it from the
            timeout (1%, at least 50 ms).
        clock: Monotonic clock. Injectable for tests.
        sleep: Sleep coroutine function. Injectable for tests.
    """

    def __init__(
        self,
        control: OvnControl,
        paths: PathsConfig,
        *,
        poll_interval: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._control = control
        self._paths = paths
        self._poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep
        self._logger = Logger("waiter")

    async def database_state(self, spec: DatabaseSpec) -> DatabaseState:
        """Query the current membership state of ``spec``. Never raises for command failures."""
        if spec.target.startswith(UNIX_PREFIX):
            socket_path = Path(spec.target[len(UNIX_PREFIX) :])
            if not await asyncio.to_thread(socket_path.exists):
                return DatabaseState.REMOVED

        operation = {
            "op": "select",
            "table": "Database",
            "where": [["name", "==", spec.schema]],
            "columns": ["name", "connected", "leader", "model"],
        }
        try:
            reply = await self._control.ovsdb_query(spec.target, SERVER_DATABASE, [operation])
        except CommandError as e:
            if any(marker in e.stderr for marker in _SOCKET_GONE_MARKERS):
                return DatabaseState.REMOVED
            self._logger.debug("state_query_failed", schema=spec.schema, error=str(e))
            return DatabaseState.UNKNOWN
        return parse_database_state(reply)

    async def wait_for(
        self,
        spec: DatabaseSpec | DatabaseKind | str,
        target: DatabaseState,
        timeout: float,  # noqa: ASYNC109
    ) -> int:
        """Block until ``spec`` reports ``target`` or ``timeout`` seconds elapse.

        Returns:
            Number of state queries performed.

        Raises:
            DatabaseSpecError: If ``spec`` is a kind that cannot be resolved.
                Raised before any polling.
            WaitTimeoutError: If ``target`` was not observed in time.
        """
        if not isinstance(spec, DatabaseSpec):
            spec = create_database_spec(spec, self._paths)
        target = DatabaseState(target)
        last_state = DatabaseState.UNKNOWN

        async def reached() -> bool:
            nonlocal last_state
            last_state = await self.database_state(spec)
            return last_state == target

        try:
            attempts = await poll_until(
                reached,
                timeout=timeout,
                interval=self._poll_interval,
                clock=self._clock,
                sleep=self._sleep,
            )
        except TimeoutError as e:
            raise WaitTimeoutError(
                f"{spec.schema} did not reach {target} within {timeout}s "
                f"(last state: {last_state})",
                last_state=last_state,
            ) from e

        self._logger.info("database_state_reached", schema=spec.schema, state=target, attempts=attempts)
        return attempts
