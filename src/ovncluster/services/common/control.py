"""Thin wrappers around the OVN administrative commands.

[OvnControl][ovncluster.services.common.control.OvnControl] turns
high-level operations (tell ``ovn-controller`` to exit, send
``cluster/leave`` to a database server, stop a service unit, query the
``_Server`` database) into argument vectors and runs them through
[run_command()][ovncluster.core.process.run_command]. It holds no state
between calls and no lock across invocations.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from ovncluster.core.exceptions import CommandError
from ovncluster.core.logger import Logger
from ovncluster.core.process import run_command
from ovncluster.models.constants import ServiceKind


if TYPE_CHECKING:
    from pathlib import Path

    from .configs import CommandsConfig, PathsConfig


class OvnControl:
    """Issue control commands to the local OVN daemons.

    Example:
        control = OvnControl(paths, commands)
        await control.controller_ctl("exit")
        await control.app_ctl(paths.nb_control_socket, "cluster/leave", "OVN_Northbound")
    """

    def __init__(self, paths: PathsConfig, commands: CommandsConfig) -> None:
        self._paths = paths
        self._commands = commands
        self._logger = Logger("control")

    @property
    def commands(self) -> CommandsConfig:
        return self._commands

    async def _run(self, args: list[str]) -> str:
        return await run_command(args, timeout=self._commands.timeout)

    async def app_ctl(self, control_socket: Path | str | None, *args: str) -> str:
        """Run ``ovn-appctl -t <control_socket> <args...>`` and return its output.

        Raises:
            CommandError: If no socket is configured or the command fails.
        """
        if control_socket is None:
            raise CommandError("control socket is not configured", args_=args)
        return await self._run([self._commands.appctl, "-t", str(control_socket), *args])

    async def controller_ctl(self, *args: str) -> str:
        """Send a control command to the local ``ovn-controller``."""
        return await self.app_ctl(self._paths.controller_control_socket, *args)

    async def stop_service(self, service: ServiceKind | str, *, force: bool = False) -> None:
        """Stop the system unit running ``service``.

        A forced stop also disables the unit so it does not come back on
        its own.
        """
        kind = ServiceKind(service)
        args = list(self._commands.stop_command)
        if force and self._commands.force_flag:
            args.append(self._commands.force_flag)
        args.append(f"{self._commands.unit_prefix}{kind}")
        await self._run(args)
        self._logger.debug("service_stopped", service=kind, force=force)

    async def ovsdb_query(self, target: str, database: str, operations: list[dict[str, Any]]) -> Any:
        """Run an OVSDB transaction with ``ovsdb-client query`` and return the parsed reply.

        Raises:
            CommandError: If the command fails or its output is not JSON.
        """
        transaction = json.dumps([database, *operations], separators=(",", ":"))
        args = [self._commands.ovsdb_client, "query", target, transaction]
        output = await self._run(args)
        try:
            return json.loads(output)
        except ValueError as e:
            raise CommandError(f"unparsable ovsdb-client reply: {e}", args_=args) from e
