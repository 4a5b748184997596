"""Graceful departure of this node from the OVN cluster.

By the time a node leaves, the membership store no longer lists its
services, so every local service that may be running is stopped and both
databases are left regardless of what the node actually ran. Each step can
fail independently (a service that was never running, a database that was
never clustered here); a failure is logged, recorded and the next step
runs anyway.

Step order:

1. ``controller_exit``: ``ovn-controller`` exits and removes its chassis
   from the Southbound database.
2. ``stop_chassis``, ``stop_switch``: force-stop the dependent services.
3. ``leave_nb``, ``leave_sb``: ``cluster/leave`` on both database servers.
4. ``wait_nb``, ``wait_sb``: wait until the local servers report the
   databases as removed.
5. ``stop_central``: force-stop the database service.
6. ``teardown``: back up data directories, then remove runtime directories.

See Also:
    [DepartureReport][ovncluster.services.common.types.DepartureReport]:
        The value [leave()][ovncluster.services.departure.DepartureOrchestrator.leave]
        returns.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from ovncluster.core.logger import Logger
from ovncluster.core.yaml import load_yaml
from ovncluster.models.constants import (
    NB_SCHEMA,
    SB_SCHEMA,
    DatabaseKind,
    DatabaseState,
    ServiceKind,
)
from ovncluster.services.common.control import OvnControl
from ovncluster.services.common.lifecycle import PathLifecycle
from ovncluster.services.common.ovsdb import MembershipWaiter
from ovncluster.services.common.types import DepartureReport, StepOutcome

from .configs import DepartureConfig


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ovncluster.services.common.types import TeardownResult


class DepartureOrchestrator:
    """Run the departure sequence for this node.

    Example:
        orchestrator = DepartureOrchestrator.from_yaml("config/ovncluster.yaml")
        report = await orchestrator.leave()
        report.failed  # number of steps that failed
    """

    def __init__(
        self,
        config: DepartureConfig,
        *,
        control: OvnControl | None = None,
        waiter: MembershipWaiter | None = None,
        lifecycle: PathLifecycle | None = None,
    ) -> None:
        self._config = config
        self._control = control or OvnControl(config.paths, config.commands)
        self._waiter = waiter or MembershipWaiter(
            self._control,
            config.paths,
            poll_interval=config.poll_interval,
        )
        self._lifecycle = lifecycle or PathLifecycle(config.paths)
        self._logger = Logger("departure")

    @property
    def config(self) -> DepartureConfig:
        return self._config

    @classmethod
    def from_dict(cls, data: dict[str, Any], **kwargs: Any) -> DepartureOrchestrator:
        return cls(DepartureConfig(**data), **kwargs)

    @classmethod
    def from_yaml(cls, config_path: str, **kwargs: Any) -> DepartureOrchestrator:
        return cls.from_dict(load_yaml(config_path), **kwargs)

    async def leave(self, node: str | None = None) -> DepartureReport:
        """Leave both clusters and clean up local state.

        Never raises for step failures; they are logged at warning level and
        recorded in the returned report. Cancellation propagates.

        Args:
            node: Name used in log records. Defaults to ``config.node.name``.
        """
        node = node or self._config.node.name
        steps: list[StepOutcome] = []
        teardown: list[TeardownResult] = []
        timeout = self._config.wait_timeout

        self._logger.info("departure_started", node=node)

        await self._step(steps, "controller_exit", lambda: self._control.controller_ctl("exit"))
        await self._step(
            steps, "stop_chassis", lambda: self._control.stop_service(ServiceKind.CHASSIS, force=True)
        )
        await self._step(
            steps, "stop_switch", lambda: self._control.stop_service(ServiceKind.SWITCH, force=True)
        )

        paths = self._config.paths
        await self._step(
            steps,
            "leave_nb",
            lambda: self._control.app_ctl(paths.nb_control_socket, "cluster/leave", NB_SCHEMA),
        )
        await self._step(
            steps,
            "leave_sb",
            lambda: self._control.app_ctl(paths.sb_control_socket, "cluster/leave", SB_SCHEMA),
        )

        await self._step(
            steps,
            "wait_nb",
            lambda: self._waiter.wait_for(DatabaseKind.NB_LOCAL, DatabaseState.REMOVED, timeout),
        )
        await self._step(
            steps,
            "wait_sb",
            lambda: self._waiter.wait_for(DatabaseKind.SB_LOCAL, DatabaseState.REMOVED, timeout),
        )

        await self._step(
            steps, "stop_central", lambda: self._control.stop_service(ServiceKind.CENTRAL, force=True)
        )

        async def run_teardown() -> None:
            result = await asyncio.to_thread(self._lifecycle.teardown)
            teardown.append(result)
            result.raise_for_failures()

        await self._step(steps, "teardown", run_teardown)

        report = DepartureReport(
            node=node,
            steps=tuple(steps),
            teardown=teardown[0] if teardown else None,
        )
        self._logger.info(
            "departure_completed",
            node=node,
            succeeded=report.succeeded,
            failed=report.failed,
        )
        return report

    async def _step(
        self,
        steps: list[StepOutcome],
        name: str,
        action: Callable[[], Awaitable[object]],
    ) -> bool:
        self._logger.debug("step_started", step=name)
        try:
            await action()
        except Exception as e:  # Intentionally broad: every step is best-effort
            steps.append(StepOutcome(step=name, ok=False, error=str(e)))
            self._logger.warning(
                "step_failed",
                step=name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        steps.append(StepOutcome(step=name, ok=True))
        return True
