"""Environment sync service for ovncluster.

Keeps ``ovn.env`` in line with cluster membership. Each cycle reads the
``central`` membership snapshot and rewrites the file only when the
snapshot changed since the last write, or when the file is missing.

See Also:
    [EnvironmentSyncConfig][ovncluster.services.environment.EnvironmentSyncConfig]:
        Configuration model for this service.
    [EnvironmentProjector][ovncluster.services.environment.EnvironmentProjector]:
        Does the rendering and the atomic write.

Examples:
    ```python
    from ovncluster.core import MembershipStore
    from ovncluster.services import EnvironmentSync

    store = MembershipStore.from_yaml("config/store.yaml")
    sync = EnvironmentSync.from_yaml("config/ovncluster.yaml", store=store)

    async with store, sync:
        await sync.run_forever()
    ```
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, ClassVar

from ovncluster.core.base_service import BaseService

from .configs import EnvironmentSyncConfig
from .projector import EnvironmentProjector


if TYPE_CHECKING:
    from ovncluster.core.store import MembershipStore


class EnvironmentSync(BaseService[EnvironmentSyncConfig]):
    """Regenerate ``ovn.env`` whenever the ``central`` membership changes."""

    SERVICE_NAME: ClassVar[str] = "environment_sync"
    CONFIG_CLASS: ClassVar[type[EnvironmentSyncConfig]] = EnvironmentSyncConfig

    def __init__(
        self,
        store: MembershipStore,
        config: EnvironmentSyncConfig | None = None,
        projector: EnvironmentProjector | None = None,
    ) -> None:
        super().__init__(store=store, config=config)
        self._projector = projector or EnvironmentProjector(
            store,
            node=self._config.node,
            paths=self._config.paths,
            config=self._config.environment,
        )
        self._fingerprint: str | None = None

    @property
    def fingerprint(self) -> str | None:
        """Fingerprint of the membership last written, ``None`` before the first write."""
        return self._fingerprint

    async def run(self) -> None:
        """Check membership once and rewrite ``ovn.env`` if it changed."""
        view = await self._projector.fetch_view()
        fingerprint = view.fingerprint()

        self.set_gauge("central_members", len(view.records))
        self.set_gauge("unresolved_members", len(view.unresolved))

        file_present = await asyncio.to_thread(self._projector.env_file.exists)
        if fingerprint == self._fingerprint and file_present:
            self._logger.debug("membership_unchanged", members=len(view.records))
            return

        await self._projector.generate(view)
        self._fingerprint = fingerprint
        self.inc_counter("environment_writes")
        self._logger.info(
            "membership_changed",
            members=len(view.records),
            protocol=view.protocol,
        )
