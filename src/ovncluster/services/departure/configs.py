"""Departure configuration models.

See Also:
    [DepartureOrchestrator][ovncluster.services.departure.DepartureOrchestrator]:
        Consumes [DepartureConfig][ovncluster.services.departure.DepartureConfig].
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from ovncluster.services.common.configs import CommandsConfig, NodeConfig, PathsConfig


class DepartureConfig(BaseModel):
    """Configuration for leaving the cluster.

    Attributes:
        wait_timeout: Seconds to wait for each database to report that this
            node left its cluster.
        poll_interval: Seconds between state queries while waiting. ``None``
            uses 1% of ``wait_timeout`` (at least 50 ms).
    """

    node: NodeConfig
    paths: PathsConfig = Field(default_factory=PathsConfig)
    commands: CommandsConfig = Field(default_factory=CommandsConfig)
    wait_timeout: float = Field(default=30.0, ge=0.0, le=3600.0)
    poll_interval: float | None = Field(default=None, gt=0.0)
