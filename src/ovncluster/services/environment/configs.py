"""Environment projection configuration models.

See Also:
    [EnvironmentProjector][ovncluster.services.environment.EnvironmentProjector]:
        Renders and writes ``ovn.env``.
    [EnvironmentSync][ovncluster.services.environment.EnvironmentSync]:
        The service that consumes
        [EnvironmentSyncConfig][ovncluster.services.environment.EnvironmentSyncConfig].
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from ovncluster.core.base_service import BaseServiceConfig
from ovncluster.services.common.configs import NodeConfig, PathsConfig


class EnvironmentConfig(BaseModel):
    """How ``ovn.env`` is written.

    The file location comes from ``paths.env_file``.
    """

    file_mode: int = Field(default=0o644, ge=0, le=0o777, description="Permission bits of ovn.env")
    header: str = Field(
        default="# Generated by ovncluster, DO NOT EDIT.",
        pattern=r"^#[^\n]*$",
        description="Comment line written at the top of the file",
    )


class EnvironmentSyncConfig(BaseServiceConfig):
    """Environment sync service configuration.

    See Also:
        [BaseServiceConfig][ovncluster.core.base_service.BaseServiceConfig]:
            Base class providing ``interval``, ``max_consecutive_failures``
            and ``metrics`` fields.
    """

    interval: float = Field(default=10.0, ge=1.0, description="Seconds between membership checks")
    node: NodeConfig
    paths: PathsConfig = Field(default_factory=PathsConfig)
    environment: EnvironmentConfig = Field(default_factory=EnvironmentConfig)
