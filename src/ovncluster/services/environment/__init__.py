"""Environment projection package.

Re-exports all public symbols::

    from ovncluster.services.environment import EnvironmentProjector, EnvironmentSync
"""

from .configs import EnvironmentConfig, EnvironmentSyncConfig
from .connect import build_connect_string, connect_string, initial_address
from .projector import ENV_TEMPLATE, EnvironmentProjector, write_atomic
from .service import EnvironmentSync


__all__ = [
    "ENV_TEMPLATE",
    "EnvironmentConfig",
    "EnvironmentProjector",
    "EnvironmentSync",
    "EnvironmentSyncConfig",
    "build_connect_string",
    "connect_string",
    "initial_address",
    "write_atomic",
]
