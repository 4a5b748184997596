"""Departure package.

Re-exports all public symbols::

    from ovncluster.services.departure import DepartureConfig, DepartureOrchestrator
"""

from .configs import DepartureConfig
from .orchestrator import DepartureOrchestrator


__all__ = [
    "DepartureConfig",
    "DepartureOrchestrator",
]
