"""Shared domain types for ovncluster services.

Lightweight dataclasses produced by query functions, the path lifecycle and
the departure orchestrator, and consumed by services and the CLI. Keeping
them in their own module avoids circular imports between ``queries``,
``lifecycle`` and the individual service packages.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from ovncluster.core.exceptions import BackupError, CleanupError


if TYPE_CHECKING:
    from pathlib import Path

    from ovncluster.models.constants import ServiceKind
    from ovncluster.models.service import ServiceRecord
    from ovncluster.utils.network import IPAddress


# =============================================================================
# Membership
# =============================================================================


@dataclass(frozen=True, slots=True)
class MemberAddress:
    """A service member resolved through the address directory."""

    member: str
    address: IPAddress


@dataclass(frozen=True, slots=True)
class ServiceView:
    """Consistent snapshot of one service's membership.

    Produced by a single read transaction, so ``records``, ``addresses`` and
    ``protocol`` always describe the same state of the store.

    Attributes:
        service: The service the records were selected for.
        records: All records of the service in registration order.
        addresses: Resolved members in record order. Members missing from
            the address directory are left out.
        protocol: ``ssl`` if the cluster has a CA certificate, else ``tcp``.

    See Also:
        [fetch_service_view][ovncluster.services.common.queries.fetch_service_view]:
            Query that produces this snapshot.
    """

    service: ServiceKind
    records: tuple[ServiceRecord, ...]
    addresses: tuple[MemberAddress, ...]
    protocol: str

    @property
    def unresolved(self) -> tuple[str, ...]:
        """Members that have a record but no address."""
        resolved = {m.member for m in self.addresses}
        return tuple(r.member for r in self.records if r.member not in resolved)

    def fingerprint(self) -> str:
        """Return a stable digest of everything the environment file depends on."""
        parts = [self.service.value, self.protocol]
        parts.extend(f"{r.id}:{r.member}" for r in self.records)
        parts.extend(f"{m.member}={m.address}" for m in self.addresses)
        return hashlib.sha256("\n".join(parts).encode()).hexdigest()


# =============================================================================
# Path lifecycle
# =============================================================================


class TeardownPhase(StrEnum):
    """Phase of a teardown a [PathOutcome][ovncluster.services.common.types.PathOutcome] belongs to."""

    BACKUP_ROOT = "backup_root"
    BACKUP = "backup"
    REMOVE = "remove"


@dataclass(frozen=True, slots=True)
class PathOutcome:
    """Result of one filesystem operation during teardown.

    Attributes:
        phase: Which teardown phase performed the operation.
        path: The directory operated on.
        ok: Whether the operation succeeded.
        error: Error message if it failed.
        destination: Target of a backup move.
    """

    phase: TeardownPhase
    path: Path
    ok: bool
    error: str | None = None
    destination: Path | None = None

    def describe(self) -> str:
        if self.ok:
            return f"{self.phase}: {self.path} ok"
        return f"{self.phase}: {self.path}: {self.error}"


@dataclass(frozen=True, slots=True)
class TeardownResult:
    """Outcome of [PathLifecycle.teardown()][ovncluster.services.common.lifecycle.PathLifecycle.teardown].

    Attributes:
        backup_path: The ``backup_<epoch>`` directory, or ``None`` if it
            could not be created.
        outcomes: Every operation attempted, in order.
        removal_attempted: Whether the destructive phase ran. It only runs
            when every backup step succeeded.
    """

    backup_path: Path | None
    outcomes: tuple[PathOutcome, ...] = ()
    removal_attempted: bool = False

    @property
    def backup_failures(self) -> tuple[PathOutcome, ...]:
        return tuple(
            o
            for o in self.outcomes
            if not o.ok and o.phase in (TeardownPhase.BACKUP_ROOT, TeardownPhase.BACKUP)
        )

    @property
    def removal_failures(self) -> tuple[PathOutcome, ...]:
        return tuple(o for o in self.outcomes if not o.ok and o.phase == TeardownPhase.REMOVE)

    @property
    def ok(self) -> bool:
        return self.removal_attempted and not self.removal_failures

    def raise_for_failures(self) -> None:
        """Raise if any step failed.

        Raises:
            BackupError: A backup step failed; nothing was removed.
            CleanupError: Backups succeeded but some removals failed.
        """
        if self.backup_failures:
            messages = [o.describe() for o in self.backup_failures]
            messages.append("refusing to continue with data removal")
            raise BackupError("; ".join(messages), outcomes=self.outcomes)
        if self.removal_failures:
            raise CleanupError(
                "; ".join(o.describe() for o in self.removal_failures),
                outcomes=self.outcomes,
            )


# =============================================================================
# Departure
# =============================================================================


@dataclass(frozen=True, slots=True)
class StepOutcome:
    """Result of one departure step.

    Attributes:
        step: Step name (``controller_exit``, ``leave_nb``, ...).
        ok: Whether the step succeeded.
        error: Error message if it failed.
    """

    step: str
    ok: bool
    error: str | None = None


@dataclass(frozen=True, slots=True)
class DepartureReport:
    """Ordered outcomes of a [leave()][ovncluster.services.departure.DepartureOrchestrator.leave] run."""

    node: str
    steps: tuple[StepOutcome, ...] = field(default_factory=tuple)
    teardown: TeardownResult | None = None

    @property
    def succeeded(self) -> int:
        return sum(1 for s in self.steps if s.ok)

    @property
    def failed(self) -> int:
        return sum(1 for s in self.steps if not s.ok)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    @property
    def failures(self) -> tuple[StepOutcome, ...]:
        return tuple(s for s in self.steps if not s.ok)

    def outcome(self, step: str) -> StepOutcome | None:
        """Return the outcome of ``step``, or ``None`` if it was not recorded."""
        for s in self.steps:
            if s.step == step:
                return s
        return None
