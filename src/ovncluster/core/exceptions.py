"""ovncluster exception hierarchy.

Typed exceptions for every error category, so callers can tell a failed
external command from a timed-out cluster transition or a refused cleanup
and let ``CancelledError`` propagate untouched.

Exception hierarchy:

```text
OvnClusterError (base -- never raised directly)
├── ConfigurationError       -- config validation, missing keys, bad YAML
├── StoreError               -- membership store failures
│   ├── StoreConnectionError -- transient: pool exhausted, network blip
│   └── QueryError           -- permanent: bad SQL, missing table
├── CommandError             -- external command exited non-zero / not found
│   └── CommandTimeoutError  -- external command exceeded its timeout
├── ClusterStateError        -- cluster membership transitions
│   ├── DatabaseSpecError    -- database spec cannot be resolved
│   └── WaitTimeoutError     -- target state not reached before deadline
├── ProjectionError          -- ovn.env cannot be computed or written
└── PathError                -- runtime directory handling
    ├── BackupError          -- backup phase failed, nothing removed
    └── CleanupError         -- removal phase failed after a good backup
```

See Also:
    [run_command()][ovncluster.core.process.run_command]: Raises
        [CommandError][ovncluster.core.exceptions.CommandError].
    [MembershipWaiter][ovncluster.services.common.ovsdb.MembershipWaiter]:
        Raises [WaitTimeoutError][ovncluster.core.exceptions.WaitTimeoutError].
    [PathLifecycle][ovncluster.services.common.lifecycle.PathLifecycle]:
        Raises [PathError][ovncluster.core.exceptions.PathError] subclasses.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from collections.abc import Sequence


class OvnClusterError(Exception):
    """Base exception for all ovncluster errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(OvnClusterError):
    """Invalid or missing configuration (YAML, env vars, CLI flags)."""


# ---------------------------------------------------------------------------
# Membership store
# ---------------------------------------------------------------------------


class StoreError(OvnClusterError):
    """Base for all membership store errors."""


class StoreConnectionError(StoreError):
    """Transient store error: pool exhausted, connection refused, network blip.

    Callers may retry after a backoff.
    """


class QueryError(StoreError):
    """Permanent store error: bad SQL, missing table, malformed row.

    Callers should NOT retry -- the query itself is wrong.
    """


# ---------------------------------------------------------------------------
# External commands
# ---------------------------------------------------------------------------


class CommandError(OvnClusterError):
    """An external command could not be run or exited with a failure status.

    Attributes:
        args_: The argument vector that was executed.
        returncode: Exit status, or ``None`` if the process never ran or was
            killed.
        stderr: Captured standard error, stripped.
    """

    def __init__(
        self,
        message: str,
        *,
        args_: Sequence[str] = (),
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.args_ = tuple(args_)
        self.returncode = returncode
        self.stderr = stderr


class CommandTimeoutError(CommandError):
    """An external command did not finish within its timeout and was killed."""


# ---------------------------------------------------------------------------
# Cluster state
# ---------------------------------------------------------------------------


class ClusterStateError(OvnClusterError):
    """Base for errors observing or driving cluster membership."""


class DatabaseSpecError(ClusterStateError):
    """A database specification cannot be resolved (unknown kind, no socket)."""


class WaitTimeoutError(ClusterStateError):
    """A database did not reach the expected state before the deadline.

    Attributes:
        last_state: The last state observed before giving up.
    """

    def __init__(self, message: str, *, last_state: Any = None) -> None:
        super().__init__(message)
        self.last_state = last_state


# ---------------------------------------------------------------------------
# Environment projection
# ---------------------------------------------------------------------------


class ProjectionError(OvnClusterError):
    """The OVN environment file cannot be computed, rendered or written."""


# ---------------------------------------------------------------------------
# Runtime paths
# ---------------------------------------------------------------------------


class PathError(OvnClusterError):
    """Base for runtime directory errors.

    Attributes:
        outcomes: Per-directory outcomes collected before the failure, when
            the error comes from a multi-directory operation.
    """

    def __init__(self, message: str, *, outcomes: Sequence[Any] = ()) -> None:
        super().__init__(message)
        self.outcomes = tuple(outcomes)


class BackupError(PathError):
    """The backup phase failed. No directory was removed."""


class CleanupError(PathError):
    """Backups succeeded but one or more directories could not be removed."""
