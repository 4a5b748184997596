"""Shared configuration models for ovncluster services.

Pydantic models describing where this node keeps its runtime state, how
external control commands are invoked, and who this node is. Every field
has a default matching a MicroOVN-style snap layout, so YAML files only
need to override what differs.

See Also:
    [EnvironmentSyncConfig][ovncluster.services.environment.EnvironmentSyncConfig],
    [DepartureConfig][ovncluster.services.departure.DepartureConfig]:
        Component configs that embed these models.

Examples:
    ```yaml
    node:
      name: node-a
      address: 10.0.0.1
    paths:
      root: /var/snap/microovn/common
    commands:
      timeout: 15
    ```
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator


DEFAULT_ROOT = Path("/var/snap/microovn/common")


class PathsConfig(BaseModel):
    """Runtime directory layout of this node.

    Relative entries in ``required_dirs``, ``backup_dirs``, ``env_file`` and
    the socket fields are resolved against ``root``.

    Attributes:
        root: Runtime root. Backups are created directly under it.
        required_dirs: Directories created at bootstrap and removed at
            teardown.
        backup_dirs: Data directories moved into the backup before any
            removal happens. Each lands in the backup under its own name,
            so names must be distinct.
        env_file: The generated OVN environment file.
        nb_control_socket: ``ovsdb-server`` control socket of the Northbound
            database.
        sb_control_socket: ``ovsdb-server`` control socket of the Southbound
            database.
        controller_control_socket: ``ovn-controller`` control socket.
        nb_database_socket: Local unix socket serving the Northbound database.
            ``None`` if this node does not serve it.
        sb_database_socket: Local unix socket serving the Southbound database.
    """

    root: Path = DEFAULT_ROOT
    required_dirs: list[Path] = Field(
        default_factory=lambda: [
            Path("data/pki"),
            Path("data/central/db"),
            Path("data/switch/db"),
            Path("data/env"),
            Path("logs"),
            Path("run/ovn"),
            Path("run/switch"),
        ]
    )
    backup_dirs: list[Path] = Field(
        default_factory=lambda: [
            Path("data/central"),
            Path("data/switch"),
        ]
    )
    env_file: Path = Path("data/env/ovn.env")
    nb_control_socket: Path | None = Path("run/ovn/ovnnb_db.ctl")
    sb_control_socket: Path | None = Path("run/ovn/ovnsb_db.ctl")
    controller_control_socket: Path | None = Path("run/ovn/ovn-controller.ctl")
    nb_database_socket: Path | None = Path("run/ovn/ovnnb_db.sock")
    sb_database_socket: Path | None = Path("run/ovn/ovnsb_db.sock")

    @field_validator("root")
    @classmethod
    def validate_root(cls, v: Path) -> Path:
        if not v.is_absolute():
            raise ValueError(f"root must be an absolute path, got {v}")
        return v

    @field_validator("backup_dirs")
    @classmethod
    def validate_backup_names(cls, v: list[Path]) -> list[Path]:
        names = [p.name for p in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"backup_dirs must have distinct names, duplicated: {duplicates}")
        return v

    @model_validator(mode="after")
    def resolve_relative(self) -> PathsConfig:
        """Anchor every relative path on ``root``."""
        self.required_dirs = [self._anchor(p) for p in self.required_dirs]
        self.backup_dirs = [self._anchor(p) for p in self.backup_dirs]
        self.env_file = self._anchor(self.env_file)
        for name in (
            "nb_control_socket",
            "sb_control_socket",
            "controller_control_socket",
            "nb_database_socket",
            "sb_database_socket",
        ):
            value = getattr(self, name)
            if value is not None:
                setattr(self, name, self._anchor(value))
        return self

    def _anchor(self, path: Path) -> Path:
        return path if path.is_absolute() else self.root / path


class CommandsConfig(BaseModel):
    """How external control commands are invoked.

    Attributes:
        appctl: ``ovn-appctl`` executable.
        ovsdb_client: ``ovsdb-client`` executable.
        stop_command: Argument vector that stops a system service; the unit
            name is appended.
        force_flag: Extra argument inserted before the unit name when a stop
            is forced (the unit is also disabled so it stays down).
        unit_prefix: Prefix turning a service kind into a unit name
            (``microovn.`` + ``central``).
        timeout: Per-command timeout in seconds.
    """

    appctl: str = "ovn-appctl"
    ovsdb_client: str = "ovsdb-client"
    stop_command: list[str] = Field(default_factory=lambda: ["snapctl", "stop"], min_length=1)
    force_flag: str = "--disable"
    unit_prefix: str = "microovn."
    timeout: float = Field(default=30.0, ge=0.1, le=600.0)


class NodeConfig(BaseModel):
    """Identity of this cluster member.

    Attributes:
        name: Member name as recorded in the membership store.
        address: Address other members reach this node on. An IPv6 literal
            is bracketed when written to ``ovn.env``.
    """

    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
