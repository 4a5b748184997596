"""The generated OVN environment document.

[EnvironmentDocument][ovncluster.models.environment.EnvironmentDocument]
holds the five values written to ``ovn.env``. Local OVN processes source
that file when they (re)start, so the document is always regenerated as a
whole and never patched in place.
"""

from __future__ import annotations

from dataclasses import dataclass, fields


@dataclass(frozen=True, slots=True)
class EnvironmentDocument:
    """Rendered cluster view consumed by the local OVN services.

    Addresses are stored already formatted for OVN: IPv6 literals are
    wrapped in brackets.

    Attributes:
        local_address: Address of this node.
        nb_initial: Bootstrap address for the Northbound cluster.
        sb_initial: Bootstrap address for the Southbound cluster.
        nb_connect: Comma-separated ``proto:addr:6641`` list of Northbound
            members.
        sb_connect: Comma-separated ``proto:addr:6642`` list of Southbound
            members.
    """

    local_address: str
    nb_initial: str
    sb_initial: str
    nb_connect: str
    sb_connect: str

    def __post_init__(self) -> None:
        for name in ("local_address", "nb_initial", "sb_initial"):
            if not getattr(self, name):
                raise ValueError(f"{name} must not be empty")
        for field in fields(self):
            value = getattr(self, field.name)
            if '"' in value or "\n" in value:
                raise ValueError(f"{field.name} contains characters not allowed in ovn.env")

    def to_template_context(self) -> dict[str, str]:
        """Return the values keyed by the names used in the env template."""
        return {
            "local_address": self.local_address,
            "nb_initial": self.nb_initial,
            "sb_initial": self.sb_initial,
            "nb_connect": self.nb_connect,
            "sb_connect": self.sb_connect,
        }
