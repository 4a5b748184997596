"""Rendering and atomic writing of the OVN environment file.

``ovn.env`` tells the local OVN daemons where the cluster is:

```text
# Generated by ovncluster, DO NOT EDIT.
OVN_INITIAL_NB="10.0.0.1"
OVN_INITIAL_SB="10.0.0.1"
OVN_NB_CONNECT="ssl:10.0.0.1:6641,ssl:10.0.0.2:6641"
OVN_SB_CONNECT="ssl:10.0.0.1:6642,ssl:10.0.0.2:6642"
OVN_LOCAL_IP="10.0.0.2"
```

The file is rendered completely in memory, written to a temporary file in
the same directory and renamed over the target, so readers see either the
old or the new file, never a partial one.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import tempfile
from typing import TYPE_CHECKING

import jinja2

from ovncluster.core.exceptions import ProjectionError
from ovncluster.core.logger import Logger
from ovncluster.models.constants import NB_PORT, SB_PORT, ServiceKind
from ovncluster.models.environment import EnvironmentDocument
from ovncluster.services.common.queries import fetch_service_view
from ovncluster.utils.network import bracket_if_ipv6

from .configs import EnvironmentConfig
from .connect import build_connect_string, initial_address


if TYPE_CHECKING:
    from pathlib import Path

    from ovncluster.core.store import MembershipStore
    from ovncluster.services.common.configs import NodeConfig, PathsConfig
    from ovncluster.services.common.types import ServiceView


ENV_TEMPLATE = """\
{{ header }}
OVN_INITIAL_NB="{{ nb_initial }}"
OVN_INITIAL_SB="{{ sb_initial }}"
OVN_NB_CONNECT="{{ nb_connect }}"
OVN_SB_CONNECT="{{ sb_connect }}"
OVN_LOCAL_IP="{{ local_address }}"
"""


def write_atomic(path: Path, content: str, mode: int) -> None:
    """Replace ``path`` with ``content`` atomically.

    The temporary file is removed if anything fails before the rename.

    Raises:
        OSError: If the file cannot be written or renamed.
    """
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise


class EnvironmentProjector:
    """Project cluster membership into ``ovn.env``.

    Example:
        projector = EnvironmentProjector(store, node=node, paths=paths)
        async with store:
            document = await projector.generate()
    """

    def __init__(
        self,
        store: MembershipStore,
        node: NodeConfig,
        paths: PathsConfig,
        config: EnvironmentConfig | None = None,
    ) -> None:
        self._store = store
        self._node = node
        self._paths = paths
        self._config = config or EnvironmentConfig()
        self._logger = Logger("environment")

    @property
    def env_file(self) -> Path:
        return self._paths.env_file

    async def fetch_view(self) -> ServiceView:
        """Read the ``central`` membership snapshot the document is built from."""
        return await fetch_service_view(self._store, ServiceKind.CENTRAL)

    async def build_document(self, view: ServiceView | None = None) -> EnvironmentDocument:
        """Compute the five environment values.

        Both databases are served by the ``central`` members, so NB and SB
        share one snapshot and differ only in port.

        Raises:
            ProjectionError: If there is no ``central`` record, the first one
                cannot be resolved, or a value cannot be written to the file.
        """
        if view is None:
            view = await self.fetch_view()
        initial = initial_address(view)
        try:
            return EnvironmentDocument(
                local_address=bracket_if_ipv6(self._node.address),
                nb_initial=initial,
                sb_initial=initial,
                nb_connect=build_connect_string(view, NB_PORT),
                sb_connect=build_connect_string(view, SB_PORT),
            )
        except ValueError as e:
            raise ProjectionError(f"invalid environment value: {e}") from e

    def render(self, document: EnvironmentDocument) -> str:
        """Render ``document`` with the environment template.

        Raises:
            ProjectionError: If the template fails to render.
        """
        env = jinja2.Environment(
            undefined=jinja2.StrictUndefined,
            keep_trailing_newline=True,
            autoescape=False,  # noqa: S701
        )
        try:
            return env.from_string(ENV_TEMPLATE).render(
                header=self._config.header,
                **document.to_template_context(),
            )
        except jinja2.TemplateError as e:
            raise ProjectionError(f"couldn't render {self.env_file.name}: {e}") from e

    async def write(self, content: str) -> Path:
        """Atomically replace the environment file with ``content``.

        Raises:
            ProjectionError: If the file cannot be written.
        """
        path = self.env_file
        try:
            await asyncio.to_thread(write_atomic, path, content, self._config.file_mode)
        except OSError as e:
            raise ProjectionError(f"couldn't write {path}: {e}") from e
        return path

    async def generate(self, view: ServiceView | None = None) -> EnvironmentDocument:
        """Build, render and write the environment file.

        Nothing is written unless the document was built and rendered
        successfully.
        """
        document = await self.build_document(view)
        content = self.render(document)
        path = await self.write(content)
        self._logger.info(
            "environment_written",
            path=str(path),
            nb_connect=document.nb_connect,
            sb_connect=document.sb_connect,
        )
        return document
