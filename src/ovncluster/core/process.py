"""Async execution of external administrative commands.

Every OVN control operation (``ovn-appctl``, ``ovsdb-client``, service
stop) goes through [run_command()][ovncluster.core.process.run_command].
Commands are spawned with ``asyncio.create_subprocess_exec`` (no shell),
bounded by their own timeout, and killed when the timeout elapses or the
calling task is cancelled.

See Also:
    [OvnControl][ovncluster.services.common.control.OvnControl]: Builds the
        argument vectors for the OVN control commands.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from .exceptions import CommandError, CommandTimeoutError
from .logger import Logger


if TYPE_CHECKING:
    from collections.abc import Sequence


_logger = Logger("process")


def _kill(proc: asyncio.subprocess.Process) -> None:
    with contextlib.suppress(ProcessLookupError):
        proc.kill()


async def run_command(
    args: Sequence[str],
    *,
    timeout: float | None = None,  # noqa: ASYNC109
) -> str:
    """Run an external command and return its standard output.

    Args:
        args: Argument vector; ``args[0]`` is looked up on ``PATH``.
        timeout: Seconds to wait for the command to finish, ``None`` for no
            limit.

    Returns:
        Decoded standard output (undecodable bytes are replaced).

    Raises:
        ValueError: If ``args`` is empty.
        CommandError: If the executable cannot be started or the command
            exits with a non-zero status.
        CommandTimeoutError: If the command exceeded ``timeout`` and was
            killed.
    """
    if not args:
        raise ValueError("args must not be empty")
    argv = tuple(str(a) for a in args)

    _logger.debug("command_started", command=" ".join(argv), timeout=timeout)

    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise CommandError(f"cannot execute {argv[0]}: {e}", args_=argv) from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        _kill(proc)
        await proc.wait()
        raise CommandTimeoutError(
            f"{argv[0]} did not finish within {timeout}s",
            args_=argv,
        ) from None
    except asyncio.CancelledError:
        _kill(proc)
        raise

    err_text = stderr.decode(errors="replace").strip()
    if proc.returncode != 0:
        raise CommandError(
            f"{argv[0]} exited with status {proc.returncode}: {err_text or 'no output'}",
            args_=argv,
            returncode=proc.returncode,
            stderr=err_text,
        )

    return stdout.decode(errors="replace")
