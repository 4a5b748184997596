"""CLI entry point for ovncluster.

One command per operation. All commands read the node configuration file
(sections ``node``, ``paths``, ``commands``, ``environment``, ``sync``,
``departure``); the commands that read cluster membership also read the
store configuration.

Examples:
    ```bash
    python -m ovncluster bootstrap
    python -m ovncluster environment --store-config config/store.yaml
    python -m ovncluster sync --log-level DEBUG
    python -m ovncluster leave
    python -m ovncluster cleanup
    ```

Exit codes: ``0`` success, ``1`` failure, ``130`` interrupted. ``leave``
is best-effort and exits ``0`` even when steps failed; the failures are
in the log.
"""

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ovncluster.core import MembershipStore, start_metrics_server
from ovncluster.core.exceptions import ConfigurationError, OvnClusterError, StoreConnectionError
from ovncluster.core.logger import Logger, StructuredFormatter
from ovncluster.core.yaml import load_yaml
from ovncluster.services import (
    DepartureOrchestrator,
    EnvironmentProjector,
    EnvironmentSync,
    EnvironmentSyncConfig,
    PathLifecycle,
    PathsConfig,
)
from ovncluster.services.common.configs import NodeConfig
from ovncluster.services.environment import EnvironmentConfig


CONFIG_BASE = Path("config")
NODE_CONFIG = CONFIG_BASE / "ovncluster.yaml"
STORE_CONFIG = CONFIG_BASE / "store.yaml"

COMMANDS = ("bootstrap", "environment", "sync", "leave", "cleanup")

logger = Logger("cli")


# =============================================================================
# Configuration
# =============================================================================


def _load_yaml_dict(path: Path) -> dict[str, Any]:
    """Load a YAML file as a dict, returning ``{}`` if the file does not exist."""
    if not path.exists():
        logger.warning("config_not_found", path=str(path))
        return {}
    return load_yaml(str(path))


def _section(config: dict[str, Any], key: str) -> dict[str, Any]:
    value = config.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"section {key!r} must be a mapping")
    return value


def build_sync_config(config: dict[str, Any]) -> dict[str, Any]:
    """Assemble the EnvironmentSync config from the node configuration sections."""
    return {
        **_section(config, "sync"),
        "node": _section(config, "node"),
        "paths": _section(config, "paths"),
        "environment": _section(config, "environment"),
    }


def build_departure_config(config: dict[str, Any]) -> dict[str, Any]:
    """Assemble the DepartureOrchestrator config from the node configuration sections."""
    return {
        **_section(config, "departure"),
        "node": _section(config, "node"),
        "paths": _section(config, "paths"),
        "commands": _section(config, "commands"),
    }


def build_store(store_config: dict[str, Any], command: str) -> MembershipStore:
    """Create the store, tagging connections with the command being run."""
    pool = store_config.setdefault("pool", {})
    server_settings = pool.setdefault("server_settings", {})
    server_settings.setdefault("application_name", f"ovncluster_{command}")
    return MembershipStore.from_dict(store_config)


# =============================================================================
# Commands
# =============================================================================


async def run_bootstrap(config: dict[str, Any]) -> int:
    """Create the runtime directories."""
    paths = PathsConfig(**_section(config, "paths"))
    created = PathLifecycle(paths).bootstrap()
    logger.info("bootstrap_completed", directories=len(created))
    return 0


async def run_cleanup(config: dict[str, Any]) -> int:
    """Back up data directories and remove runtime directories."""
    paths = PathsConfig(**_section(config, "paths"))
    result = PathLifecycle(paths).teardown()
    try:
        result.raise_for_failures()
    except OvnClusterError as e:
        logger.error("cleanup_failed", error=str(e), backup=str(result.backup_path))
        return 1
    logger.info("cleanup_completed", backup=str(result.backup_path))
    return 0


async def run_leave(config: dict[str, Any]) -> int:
    """Leave the cluster. Step failures are logged but do not fail the command."""
    orchestrator = DepartureOrchestrator.from_dict(build_departure_config(config))
    report = await orchestrator.leave()
    for failure in report.failures:
        logger.warning("departure_step_failed", step=failure.step, error=failure.error)
    return 0


async def run_environment(config: dict[str, Any], store: MembershipStore) -> int:
    """Write ``ovn.env`` once."""
    projector = EnvironmentProjector(
        store,
        node=NodeConfig(**_section(config, "node")),
        paths=PathsConfig(**_section(config, "paths")),
        config=EnvironmentConfig(**_section(config, "environment")),
    )
    async with store:
        await projector.generate()
    return 0


async def run_sync(config: dict[str, Any], store: MembershipStore, *, once: bool) -> int:
    """Keep ``ovn.env`` in sync with membership until a shutdown signal."""
    service = EnvironmentSync.from_dict(build_sync_config(config), store=store)

    if once:
        try:
            async with store, service:
                await service.run()
            logger.info("sync_completed")
            return 0
        except Exception as e:  # Intentionally broad: CLI error boundary for one-shot mode
            logger.error("sync_failed", error=str(e))
            return 1

    sync_config: EnvironmentSyncConfig = service.config
    metrics_config = sync_config.metrics
    metrics_server = await start_metrics_server(metrics_config)

    if metrics_config.enabled:
        logger.info(
            "metrics_server_started",
            host=metrics_config.host,
            port=metrics_config.port,
            path=metrics_config.path,
        )

    def handle_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal", signal=sig.name)
        service.request_shutdown()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    try:
        async with store, service:
            await service.run_forever()
        return 0
    except Exception as e:  # Intentionally broad: CLI error boundary for continuous mode
        logger.error("sync_failed", error=str(e))
        return 1
    finally:
        await metrics_server.stop()
        if metrics_config.enabled:
            logger.info("metrics_server_stopped")


# =============================================================================
# Entry point
# =============================================================================


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="ovncluster",
        description="OVN cluster membership management",
    )

    parser.add_argument("command", choices=COMMANDS, help="Operation to run")

    parser.add_argument(
        "--config",
        type=Path,
        default=NODE_CONFIG,
        help=f"Node config path (default: {NODE_CONFIG})",
    )

    parser.add_argument(
        "--store-config",
        type=Path,
        default=STORE_CONFIG,
        help=f"Membership store config path (default: {STORE_CONFIG})",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="sync: run a single cycle and exit",
    )

    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    """Install a ``StructuredFormatter`` on the root handler."""
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


async def main(argv: list[str] | None = None) -> int:
    """Parse args, load configuration and run the selected command."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    local_commands: dict[str, Callable[[dict[str, Any]], Awaitable[int]]] = {
        "bootstrap": run_bootstrap,
        "cleanup": run_cleanup,
        "leave": run_leave,
    }

    try:
        config = _load_yaml_dict(args.config)

        if args.command in local_commands:
            return await local_commands[args.command](config)

        store = build_store(_load_yaml_dict(args.store_config), args.command)
        if args.command == "environment":
            return await run_environment(config, store)
        return await run_sync(config, store, once=args.once)

    except (ConfigurationError, ValidationError) as e:
        logger.error("invalid_config", error=str(e))
        return 1
    except StoreConnectionError as e:
        logger.error("connection_failed", error=str(e))
        return 1
    except OvnClusterError as e:
        logger.error(f"{args.command}_failed", error=str(e), error_type=type(e).__name__)
        return 1


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    try:
        code = asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("interrupted")
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    cli()
