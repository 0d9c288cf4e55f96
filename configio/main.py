"""
Command-line interface for configio.
"""

import asyncio
import json
import logging
import sys
from dataclasses import asdict
from typing import Any, Optional

import typer

from .application.manager import ConfigFileManager
from .core.domain.channel import NotifyChannel
from .core.exceptions import ConfigIOError, ConfigKeyError
from .core.services.dispatcher import StopReason
from .infrastructure.config.loader import ConfigLoader
from .infrastructure.config.models import ApplicationConfig
from .infrastructure.logging.setup import setup_logging
from .simpleconfig import SimpleConfig

cli = typer.Typer(
    name="configio",
    help="File-backed configuration store with change notifications"
)

logger = logging.getLogger(__name__)


def load_settings(
    settings_file: Optional[str],
    file: Optional[str] = None,
    log_level: Optional[str] = None
) -> ApplicationConfig:
    """Load settings, apply command line overrides and set up logging."""
    config = ConfigLoader().load_config(settings_file)

    if file:
        config.store.file = file
    if log_level:
        config.logging.level = log_level.upper()

    setup_logging(config.logging)
    return config


@cli.command()
def init_config(
    output: str = typer.Option(
        "configio.yaml", "--output", "-o", help="Output settings file"
    ),
    format: str = typer.Option(
        "yaml", "--format", "-f", help="Settings format (yaml/json)"
    )
) -> None:
    """Generate a default settings file."""
    try:
        ConfigLoader().save_config(ApplicationConfig(), output, format)
        typer.echo(f"Default settings saved to {output}")
    except ValueError as e:
        typer.echo(f"Error saving settings: {e}", err=True)
        sys.exit(1)


@cli.command()
def validate_config(
    settings_file: str = typer.Argument(..., help="Settings file to validate")
) -> None:
    """Validate a settings file."""
    try:
        config = ConfigLoader().load_config(settings_file)
        typer.echo(f"Settings file {settings_file} is valid")
        typer.echo(f"Config file: {config.store.file}")
    except (OSError, ValueError, TypeError) as e:
        typer.echo(f"Settings validation failed: {e}", err=True)
        sys.exit(1)


@cli.command()
def write(
    name: str = typer.Option("mypd", "--name", help="Config name field"),
    value: int = typer.Option(500, "--value", help="Config value field"),
    read_only: bool = typer.Option(True, "--read-only/--read-write", help="Config read-only flag"),
    file: Optional[str] = typer.Option(None, "--file", help="Backing config file"),
    settings_file: Optional[str] = typer.Option(None, "--settings", "-s", help="Settings file"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level")
) -> None:
    """Store a simple config and read it back."""
    config = load_settings(settings_file, file, log_level)
    config.watch.enabled = False
    simple = SimpleConfig(name=name, value=value, read_only=read_only)

    try:
        stored = asyncio.run(write_and_read_back(config, simple))
    except ConfigIOError as e:
        typer.echo(f"Error: {e}", err=True)
        sys.exit(1)

    typer.echo("reading back:")
    typer.echo(json.dumps(asdict(stored), indent=2))


@cli.command()
def read(
    file: Optional[str] = typer.Option(None, "--file", help="Backing config file"),
    settings_file: Optional[str] = typer.Option(None, "--settings", "-s", help="Settings file"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level")
) -> None:
    """Print the stored simple config."""
    config = load_settings(settings_file, file, log_level)
    config.watch.enabled = False

    try:
        stored = asyncio.run(read_simple_config(config))
    except ConfigIOError as e:
        typer.echo(f"Error: {e}", err=True)
        sys.exit(1)

    typer.echo(json.dumps(asdict(stored), indent=2))


@cli.command()
def watch(
    name: str = typer.Argument("cli", help="Subscriber name"),
    file: Optional[str] = typer.Option(None, "--file", help="Backing config file"),
    settings_file: Optional[str] = typer.Option(None, "--settings", "-s", help="Settings file"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level")
) -> None:
    """Print the simple config every time the backing file changes."""
    config = load_settings(settings_file, file, log_level)
    config.watch.enabled = True

    try:
        reason = asyncio.run(watch_changes(config, name))
    except KeyboardInterrupt:
        logger.info("Watch interrupted by user")
        return
    except ConfigIOError as e:
        typer.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if reason is StopReason.REMOVED:
        typer.echo("Config file removed, watch stopped", err=True)
        sys.exit(2)


async def write_and_read_back(config: ApplicationConfig, simple: SimpleConfig) -> SimpleConfig:
    async with ConfigFileManager(config) as manager:
        await manager.marshal(simple)
        stored = SimpleConfig()
        await manager.unmarshal(stored)
        return stored


async def read_simple_config(config: ApplicationConfig) -> SimpleConfig:
    async with ConfigFileManager(config) as manager:
        stored = SimpleConfig()
        await manager.unmarshal(stored)
        return stored


async def watch_changes(config: ApplicationConfig, name: str) -> Optional[StopReason]:
    """
    Watch the backing file until it is removed.

    Returns:
        Why the watch stopped
    """
    async with ConfigFileManager(config) as manager:
        async def on_change(cancel: asyncio.Event, data: Any, err: Optional[BaseException]) -> None:
            if err is not None:
                logger.error(f"Subscriber '{name}' failed: {err}")

        channel = manager.watch(name, None, on_change)
        typer.echo(f"Watching {manager.store.path} as '{name}'")

        printer = asyncio.create_task(print_changes(manager, channel))
        try:
            return await manager.wait_watch_stopped()
        finally:
            printer.cancel()


async def print_changes(manager: ConfigFileManager, channel: NotifyChannel) -> None:
    async for _ in channel:
        current = SimpleConfig()
        try:
            await manager.unmarshal(current)
        except ConfigKeyError:
            typer.echo("config changed (no simple config stored)")
            continue
        except ConfigIOError as e:
            # Caught mid-write; the completing write produces another change.
            logger.warning(f"Could not read changed config: {e}")
            continue
        typer.echo(f"config changed: {json.dumps(asdict(current))}")


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
