"""
Factories returning started config managers behind role-specific interfaces.

Readers, writers and read-writers do not watch the file; only
``new_manager`` and ``new_watcher`` start the change source.
"""

import asyncio
from typing import Any, Dict, Optional

from ..core.interfaces.config import (
    IConfigManager, IConfigReader, IConfigReadWriter, IConfigWatcher, IConfigWriter
)
from ..infrastructure.config.loader import merge_configs, set_nested_value
from ..infrastructure.config.models import ApplicationConfig
from .manager import ConfigFileManager

OPTION_PATHS: Dict[str, str] = {
    "file": "store.file",
    "create_if_missing": "store.create_if_missing",
    "use_polling": "watch.use_polling",
    "poll_interval": "watch.poll_interval",
    "debounce_delay": "watch.debounce_delay",
    "delivery_timeout": "watch.delivery_timeout",
    "max_concurrency": "watch.max_concurrency",
}


def build_config(
    base: Optional[ApplicationConfig] = None,
    watch: Optional[bool] = None,
    **options: Any
) -> ApplicationConfig:
    """
    Build settings from keyword options. Option names are case-insensitive.

    Raises:
        TypeError: If ``file`` is not a string or path
        ValueError: If an option is unknown
    """
    overrides: Dict[str, Any] = {}

    for key, value in options.items():
        path = OPTION_PATHS.get(key.lower())
        if path is None:
            raise ValueError(f"Unknown config manager option: {key}")
        if path == "store.file":
            if not isinstance(value, (str, bytes)) and not hasattr(value, "__fspath__"):
                raise TypeError("option value for file should be a string")
            value = str(value)
        set_nested_value(overrides, path, value)

    if watch is not None:
        set_nested_value(overrides, "watch.enabled", watch)

    data = (base or ApplicationConfig()).to_dict()
    return ApplicationConfig.from_dict(merge_configs(data, overrides))


async def _started(
    cancel: Optional[asyncio.Event],
    config: Optional[ApplicationConfig],
    watch: Optional[bool],
    options: Dict[str, Any]
) -> ConfigFileManager:
    manager = ConfigFileManager(build_config(config, watch, **options), cancel=cancel)
    await manager.start()
    return manager


async def new_manager(
    cancel: Optional[asyncio.Event] = None,
    config: Optional[ApplicationConfig] = None,
    **options: Any
) -> IConfigManager:
    """Full config management: read, write and watch."""
    return await _started(cancel, config, None, options)


async def new_reader(
    cancel: Optional[asyncio.Event] = None,
    config: Optional[ApplicationConfig] = None,
    **options: Any
) -> IConfigReader:
    """Read-only access."""
    return await _started(cancel, config, False, options)


async def new_writer(
    cancel: Optional[asyncio.Event] = None,
    config: Optional[ApplicationConfig] = None,
    **options: Any
) -> IConfigWriter:
    """Write-only access."""
    return await _started(cancel, config, False, options)


async def new_read_writer(
    cancel: Optional[asyncio.Event] = None,
    config: Optional[ApplicationConfig] = None,
    **options: Any
) -> IConfigReadWriter:
    """Read and write access without a watch."""
    return await _started(cancel, config, False, options)


async def new_watcher(
    cancel: Optional[asyncio.Event] = None,
    config: Optional[ApplicationConfig] = None,
    **options: Any
) -> IConfigWatcher:
    """Watch-only access."""
    return await _started(cancel, config, True, options)
