"""
Application layer: the config file manager and its factories.
"""

from .manager import ConfigFileManager
from .factory import (
    build_config,
    new_manager,
    new_reader,
    new_writer,
    new_read_writer,
    new_watcher,
)

__all__ = [
    "ConfigFileManager",
    "build_config",
    "new_manager",
    "new_reader",
    "new_writer",
    "new_read_writer",
    "new_watcher",
]
