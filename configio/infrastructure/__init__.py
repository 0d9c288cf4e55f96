"""
Infrastructure layer: the backing file, its observation, settings and logging.
"""

from .storage.store import FileStore
from .watch.source import ChangeSource, create_change_source
from .logging.setup import setup_logging

__all__ = [
    "FileStore",
    "ChangeSource",
    "create_change_source",
    "setup_logging",
]
