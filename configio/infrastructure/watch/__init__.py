"""
File observation: change sources feeding the dispatcher.
"""

from .source import (
    ChangeSource,
    ConfigFileHandler,
    WatchdogChangeSource,
    PollingChangeSource,
    create_change_source,
)

__all__ = [
    "ChangeSource",
    "ConfigFileHandler",
    "WatchdogChangeSource",
    "PollingChangeSource",
    "create_change_source",
]
