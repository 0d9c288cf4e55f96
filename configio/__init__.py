"""
configio - file-backed configuration store with change notifications.

Config values are stored under keys in a single file. Subscribers register
a callback and receive a token on their channel whenever the file changes;
a subscriber whose callback fails is told about the failure once and then
dropped.
"""

__version__ = "0.1.0"

from .core.domain.channel import NotifyChannel
from .core.domain.events import ChangeEvent, ChangeKind
from .core.domain.subscription import Subscription, WatchCallback
from .core.exceptions import (
    ConfigIOError,
    StoreError,
    ConfigKeyError,
    ConfigFormatError,
    CallbackError,
    DeliveryTimeoutError,
    WatchFacilityError,
    TerminalWatchError,
    ChannelClosedError,
)
from .core.interfaces.config import (
    Marshaler,
    IConfigReader,
    IConfigWriter,
    IConfigReadWriter,
    IConfigWatcher,
    IConfigManager,
)
from .core.services.dispatcher import StopReason
from .application.manager import ConfigFileManager
from .application.factory import new_manager, new_reader, new_writer, new_read_writer, new_watcher
from .infrastructure.config.models import ApplicationConfig
from .simpleconfig import SimpleConfig

__all__ = [
    "NotifyChannel",
    "ChangeEvent",
    "ChangeKind",
    "Subscription",
    "WatchCallback",
    "ConfigIOError",
    "StoreError",
    "ConfigKeyError",
    "ConfigFormatError",
    "CallbackError",
    "DeliveryTimeoutError",
    "WatchFacilityError",
    "TerminalWatchError",
    "ChannelClosedError",
    "Marshaler",
    "IConfigReader",
    "IConfigWriter",
    "IConfigReadWriter",
    "IConfigWatcher",
    "IConfigManager",
    "StopReason",
    "ConfigFileManager",
    "new_manager",
    "new_reader",
    "new_writer",
    "new_read_writer",
    "new_watcher",
    "ApplicationConfig",
    "SimpleConfig",
]
