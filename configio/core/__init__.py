"""
Core module: domain models, interfaces and the watch/notification protocol.

Nothing in here touches the file system; the backing file and its watch
facility are plugged in from the infrastructure layer.
"""

from .domain.channel import NotifyChannel
from .domain.events import ChangeEvent, ChangeKind
from .domain.subscription import Subscription, WatchCallback
from .interfaces.config import Marshaler, IConfigManager
from .services.registry import SubscriptionRegistry
from .services.dispatcher import Dispatcher, StopReason

__all__ = [
    "NotifyChannel",
    "ChangeEvent",
    "ChangeKind",
    "Subscription",
    "WatchCallback",
    "Marshaler",
    "IConfigManager",
    "SubscriptionRegistry",
    "Dispatcher",
    "StopReason",
]
