"""
Domain models for the watch/notification protocol.
"""

from .channel import NotifyChannel
from .events import ChangeEvent, ChangeKind
from .subscription import Subscription, WatchCallback

__all__ = [
    "NotifyChannel",
    "ChangeEvent",
    "ChangeKind",
    "Subscription",
    "WatchCallback",
]
