"""
Services implementing the watch/notification protocol.
"""

from .registry import SubscriptionRegistry
from .session import NotificationSession, SessionOutcome, SessionState
from .dispatcher import Dispatcher, StopReason

__all__ = [
    "SubscriptionRegistry",
    "NotificationSession",
    "SessionOutcome",
    "SessionState",
    "Dispatcher",
    "StopReason",
]
