"""
Subscription registry.

Owns every Subscription. All access goes through one lock; dispatch works on
snapshots so that slow callbacks never run while the lock is held.
"""

import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from ..domain.channel import NotifyChannel
from ..domain.subscription import Subscription, WatchCallback

logger = logging.getLogger(__name__)


class SubscriptionRegistry:
    """Lock-guarded mapping from subscriber name to subscription."""

    def __init__(self) -> None:
        self._subscriptions: Dict[str, Subscription] = {}
        self._lock = threading.Lock()

    def register(self, name: str, user_data: Any, callback: WatchCallback) -> NotifyChannel:
        """
        Insert or replace the subscription under ``name``.

        A replaced subscription's channel is closed, so readers still blocked
        on it wake up with ``ChannelClosedError`` instead of hanging.

        Returns:
            Channel the caller reads change tokens from
        """
        subscription = Subscription(
            name=name,
            callback=callback,
            user_data=user_data,
            channel=NotifyChannel(name),
        )

        with self._lock:
            previous = self._subscriptions.get(name)
            self._subscriptions[name] = subscription

        if previous is not None:
            logger.info(f"Subscription '{name}' superseded, closing previous channel")
            previous.channel.close()
        else:
            logger.debug(f"Registered subscription '{name}'")

        return subscription.channel

    def snapshot(self) -> List[Tuple[str, Subscription]]:
        """Return a point-in-time copy of the registry entries."""
        with self._lock:
            return list(self._subscriptions.items())

    def remove(self, name: str, expected: Optional[Subscription] = None) -> bool:
        """
        Remove the entry under ``name``. Removing an absent name is a no-op.

        Args:
            name: Subscriber name
            expected: Only remove if the entry is still this subscription

        Returns:
            True if an entry was removed
        """
        with self._lock:
            current = self._subscriptions.get(name)
            if current is None:
                return False
            if expected is not None and current is not expected:
                return False
            del self._subscriptions[name]

        logger.debug(f"Removed subscription '{name}'")
        return True

    def get(self, name: str) -> Optional[Subscription]:
        """Get the subscription registered under ``name``, if any."""
        with self._lock:
            return self._subscriptions.get(name)

    def names(self) -> List[str]:
        with self._lock:
            return list(self._subscriptions)

    def clear(self) -> None:
        """Remove every entry and close their channels."""
        with self._lock:
            removed = list(self._subscriptions.values())
            self._subscriptions.clear()

        for subscription in removed:
            subscription.channel.close()

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._subscriptions

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscriptions)
