"""
Subscription model for config change watchers.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from .channel import NotifyChannel


WatchCallback = Callable[[asyncio.Event, Any, Optional[BaseException]],
                         Awaitable[Optional[BaseException]]]
"""
Callback signature: ``callback(cancel, user_data, last_error)``.

The callback must return promptly with an awaitable (coroutine, task or
future) whose result is ``None`` on success or an exception on failure.
An awaitable that raises is treated as a failure carrying that exception.
"""


@dataclass
class Subscription:
    """One registered watcher, owned by the subscription registry."""

    name: str
    """Unique registry key."""

    callback: WatchCallback
    """Function invoked on every change and once more after a failure."""

    user_data: Any = None
    """Opaque value passed through to the callback."""

    channel: NotifyChannel = field(default_factory=NotifyChannel)
    """Channel the subscriber reads change tokens from."""

    last_error: Optional[BaseException] = None
    """Most recent error reported by the callback."""

    created_at: float = field(default_factory=time.time)
    """Unix timestamp of registration."""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Subscription name cannot be empty")
        if not callable(self.callback):
            raise TypeError("Subscription callback must be callable")
        if not self.channel.name:
            self.channel.name = self.name
