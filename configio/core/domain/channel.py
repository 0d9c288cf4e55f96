"""
Unbuffered notification channel.

A token sent on the channel is handed directly to one waiting receiver;
``send`` does not return until a receiver has taken the token. This is the
backpressure point between the dispatcher and a slow subscriber.
"""

import asyncio
from collections import deque
from typing import Deque, Optional

from ..exceptions import ChannelClosedError


class NotifyChannel:
    """
    Rendezvous channel carrying empty "config changed" tokens.

    Sends and receives must run on the event loop that runs the watch
    machinery. ``close`` may be called from any thread.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._senders: Deque["asyncio.Future[None]"] = deque()
        self._receivers: Deque["asyncio.Future[None]"] = deque()
        self._closed = False
        self._delivered = 0
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def closed(self) -> bool:
        """Whether the channel has been closed."""
        return self._closed

    @property
    def delivered(self) -> int:
        """Number of tokens handed to receivers so far."""
        return self._delivered

    async def send(self) -> None:
        """
        Send one token and wait until a receiver takes it.

        Raises:
            ChannelClosedError: If the channel is or becomes closed
        """
        if self._closed:
            raise ChannelClosedError(self.name)

        if self._hand_over(self._receivers):
            return

        sender: "asyncio.Future[None]" = self._bind_loop().create_future()
        self._senders.append(sender)
        try:
            await sender
        except asyncio.CancelledError:
            self._discard(self._senders, sender)
            raise

    async def receive(self) -> None:
        """
        Wait for the next token.

        Raises:
            ChannelClosedError: If the channel is or becomes closed
        """
        if self._closed:
            raise ChannelClosedError(self.name)

        if self._hand_over(self._senders):
            return

        receiver: "asyncio.Future[None]" = self._bind_loop().create_future()
        self._receivers.append(receiver)
        try:
            await receiver
        except asyncio.CancelledError:
            self._discard(self._receivers, receiver)
            raise

    def close(self) -> None:
        """Close the channel, failing every pending and future send or receive."""
        if self._closed:
            return

        self._closed = True

        loop = self._loop
        if loop is None or loop.is_closed() or _running_loop() is loop:
            self._fail_waiters()
        else:
            loop.call_soon_threadsafe(self._fail_waiters)

    def __aiter__(self) -> "NotifyChannel":
        return self

    async def __anext__(self) -> None:
        try:
            await self.receive()
        except ChannelClosedError:
            raise StopAsyncIteration

    def _fail_waiters(self) -> None:
        for waiters in (self._senders, self._receivers):
            while waiters:
                waiter = waiters.popleft()
                if not waiter.done():
                    waiter.set_exception(ChannelClosedError(self.name))

    def _bind_loop(self) -> asyncio.AbstractEventLoop:
        loop = asyncio.get_running_loop()
        self._loop = loop
        return loop

    def _hand_over(self, waiters: Deque["asyncio.Future[None]"]) -> bool:
        """Complete the first live waiter on the other side, if any."""
        while waiters:
            waiter = waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                self._delivered += 1
                return True
        return False

    @staticmethod
    def _discard(waiters: Deque["asyncio.Future[None]"], waiter: "asyncio.Future[None]") -> None:
        try:
            waiters.remove(waiter)
        except ValueError:
            pass

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"NotifyChannel(name={self.name!r}, {state}, delivered={self._delivered})"


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None

