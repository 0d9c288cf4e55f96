"""
Notification session: delivers one change to one subscriber.

A session invokes the subscriber's callback, then waits until the subscriber
has both read the change token from its channel and reported a status
through the awaitable the callback returned. A failing subscriber is removed
from the registry and its callback is invoked once more, detached, with the
error it reported.
"""

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Callable, Optional, Set

from ..domain.subscription import Subscription
from ..exceptions import CallbackError, ChannelClosedError, DeliveryTimeoutError
from .registry import SubscriptionRegistry

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Session state machine positions."""
    INVOKING = "invoking"
    RACING = "racing"
    RETRYING = "retrying"
    DONE = "done"
    CANCELLED = "cancelled"


class SessionOutcome(Enum):
    """How a session resolved."""
    ACKNOWLEDGED = "acknowledged"
    REMOVED = "removed"
    CANCELLED = "cancelled"


class NotificationSession:
    """
    Per-subscriber delivery of a single change notification.

    The only early exit is the process-wide ``cancel`` event, which aborts
    the session without touching the registry. An optional
    ``delivery_timeout`` turns a stalled subscriber into a failed one.
    """

    def __init__(
        self,
        subscription: Subscription,
        registry: SubscriptionRegistry,
        cancel: asyncio.Event,
        delivery_timeout: Optional[float] = None,
        track_task: Optional[Callable[["asyncio.Task[Any]"], None]] = None
    ) -> None:
        self.subscription = subscription
        self._registry = registry
        self._cancel = cancel
        self._delivery_timeout = delivery_timeout
        self._track_task = track_task

        self.state = SessionState.INVOKING
        self.delivered = False
        self.acknowledged = False
        self.error: Optional[BaseException] = None
        self.retry_task: Optional["asyncio.Task[None]"] = None

    @property
    def name(self) -> str:
        return self.subscription.name

    async def run(self) -> SessionOutcome:
        """
        Drive the session to resolution.

        Returns:
            ACKNOWLEDGED on success, REMOVED if the subscriber failed and was
            deregistered, CANCELLED if the cancel event fired first
        """
        logger.info(f"Executing callback '{self.name}'")

        self.state = SessionState.INVOKING
        status = self._invoke(None)

        self.state = SessionState.RACING
        if not await self._race(status):
            self.state = SessionState.CANCELLED
            logger.error(f"Cancelled while notifying '{self.name}', returning")
            return SessionOutcome.CANCELLED

        if self.error is None:
            self.state = SessionState.DONE
            logger.info(f"Callback '{self.name}' executed successfully")
            return SessionOutcome.ACKNOWLEDGED

        logger.info(f"Callback '{self.name}' executed unsuccessfully: {self.error}")
        self._start_retry()
        return SessionOutcome.REMOVED

    async def _race(self, status: "asyncio.Future[Any]") -> bool:
        """
        Wait for both the token hand-over and the status value.

        Returns:
            False if cancellation fired before both halves completed
        """
        loop = asyncio.get_running_loop()
        send = asyncio.ensure_future(self.subscription.channel.send())
        cancelled = asyncio.ensure_future(self._cancel.wait())
        pending: Set["asyncio.Future[Any]"] = {send, status}

        deadline: Optional[float] = None
        if self._delivery_timeout is not None:
            deadline = loop.time() + self._delivery_timeout

        try:
            while pending:
                timeout = None if deadline is None else max(0.0, deadline - loop.time())
                done, _ = await asyncio.wait(
                    pending | {cancelled},
                    timeout=timeout,
                    return_when=asyncio.FIRST_COMPLETED
                )

                if cancelled in done:
                    return False

                if not done:
                    self.error = DeliveryTimeoutError(self.name, self._delivery_timeout)
                    logger.warning(str(self.error))
                    return True

                if send in done:
                    pending.discard(send)
                    self._on_delivered(send)

                if status in done:
                    pending.discard(status)
                    self.error = self._status_value(status)
                    self.acknowledged = True

            return True

        finally:
            send.cancel()
            cancelled.cancel()
            if not status.done():
                status.cancel()

    def _on_delivered(self, send: "asyncio.Future[Any]") -> None:
        if send.cancelled():
            return

        error = send.exception()
        if isinstance(error, ChannelClosedError):
            # Superseded registration: nobody is left to read the token.
            logger.debug(f"Channel for '{self.name}' closed, skipping delivery")
        elif error is not None:
            raise error
        else:
            logger.info(f"Callback '{self.name}' received notification")
        self.delivered = True

    def _start_retry(self) -> None:
        """Deregister the subscriber and report its error back to it, detached."""
        self.state = SessionState.RETRYING
        self.subscription.last_error = self.error
        self._registry.remove(self.name, expected=self.subscription)

        self.retry_task = asyncio.ensure_future(self._report_error(self.error))
        if self._track_task is not None:
            self._track_task(self.retry_task)

    async def _report_error(self, error: Optional[BaseException]) -> None:
        status = self._invoke(error)
        cancelled = asyncio.ensure_future(self._cancel.wait())
        try:
            done, _ = await asyncio.wait(
                {status, cancelled},
                return_when=asyncio.FIRST_COMPLETED
            )
            if status in done:
                result = self._status_value(status)
                logger.debug(f"Error report to '{self.name}' completed: {result}")
            else:
                logger.debug(f"Cancelled while reporting error to '{self.name}'")
        finally:
            cancelled.cancel()
            if not status.done():
                status.cancel()
            self.state = SessionState.DONE

    def _invoke(self, last_error: Optional[BaseException]) -> "asyncio.Future[Any]":
        """
        Call the subscriber's callback and return its status as a future.

        A callback that raises, or that returns a plain value instead of an
        awaitable, is resolved immediately with that error or value.
        """
        subscription = self.subscription
        try:
            result = subscription.callback(self._cancel, subscription.user_data, last_error)
        except Exception as e:
            result = e

        if inspect.isawaitable(result):
            return asyncio.ensure_future(result)

        future: "asyncio.Future[Any]" = asyncio.get_running_loop().create_future()
        future.set_result(result)
        return future

    def _status_value(self, status: "asyncio.Future[Any]") -> Optional[BaseException]:
        """Normalize a completed status future into None or an error."""
        if status.cancelled():
            return CallbackError(self.name, "status cancelled")

        error = status.exception()
        if error is not None:
            return error

        value = status.result()
        if value is None or isinstance(value, BaseException):
            return value
        return CallbackError(self.name, value)

    def __repr__(self) -> str:
        return f"NotificationSession(name={self.name!r}, state={self.state.value})"
