"""
Dispatcher: fans change events out to notification sessions.

One long-lived task reads events from a change source. Every CHANGED event
snapshots the registry and starts one NotificationSession per subscriber,
all concurrently. Sessions for successive events are independent; nothing is
queued per subscriber.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from ..domain.events import ChangeEvent, ChangeKind
from ..interfaces.watch import IChangeSource
from .registry import SubscriptionRegistry
from .session import NotificationSession, SessionOutcome

logger = logging.getLogger(__name__)


class StopReason(Enum):
    """Why the dispatcher's event loop ended."""
    REMOVED = "removed"
    CANCELLED = "cancelled"


class Dispatcher:
    """
    Translates change events into bursts of concurrent notification sessions.

    Args:
        registry: Subscription registry to snapshot on each change
        source: Producer of change events for the backing file
        cancel: Process-wide cancellation signal
        max_concurrency: Optional bound on sessions running at once
        delivery_timeout: Optional per-session deadline
    """

    def __init__(
        self,
        registry: SubscriptionRegistry,
        source: IChangeSource,
        cancel: asyncio.Event,
        max_concurrency: Optional[int] = None,
        delivery_timeout: Optional[float] = None
    ) -> None:
        if max_concurrency is not None and max_concurrency <= 0:
            raise ValueError(f"max_concurrency must be positive, got {max_concurrency}")

        self._registry = registry
        self._source = source
        self._cancel = cancel
        self._max_concurrency = max_concurrency
        self._delivery_timeout = delivery_timeout
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._tasks: Set["asyncio.Task[Any]"] = set()
        self._running = False

        self._metrics: Dict[str, int] = {
            'events_received': 0,
            'watch_errors': 0,
            'sessions_started': 0,
            'sessions_acknowledged': 0,
            'sessions_removed': 0,
            'sessions_cancelled': 0,
        }

    @property
    def metrics(self) -> Dict[str, int]:
        return dict(self._metrics)

    @property
    def in_flight(self) -> int:
        """Number of session and error-report tasks still running."""
        return len(self._tasks)

    def is_running(self) -> bool:
        return self._running

    async def run(self) -> StopReason:
        """
        Consume change events until the file is removed or cancel fires.

        Returns:
            Reason the loop stopped
        """
        logger.info("Starting watch")
        self._running = True
        try:
            while True:
                event = await self._next_event()
                if event is None:
                    logger.info("Cancelled, stopping watch")
                    return StopReason.CANCELLED

                self._metrics['events_received'] += 1

                if event.kind is ChangeKind.CHANGED:
                    logger.info(f"Config file changed: {event.path}")
                    self.dispatch()
                elif event.kind is ChangeKind.REMOVED:
                    logger.info(f"Config file removed, stopping watch: {event.path}")
                    return StopReason.REMOVED
                else:
                    self._metrics['watch_errors'] += 1
                    logger.error(f"Watch error: {event.error}")
        finally:
            self._running = False

    def dispatch(self) -> List["asyncio.Task[SessionOutcome]"]:
        """
        Start one session per currently registered subscriber.

        Returns:
            The session tasks started
        """
        tasks = []
        for name, subscription in self._registry.snapshot():
            session = NotificationSession(
                subscription,
                self._registry,
                self._cancel,
                delivery_timeout=self._delivery_timeout,
                track_task=self._track
            )
            task = asyncio.ensure_future(self._run_session(session))
            self._track(task)
            tasks.append(task)

        self._metrics['sessions_started'] += len(tasks)
        return tasks

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Cancel and await every in-flight session and error report."""
        tasks = list(self._tasks)
        if not tasks:
            return

        for task in tasks:
            task.cancel()

        done, pending = await asyncio.wait(tasks, timeout=timeout)
        if pending:
            logger.warning(f"{len(pending)} notification tasks did not stop within {timeout}s")
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.error(f"Notification task failed: {task.exception()}")

    async def _next_event(self) -> Optional[ChangeEvent]:
        """Wait for the next event, or None if cancel fires first."""
        if self._cancel.is_set():
            return None

        getter = asyncio.ensure_future(self._source.get())
        cancelled = asyncio.ensure_future(self._cancel.wait())
        try:
            done, _ = await asyncio.wait(
                {getter, cancelled},
                return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            cancelled.cancel()
            if not getter.done():
                getter.cancel()

        if getter in done and not self._cancel.is_set():
            return getter.result()
        return None

    async def _run_session(self, session: NotificationSession) -> SessionOutcome:
        if self._semaphore is None and self._max_concurrency is not None:
            self._semaphore = asyncio.Semaphore(self._max_concurrency)

        if self._semaphore is not None:
            async with self._semaphore:
                outcome = await session.run()
        else:
            outcome = await session.run()

        self._metrics[f'sessions_{outcome.value}'] += 1
        return outcome

    def _track(self, task: "asyncio.Task[Any]") -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
