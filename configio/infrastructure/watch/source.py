"""
Change sources for the backing file.

Event producers that feed the dispatcher. The watchdog-based source runs
the OS file-watch facility on its own thread and hands events to the event
loop thread-safely; the polling source is a fallback for file systems that
do not deliver native events.
"""

import asyncio
import logging
import os
from collections import deque
from pathlib import Path
from typing import Any, Deque, Optional, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ...core.domain.events import ChangeEvent, ChangeKind
from ...core.exceptions import WatchFacilityError
from ...core.interfaces.watch import IChangeSource
from ..config.models import WatchConfig

logger = logging.getLogger(__name__)


class ChangeSource(IChangeSource):
    """
    Queue-backed change source.

    Used directly, events are produced by calling ``emit``. Subclasses hook
    ``_start``/``_stop`` to attach a real observation facility. A burst of
    CHANGED events arriving within ``debounce_delay`` of each other is
    delivered as one.
    """

    def __init__(self, path: Union[str, Path] = "", debounce_delay: float = 0.0) -> None:
        if debounce_delay < 0:
            raise ValueError(f"debounce_delay cannot be negative, got {debounce_delay}")

        self.path = Path(path).expanduser().resolve() if path else Path()
        self.debounce_delay = debounce_delay

        self._queue: Optional[asyncio.Queue[ChangeEvent]] = None
        self._held: Deque[ChangeEvent] = deque()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._running = False

    async def start(self) -> None:
        """Start producing events."""
        if self._running:
            logger.warning(f"Change source already running: {self.path}")
            return

        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._held.clear()
        self._running = True

        try:
            await self._start()
        except Exception:
            self._running = False
            raise

    async def stop(self) -> None:
        """Stop producing events. Pending events are discarded."""
        if not self._running:
            return

        self._running = False
        await self._stop()

    def is_running(self) -> bool:
        return self._running

    def emit(self, event: ChangeEvent) -> None:
        """Queue an event. Must be called on the event loop thread."""
        if not self._running or self._queue is None:
            return
        self._queue.put_nowait(event)

    def emit_threadsafe(self, event: ChangeEvent) -> None:
        """Queue an event from a foreign thread."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(self.emit, event)
        except RuntimeError:
            # Loop shut down between the check and the call.
            pass

    async def get(self) -> ChangeEvent:
        """Wait for the next event, coalescing bursts of CHANGED events."""
        if self._held:
            return self._held.popleft()

        if self._queue is None:
            raise RuntimeError("Change source is not started")

        event = await self._queue.get()
        if event.kind is ChangeKind.CHANGED and self.debounce_delay > 0:
            await self._coalesce()
        return event

    async def _coalesce(self) -> None:
        """Swallow follow-up CHANGED events until the file has been quiet."""
        assert self._queue is not None
        while True:
            try:
                follow_up = await asyncio.wait_for(self._queue.get(), self.debounce_delay)
            except asyncio.TimeoutError:
                return

            if follow_up.kind is not ChangeKind.CHANGED:
                self._held.append(follow_up)
                return

    async def _start(self) -> None:
        pass

    async def _stop(self) -> None:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.path)!r}, running={self._running})"


class ConfigFileHandler(FileSystemEventHandler):
    """Maps watchdog events for one file onto change events."""

    def __init__(self, config_path: Path, source: ChangeSource) -> None:
        super().__init__()
        self.config_path = config_path
        self._source = source

    def dispatch(self, event: FileSystemEvent) -> None:
        try:
            super().dispatch(event)
        except Exception as e:
            logger.error(f"Error handling file system event {event!r}: {e}")
            self._source.emit_threadsafe(
                ChangeEvent.watch_error(WatchFacilityError(str(e)), str(self.config_path)))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._matches(event.src_path):
            logger.debug(f"Config file modified: {self.config_path}")
            self._changed()

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._matches(event.src_path):
            logger.debug(f"Config file created: {self.config_path}")
            self._changed()

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        if self._matches(event.src_path) or self._matches(event.dest_path):
            logger.debug(f"Config file renamed: {event.src_path} -> {event.dest_path}")
            self._changed()

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._matches(event.src_path):
            logger.debug(f"Config file deleted: {self.config_path}")
            self._source.emit_threadsafe(ChangeEvent.removed(str(self.config_path)))

    def _changed(self) -> None:
        self._source.emit_threadsafe(ChangeEvent.changed(str(self.config_path)))

    def _matches(self, path: Any) -> bool:
        if not path:
            return False
        return Path(os.fsdecode(path)) == self.config_path


class WatchdogChangeSource(ChangeSource):
    """Change source using the watchdog library's native observers."""

    def __init__(self, path: Union[str, Path], debounce_delay: float = 0.05) -> None:
        super().__init__(path, debounce_delay)
        self._observer: Optional[Any] = None
        self._handler: Optional[ConfigFileHandler] = None

    async def _start(self) -> None:
        if not self.path.exists():
            raise WatchFacilityError(f"Config file does not exist: {self.path}")

        try:
            self._handler = ConfigFileHandler(self.path, self)
            self._observer = Observer()
            self._observer.schedule(self._handler, str(self.path.parent), recursive=False)
            self._observer.start()
        except Exception as e:
            logger.error(f"Failed to start file watch: {e}")
            self._observer = None
            self._handler = None
            raise WatchFacilityError(f"Cannot watch {self.path}: {e}")

        logger.info(f"Started watching config file: {self.path}")

    async def _stop(self) -> None:
        observer = self._observer
        self._observer = None
        self._handler = None

        if observer is None:
            return

        try:
            observer.stop()
            await asyncio.get_running_loop().run_in_executor(None, observer.join, 5.0)
        except Exception as e:
            logger.error(f"Error stopping file watch: {e}")

        logger.info(f"Stopped watching config file: {self.path}")

    def is_running(self) -> bool:
        return self._running and self._observer is not None and self._observer.is_alive()


class PollingChangeSource(ChangeSource):
    """
    Fallback change source comparing file mtime and size at a fixed interval.
    """

    def __init__(
        self,
        path: Union[str, Path],
        poll_interval: float = 1.0,
        debounce_delay: float = 0.0
    ) -> None:
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")

        super().__init__(path, debounce_delay)
        self.poll_interval = poll_interval
        self._task: Optional[asyncio.Task[None]] = None
        self._last_signature: Optional[tuple] = None

    async def _start(self) -> None:
        try:
            self._last_signature = self._signature()
        except OSError as e:
            raise WatchFacilityError(f"Cannot poll {self.path}: {e}")

        self._task = asyncio.create_task(self._poll_loop())
        logger.info(f"Started polling config file: {self.path}")

    async def _stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info(f"Stopped polling config file: {self.path}")

    def is_running(self) -> bool:
        return self._running and self._task is not None and not self._task.done()

    def _signature(self) -> tuple:
        stat = self.path.stat()
        return (stat.st_mtime_ns, stat.st_size)

    async def _poll_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.poll_interval)
            try:
                signature = self._signature()
            except FileNotFoundError:
                logger.info(f"Config file vanished: {self.path}")
                self.emit(ChangeEvent.removed(str(self.path)))
                return
            except OSError as e:
                logger.error(f"Error polling config file: {e}")
                self.emit(ChangeEvent.watch_error(WatchFacilityError(str(e)), str(self.path)))
                continue

            if signature != self._last_signature:
                self._last_signature = signature
                logger.debug(f"Config file changed: {self.path}")
                self.emit(ChangeEvent.changed(str(self.path)))


def create_change_source(path: Union[str, Path], config: Optional[WatchConfig] = None) -> ChangeSource:
    """
    Create a change source for ``path``.

    Args:
        path: Backing file to observe
        config: Watch settings; polling is used when ``use_polling`` is set

    Returns:
        Unstarted change source
    """
    config = config or WatchConfig()

    if config.use_polling:
        return PollingChangeSource(
            path,
            poll_interval=config.poll_interval,
            debounce_delay=config.debounce_delay
        )

    return WatchdogChangeSource(path, debounce_delay=config.debounce_delay)
