"""
Config file manager.

Facade over the store, the subscription registry and the dispatcher: reads
and writes keyed config values in the backing file and notifies registered
watchers when the file changes.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from ..core.domain.channel import NotifyChannel
from ..core.domain.subscription import WatchCallback
from ..core.exceptions import ConfigFormatError, ConfigIOError, ConfigKeyError, StoreError, TerminalWatchError
from ..core.interfaces.config import IConfigManager, Marshaler
from ..core.interfaces.lifecycle import IComponent
from ..core.interfaces.watch import IChangeSource
from ..core.services.dispatcher import Dispatcher, StopReason
from ..core.services.registry import SubscriptionRegistry
from ..infrastructure.config.loader import merge_configs
from ..infrastructure.config.models import ApplicationConfig
from ..infrastructure.storage.codec import Document, decode_document, encode_document
from ..infrastructure.storage.store import FileStore
from ..infrastructure.watch.source import create_change_source

logger = logging.getLogger(__name__)


class ConfigFileManager(IComponent, IConfigManager):
    """
    Config manager backed by a single file on disk.

    Writes are serialized by an internal lock; reads are not. Every write to
    the file, from this process or any other, is picked up by the change
    source and fanned out to the registered watchers.

    Args:
        config: Store settings; defaults to ``ApplicationConfig()``
        cancel: Process-wide cancellation signal shared with callbacks.
            A private one is created when omitted.
        change_source: Event producer to use instead of one built from
            the watch settings
    """

    def __init__(
        self,
        config: Optional[ApplicationConfig] = None,
        cancel: Optional[asyncio.Event] = None,
        change_source: Optional[IChangeSource] = None
    ) -> None:
        self._config = config or ApplicationConfig()
        self._store = FileStore(self._config.store.file)
        self._registry = SubscriptionRegistry()
        self._owns_cancel = cancel is None
        self._cancel = cancel if cancel is not None else asyncio.Event()
        self._source = change_source
        self._owns_source = change_source is None
        self._dispatcher: Optional[Dispatcher] = None
        self._watch_task: Optional[asyncio.Task[StopReason]] = None
        self._write_lock = asyncio.Lock()
        self._started = False

    @property
    def name(self) -> str:
        return "ConfigFileManager"

    @property
    def version(self) -> str:
        return "1.0.0"

    @property
    def config(self) -> ApplicationConfig:
        return self._config

    @property
    def store(self) -> FileStore:
        return self._store

    @property
    def registry(self) -> SubscriptionRegistry:
        return self._registry

    @property
    def dispatcher(self) -> Optional[Dispatcher]:
        return self._dispatcher

    @property
    def cancel_event(self) -> asyncio.Event:
        """Cancellation signal handed to every watch callback."""
        return self._cancel

    @property
    def is_watching(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    async def start(self) -> None:
        """Bootstrap the backing file and start watching it."""
        if self._started:
            return

        logger.info(f"Starting config manager for {self._store.path}")

        if self._config.store.create_if_missing:
            await self._store.ensure_exists()
        elif not await self._store.exists():
            raise StoreError(f"Config file not found: {self._store.path}", str(self._store.path))

        if self._owns_cancel and self._cancel.is_set():
            # Left set by a previous stop.
            self._cancel = asyncio.Event()
        self._dispatcher = None
        self._watch_task = None

        if self._config.watch.enabled:
            await self._start_watch()

        self._started = True
        logger.info("Config manager started")

    async def stop(self) -> None:
        """Stop watching and unwind in-flight notifications."""
        if not self._started:
            return

        logger.info("Stopping config manager")

        if self._owns_cancel:
            self._cancel.set()

        if self._watch_task is not None:
            if not self._watch_task.done():
                self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error(f"Watch loop failed: {e}")

        if self._dispatcher is not None:
            await self._dispatcher.shutdown()

        if self._source is not None:
            await self._source.stop()

        self._started = False
        logger.info("Config manager stopped")

    async def close(self) -> None:
        await self.stop()

    async def configure(self, config: Dict[str, Any]) -> None:
        """
        Apply settings overrides. Only allowed while stopped.

        Raises:
            RuntimeError: If the manager is running
        """
        if self._started:
            raise RuntimeError("Cannot reconfigure a running config manager")

        merged = merge_configs(self._config.to_dict(), config)
        self._config = ApplicationConfig.from_dict(merged)
        self._store = FileStore(self._config.store.file)
        if self._owns_source:
            self._source = None

    async def check_health(self) -> Dict[str, Any]:
        source_running = self._source.is_running() if self._source is not None else False
        return {
            'healthy': self._started and (not self._config.watch.enabled or self.is_watching),
            'status': 'running' if self._started else 'stopped',
            'details': {
                'config_file': str(self._store.path),
                'watching': self.is_watching,
                'source_running': source_running,
                'subscriptions_count': len(self._registry),
                'dispatcher': self._dispatcher.metrics if self._dispatcher else {},
            }
        }

    def watch(self, name: str, user_data: Any, callback: WatchCallback) -> NotifyChannel:
        """
        Register a callback to run on config changes.

        Re-registering ``name`` supersedes the previous registration and
        closes its channel. A callback that reports an error is called once
        more with that error and dropped; re-registering it is up to the
        caller.

        Returns:
            Channel receiving one token per change notification
        """
        return self._registry.register(name, user_data, callback)

    async def marshal(self, config: Marshaler) -> None:
        """Serialize ``config`` and store it under its key."""
        key = self._require_key(config)

        try:
            data = config.marshal()
        except ConfigIOError:
            raise
        except Exception as e:
            raise ConfigFormatError(f"Cannot marshal config '{key}': {e}")

        async with self._write_lock:
            document = await self._read_document()
            document[key] = data
            await self._store.write(encode_document(document))

        logger.debug(f"Stored config '{key}' in {self._store.path}")

    async def unmarshal(self, config: Marshaler) -> None:
        """Read the stored value for ``config.key()`` into ``config``."""
        key = self._require_key(config)
        document = await self._read_document()

        if key not in document:
            logger.error(f"No data available for key '{key}' in {self._store.path}")
            raise ConfigKeyError("no data available", key)

        try:
            config.unmarshal(document[key])
        except ConfigIOError:
            raise
        except Exception as e:
            raise ConfigFormatError(f"Cannot unmarshal config '{key}': {e}")

    async def keys(self) -> List[str]:
        """Keys currently stored in the backing file."""
        return list(await self._read_document())

    async def wait_watch_stopped(self, raise_on_removed: bool = False) -> Optional[StopReason]:
        """
        Wait until the watch loop ends.

        Returns:
            Why the loop stopped, or None if it was never started

        Raises:
            TerminalWatchError: If the file was removed and ``raise_on_removed``
        """
        if self._watch_task is None:
            return None

        try:
            reason = await asyncio.shield(self._watch_task)
        except asyncio.CancelledError:
            if not self._watch_task.cancelled():
                raise
            reason = StopReason.CANCELLED

        if reason is StopReason.REMOVED and raise_on_removed:
            raise TerminalWatchError(str(self._store.path))
        return reason

    async def __aenter__(self) -> "ConfigFileManager":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    async def _start_watch(self) -> None:
        watch_config = self._config.watch
        if self._source is None:
            self._source = create_change_source(self._store.path, watch_config)

        await self._source.start()

        self._dispatcher = Dispatcher(
            self._registry,
            self._source,
            self._cancel,
            max_concurrency=watch_config.max_concurrency,
            delivery_timeout=watch_config.delivery_timeout
        )
        self._watch_task = asyncio.create_task(self._run_watch(self._dispatcher))

    async def _run_watch(self, dispatcher: Dispatcher) -> StopReason:
        reason = await dispatcher.run()
        if reason is StopReason.REMOVED:
            logger.warning(f"Config file removed, watch stopped: {self._store.path}")
            if self._source is not None:
                await self._source.stop()
        return reason

    async def _read_document(self) -> Document:
        try:
            data = await self._store.read()
        except FileNotFoundError:
            raise StoreError(f"Config file not found: {self._store.path}", str(self._store.path))
        return decode_document(data)

    @staticmethod
    def _require_key(config: Marshaler) -> str:
        key = config.key()
        if not key:
            raise ConfigKeyError("config key is empty")
        return key
