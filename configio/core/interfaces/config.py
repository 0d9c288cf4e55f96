"""
Config management interfaces.

Clients that only need part of the store's behavior should depend on the
narrowest interface: readers on ``IConfigReader``, writers on
``IConfigWriter``, and so on. ``IConfigManager`` combines all of them.
"""

from abc import ABC, abstractmethod
from typing import Any

from ..domain.channel import NotifyChannel
from ..domain.subscription import WatchCallback


class Marshaler(ABC):
    """A config type that can be stored under a key in the backing file."""

    @abstractmethod
    def key(self) -> str:
        """Key under which this config is stored."""
        pass

    @abstractmethod
    def marshal(self) -> bytes:
        """Serialize the config to bytes."""
        pass

    @abstractmethod
    def unmarshal(self, data: bytes) -> None:
        """Populate the config in place from bytes."""
        pass


class IConfigReader(ABC):
    """Read access to config params."""

    @abstractmethod
    async def unmarshal(self, config: Marshaler) -> None:
        """
        Read the stored value for ``config.key()`` into ``config``.

        Raises:
            ConfigKeyError: If the key is empty or has no stored data
            StoreError: If the backing file cannot be read
        """
        pass


class IConfigWriter(ABC):
    """Write access to config params."""

    @abstractmethod
    async def marshal(self, config: Marshaler) -> None:
        """
        Serialize ``config`` and store it under ``config.key()``.

        Raises:
            StoreError: If the backing file cannot be written
        """
        pass


class IConfigReadWriter(IConfigReader, IConfigWriter):
    """Read and write access without watching."""
    pass


class IConfigWatcher(ABC):
    """
    Watch access to config changes.

    A registered callback runs on every change. If it reports an error it is
    called once more with that error and removed from the registry.
    """

    @abstractmethod
    def watch(self, name: str, user_data: Any, callback: WatchCallback) -> NotifyChannel:
        """
        Register ``callback`` under ``name``.

        Returns:
            Channel that receives one token per change notification
        """
        pass


class IConfigManager(IConfigReadWriter, IConfigWatcher):
    """Full config management: read, write and watch."""
    pass
