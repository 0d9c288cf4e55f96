"""
Change source interface consumed by the dispatcher.
"""

from abc import ABC, abstractmethod

from ..domain.events import ChangeEvent


class IChangeSource(ABC):
    """Producer of change events for a single watched path."""

    @abstractmethod
    async def start(self) -> None:
        """Start observing the path."""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Stop observing; no events are emitted afterwards."""
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """Check if the source is currently observing."""
        pass

    @abstractmethod
    async def get(self) -> ChangeEvent:
        """Wait for and return the next event."""
        pass
