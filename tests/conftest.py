"""
Shared fixtures for the configio test suite.
"""

import asyncio
from typing import Any, Callable, List, Optional

import pytest

from configio.core.services.registry import SubscriptionRegistry


class RecordingCallback:
    """
    Watch callback that records its invocations.

    ``results`` are handed out one per invocation as the status value;
    once exhausted every invocation reports success.
    """

    def __init__(
        self,
        results: Optional[List[Optional[BaseException]]] = None,
        delay: float = 0.0,
        hang: bool = False
    ) -> None:
        self.calls: List[Optional[BaseException]] = []
        self.user_data: List[Any] = []
        self._results = list(results or [])
        self.delay = delay
        self.hang = hang

    def __call__(self, cancel: asyncio.Event, data: Any, last_error: Optional[BaseException]) -> Any:
        self.calls.append(last_error)
        self.user_data.append(data)
        result = self._results.pop(0) if self._results else None
        return self._status(result)

    async def _status(self, result: Optional[BaseException]) -> Optional[BaseException]:
        if self.hang:
            await asyncio.Event().wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        return result

    @property
    def call_count(self) -> int:
        return len(self.calls)


@pytest.fixture
def make_callback() -> Callable[..., RecordingCallback]:
    """Factory for recording watch callbacks."""
    return RecordingCallback


@pytest.fixture
def registry() -> SubscriptionRegistry:
    return SubscriptionRegistry()


@pytest.fixture
def cancel() -> asyncio.Event:
    return asyncio.Event()


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.01) -> None:
    """Poll ``predicate`` until it holds or fail after ``timeout`` seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(interval)


@pytest.fixture
def wait_for_condition() -> Callable[..., Any]:
    return wait_until
