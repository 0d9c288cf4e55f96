"""
Tests for change sources and the watchdog event handler.
"""

import asyncio
import os
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from watchdog.events import (
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from configio.core.domain.events import ChangeEvent, ChangeKind
from configio.core.exceptions import WatchFacilityError
from configio.infrastructure.config.models import WatchConfig
from configio.infrastructure.watch.source import (
    ChangeSource,
    ConfigFileHandler,
    PollingChangeSource,
    WatchdogChangeSource,
    create_change_source,
)


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.json"
    path.write_text("{}")
    return path


class TestChangeSource:
    """Test cases for the queue-backed ChangeSource."""

    @pytest.mark.asyncio
    async def test_emit_and_get(self) -> None:
        source = ChangeSource()
        await source.start()

        source.emit(ChangeEvent.changed("/a"))
        event = await asyncio.wait_for(source.get(), timeout=1.0)

        assert event.kind is ChangeKind.CHANGED
        assert event.path == "/a"
        await source.stop()

    @pytest.mark.asyncio
    async def test_get_before_start(self) -> None:
        with pytest.raises(RuntimeError, match="not started"):
            await ChangeSource().get()

    @pytest.mark.asyncio
    async def test_emit_while_stopped_is_dropped(self) -> None:
        source = ChangeSource()
        source.emit(ChangeEvent.changed())
        await source.start()

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(source.get(), timeout=0.05)
        await source.stop()

    @pytest.mark.asyncio
    async def test_burst_is_coalesced(self) -> None:
        """Rapid CHANGED events collapse into one."""
        source = ChangeSource(debounce_delay=0.05)
        await source.start()

        for _ in range(5):
            source.emit(ChangeEvent.changed())

        event = await asyncio.wait_for(source.get(), timeout=1.0)
        assert event.kind is ChangeKind.CHANGED
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(source.get(), timeout=0.1)
        await source.stop()

    @pytest.mark.asyncio
    async def test_other_events_survive_coalescing(self) -> None:
        source = ChangeSource(debounce_delay=0.05)
        await source.start()

        source.emit(ChangeEvent.changed())
        source.emit(ChangeEvent.changed())
        source.emit(ChangeEvent.removed())

        first = await asyncio.wait_for(source.get(), timeout=1.0)
        second = await asyncio.wait_for(source.get(), timeout=1.0)

        assert first.kind is ChangeKind.CHANGED
        assert second.kind is ChangeKind.REMOVED
        await source.stop()

    @pytest.mark.asyncio
    async def test_without_debounce_every_event_is_delivered(self) -> None:
        source = ChangeSource()
        await source.start()

        source.emit(ChangeEvent.changed())
        source.emit(ChangeEvent.changed())

        await asyncio.wait_for(source.get(), timeout=1.0)
        await asyncio.wait_for(source.get(), timeout=1.0)
        await source.stop()

    @pytest.mark.asyncio
    async def test_emit_threadsafe(self) -> None:
        source = ChangeSource()
        await source.start()

        await asyncio.get_running_loop().run_in_executor(
            None, source.emit_threadsafe, ChangeEvent.changed())

        event = await asyncio.wait_for(source.get(), timeout=1.0)
        assert event.kind is ChangeKind.CHANGED
        await source.stop()

    def test_negative_debounce(self) -> None:
        with pytest.raises(ValueError):
            ChangeSource(debounce_delay=-1)

    def test_watch_error_requires_error(self) -> None:
        with pytest.raises(ValueError):
            ChangeEvent(ChangeKind.WATCH_ERROR)


class TestConfigFileHandler:
    """Test cases for ConfigFileHandler event mapping."""

    def setup_method(self) -> None:
        self.config_path = Path("/etc/configio/config.json")
        self.source = Mock(spec=ChangeSource)
        self.handler = ConfigFileHandler(self.config_path, self.source)

    def _emitted(self) -> list:
        return [c.args[0] for c in self.source.emit_threadsafe.call_args_list]

    def test_modified_file(self) -> None:
        self.handler.dispatch(FileModifiedEvent(str(self.config_path)))

        events = self._emitted()
        assert [e.kind for e in events] == [ChangeKind.CHANGED]
        assert events[0].path == str(self.config_path)

    def test_created_file(self) -> None:
        self.handler.dispatch(FileCreatedEvent(str(self.config_path)))
        assert [e.kind for e in self._emitted()] == [ChangeKind.CHANGED]

    def test_deleted_file(self) -> None:
        self.handler.dispatch(FileDeletedEvent(str(self.config_path)))
        assert [e.kind for e in self._emitted()] == [ChangeKind.REMOVED]

    def test_moved_onto_file(self) -> None:
        """Atomic replace via rename counts as a change."""
        self.handler.dispatch(FileMovedEvent("/etc/configio/.config.json.tmp", str(self.config_path)))
        assert [e.kind for e in self._emitted()] == [ChangeKind.CHANGED]

    def test_moved_away_from_file(self) -> None:
        self.handler.dispatch(FileMovedEvent(str(self.config_path), "/etc/configio/old.json"))
        assert [e.kind for e in self._emitted()] == [ChangeKind.CHANGED]

    def test_other_files_ignored(self) -> None:
        self.handler.dispatch(FileModifiedEvent("/etc/configio/other.json"))
        self.handler.dispatch(FileDeletedEvent("/etc/configio/other.json"))
        self.handler.dispatch(DirModifiedEvent("/etc/configio"))

        assert self._emitted() == []

    def test_bytes_paths(self) -> None:
        self.handler.dispatch(FileModifiedEvent(os.fsencode(str(self.config_path))))
        assert [e.kind for e in self._emitted()] == [ChangeKind.CHANGED]

    def test_handler_failure_becomes_watch_error(self) -> None:
        with patch.object(ConfigFileHandler, 'on_modified', side_effect=RuntimeError("boom")):
            self.handler.dispatch(FileModifiedEvent(str(self.config_path)))

        events = self._emitted()
        assert [e.kind for e in events] == [ChangeKind.WATCH_ERROR]
        assert isinstance(events[0].error, WatchFacilityError)


class TestWatchdogChangeSource:
    """Test cases for WatchdogChangeSource."""

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path: Path) -> None:
        source = WatchdogChangeSource(tmp_path / "missing.json")

        with pytest.raises(WatchFacilityError):
            await source.start()
        assert not source.is_running()

    @pytest.mark.asyncio
    async def test_start_and_stop(self, config_file: Path) -> None:
        source = WatchdogChangeSource(config_file)

        await source.start()
        assert source.is_running()

        await source.stop()
        assert not source.is_running()

    @pytest.mark.asyncio
    async def test_observer_failure(self, config_file: Path) -> None:
        source = WatchdogChangeSource(config_file)

        with patch('configio.infrastructure.watch.source.Observer') as mock_observer:
            mock_observer.return_value.start.side_effect = OSError("inotify limit reached")
            with pytest.raises(WatchFacilityError, match="inotify limit"):
                await source.start()

        assert not source.is_running()

    @pytest.mark.asyncio
    async def test_detects_modification(self, config_file: Path) -> None:
        source = WatchdogChangeSource(config_file, debounce_delay=0.1)
        await source.start()
        try:
            await asyncio.sleep(0.1)
            config_file.write_text('{"a": "AA=="}')

            event = await asyncio.wait_for(source.get(), timeout=5.0)
            assert event.kind is ChangeKind.CHANGED
        finally:
            await source.stop()


class TestPollingChangeSource:
    """Test cases for PollingChangeSource."""

    @pytest.mark.asyncio
    async def test_detects_modification(self, config_file: Path) -> None:
        source = PollingChangeSource(config_file, poll_interval=0.02)
        await source.start()
        try:
            config_file.write_text('{"key": "AAEC"}')

            event = await asyncio.wait_for(source.get(), timeout=2.0)
            assert event.kind is ChangeKind.CHANGED
            assert event.path == str(config_file.resolve())
        finally:
            await source.stop()

    @pytest.mark.asyncio
    async def test_detects_removal(self, config_file: Path) -> None:
        source = PollingChangeSource(config_file, poll_interval=0.02)
        await source.start()

        config_file.unlink()

        event = await asyncio.wait_for(source.get(), timeout=2.0)
        assert event.kind is ChangeKind.REMOVED
        await asyncio.sleep(0.05)
        assert not source.is_running()
        await source.stop()

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(WatchFacilityError):
            await PollingChangeSource(tmp_path / "missing.json").start()

    def test_invalid_interval(self, config_file: Path) -> None:
        with pytest.raises(ValueError):
            PollingChangeSource(config_file, poll_interval=0)


class TestCreateChangeSource:
    """Test cases for create_change_source."""

    def test_default_is_watchdog(self, config_file: Path) -> None:
        source = create_change_source(config_file)

        assert isinstance(source, WatchdogChangeSource)
        assert source.debounce_delay == 0.05

    def test_polling(self, config_file: Path) -> None:
        config = WatchConfig(use_polling=True, poll_interval=0.25, debounce_delay=0.0)

        source = create_change_source(config_file, config)

        assert isinstance(source, PollingChangeSource)
        assert source.poll_interval == 0.25
        assert source.debounce_delay == 0.0
