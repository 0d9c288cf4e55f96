"""
Exception hierarchy for the configuration store.

Callback failures are carried as data through the notification protocol;
the types below exist so that callers and subscribers can tell the failure
modes apart.
"""

from typing import Any, Optional


class ConfigIOError(Exception):
    """Base class for all configio errors."""

    def __init__(self, message: str, error_code: Optional[str] = "") -> None:
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class StoreError(ConfigIOError):
    """Backing file could not be read, written or bootstrapped."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message, "STORE_ERROR")
        self.path = path


class ConfigKeyError(ConfigIOError):
    """Requested config key is empty or has no data in the store."""

    def __init__(self, message: str, key: Optional[str] = None) -> None:
        super().__init__(message, "CONFIG_KEY_ERROR")
        self.key = key


class ConfigFormatError(ConfigIOError):
    """Backing document or a config payload could not be decoded."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "CONFIG_FORMAT_ERROR")


class CallbackError(ConfigIOError):
    """A watch callback reported a failure that is not an exception instance."""

    def __init__(self, name: str, value: Any) -> None:
        super().__init__(f"callback '{name}' reported failure: {value!r}", "CALLBACK_ERROR")
        self.name = name
        self.value = value


class DeliveryTimeoutError(ConfigIOError):
    """Notification was not read or acknowledged within the delivery deadline."""

    def __init__(self, name: str, timeout: float) -> None:
        super().__init__(
            f"subscriber '{name}' did not complete within {timeout}s", "DELIVERY_TIMEOUT")
        self.name = name
        self.timeout = timeout


class WatchFacilityError(ConfigIOError):
    """The file watch facility reported an internal malfunction."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "WATCH_FACILITY_ERROR")


class TerminalWatchError(ConfigIOError):
    """The watched file disappeared; the watch will not restart on its own."""

    def __init__(self, path: str) -> None:
        super().__init__(f"watched file removed: {path}", "WATCH_TERMINATED")
        self.path = path


class ChannelClosedError(ConfigIOError):
    """Notification channel was closed because its registration was superseded."""

    def __init__(self, name: Optional[str] = None) -> None:
        message = "notification channel closed"
        if name:
            message = f"notification channel for '{name}' closed"
        super().__init__(message, "CHANNEL_CLOSED")
        self.name = name
