"""
Settings models for the configuration store itself.

These describe where the backing file lives, how it is watched and how the
store logs; they are unrelated to the user config payloads kept in the file.
"""

import os
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional

DEFAULT_CONFIG_DIR = "configio"
DEFAULT_CONFIG_FILE = "config.json"


def default_config_file() -> str:
    """Default backing file: ``$HOME/.config/configio/config.json``."""
    home = os.environ.get("HOME") or os.path.expanduser("~")
    return os.path.join(home, ".config", DEFAULT_CONFIG_DIR, DEFAULT_CONFIG_FILE)


@dataclass
class StoreConfig:
    """Backing file configuration."""
    file: str = field(default_factory=default_config_file)
    create_if_missing: bool = True


@dataclass
class WatchConfig:
    """Change detection and notification configuration."""
    enabled: bool = True
    use_polling: bool = False
    poll_interval: float = 1.0
    debounce_delay: float = 0.05
    delivery_timeout: Optional[float] = None
    max_concurrency: Optional[int] = None


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_directory: str = "logs"
    max_file_size: str = "10MB"
    backup_count: int = 5
    console_enabled: bool = True
    file_enabled: bool = False


@dataclass
class ApplicationConfig:
    """Top-level configio settings."""

    name: str = "configio"
    version: str = "0.1.0"

    store: StoreConfig = field(default_factory=StoreConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    settings_file_path: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate_store()
        self._validate_watch()

    def _validate_store(self) -> None:
        if not self.store.file:
            raise ValueError("Store file path cannot be empty")

    def _validate_watch(self) -> None:
        watch = self.watch
        if watch.poll_interval <= 0:
            raise ValueError(
                f"Poll interval must be positive, got {watch.poll_interval}")
        if watch.debounce_delay < 0:
            raise ValueError(
                f"Debounce delay cannot be negative, got {watch.debounce_delay}")
        if watch.delivery_timeout is not None and watch.delivery_timeout <= 0:
            raise ValueError(
                f"Delivery timeout must be positive, got {watch.delivery_timeout}")
        if watch.max_concurrency is not None and watch.max_concurrency <= 0:
            raise ValueError(
                f"Max concurrency must be positive, got {watch.max_concurrency}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ApplicationConfig':
        """Create configuration from dictionary."""
        return cls(
            name=data.get('name', 'configio'),
            version=data.get('version', '0.1.0'),
            store=StoreConfig(**data.get('store', {})),
            watch=WatchConfig(**data.get('watch', {})),
            logging=LoggingConfig(**data.get('logging', {})),
            settings_file_path=data.get('settings_file_path')
        )
