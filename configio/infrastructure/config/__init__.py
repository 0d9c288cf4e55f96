"""
Settings for the configuration store: models and loading.
"""

from .models import ApplicationConfig, StoreConfig, WatchConfig, LoggingConfig
from .loader import ConfigLoader

__all__ = [
    "ApplicationConfig",
    "StoreConfig",
    "WatchConfig",
    "LoggingConfig",
    "ConfigLoader",
]
