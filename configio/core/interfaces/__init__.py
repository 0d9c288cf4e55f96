"""
Core interfaces defining the contracts between the store's components.
"""

from .lifecycle import IStartable, IStoppable, IHealthCheckable, IConfigurable, IComponent
from .config import (
    Marshaler, IConfigReader, IConfigWriter, IConfigReadWriter,
    IConfigWatcher, IConfigManager
)
from .watch import IChangeSource

__all__ = [
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "IConfigurable",
    "IComponent",
    "Marshaler",
    "IConfigReader",
    "IConfigWriter",
    "IConfigReadWriter",
    "IConfigWatcher",
    "IConfigManager",
    "IChangeSource",
]
