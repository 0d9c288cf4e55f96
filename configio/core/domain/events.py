"""
Change events emitted by the file observation layer.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ChangeKind(Enum):
    """Kinds of events a change source can emit."""
    CHANGED = "changed"
    REMOVED = "removed"
    WATCH_ERROR = "watch_error"


@dataclass(frozen=True)
class ChangeEvent:
    """
    Immutable record of something that happened to the backing file.

    ``CHANGED`` covers writes and renames, ``REMOVED`` means the file itself
    is gone, ``WATCH_ERROR`` carries a malfunction of the watch facility.
    """

    kind: ChangeKind
    path: str = ""
    error: Optional[BaseException] = None
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        if self.kind is ChangeKind.WATCH_ERROR and self.error is None:
            raise ValueError("WATCH_ERROR events must carry an error")

    @classmethod
    def changed(cls, path: str = "") -> "ChangeEvent":
        return cls(ChangeKind.CHANGED, path)

    @classmethod
    def removed(cls, path: str = "") -> "ChangeEvent":
        return cls(ChangeKind.REMOVED, path)

    @classmethod
    def watch_error(cls, error: BaseException, path: str = "") -> "ChangeEvent":
        return cls(ChangeKind.WATCH_ERROR, path, error)
