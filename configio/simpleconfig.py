"""
A small example config type, stored as indented JSON.
"""

import json
from dataclasses import asdict, dataclass

from .core.interfaces.config import Marshaler


@dataclass
class SimpleConfig(Marshaler):
    """Typical config params."""

    name: str = ""
    value: int = 0
    read_only: bool = False

    KEY = "simpleconfig"

    @classmethod
    def sample(cls) -> "SimpleConfig":
        """Config populated with fixed example data."""
        return cls(name="mypd", value=500, read_only=True)

    def key(self) -> str:
        return self.KEY

    def marshal(self) -> bytes:
        return json.dumps(asdict(self), indent=2).encode('utf-8')

    def unmarshal(self, data: bytes) -> None:
        raw = json.loads(data.decode('utf-8'))
        self.name = raw.get('name', "")
        self.value = int(raw.get('value', 0))
        self.read_only = bool(raw.get('read_only', False))
