"""
Backing document codec.

The backing file is a JSON object mapping each config key to the base64 of
that config's marshaled bytes, indented by two spaces.
"""

import base64
import binascii
import json
import uuid
from typing import Dict

from ...core.exceptions import ConfigFormatError

Document = Dict[str, bytes]

BOOTSTRAP_PAYLOAD = bytes([0, 1, 2])


def decode_document(data: bytes) -> Document:
    """
    Decode the backing file contents into a key -> bytes mapping.

    Raises:
        ConfigFormatError: If the contents are not a JSON object of base64 strings
    """
    try:
        raw = json.loads(data.decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConfigFormatError(f"Invalid config document: {e}")

    if not isinstance(raw, dict):
        raise ConfigFormatError(
            f"Config document must be a JSON object, got {type(raw).__name__}")

    document: Document = {}
    for key, value in raw.items():
        if not isinstance(value, str):
            raise ConfigFormatError(f"Value for key '{key}' is not a base64 string")
        try:
            document[key] = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ConfigFormatError(f"Invalid base64 for key '{key}': {e}")

    return document


def encode_document(document: Document) -> bytes:
    """Encode a key -> bytes mapping as the backing file contents."""
    raw = {
        key: base64.b64encode(value).decode('ascii')
        for key, value in document.items()
    }
    return json.dumps(raw, indent=2).encode('utf-8')


def bootstrap_document() -> Document:
    """Initial document for a freshly created backing file."""
    return {str(uuid.uuid4()): BOOTSTRAP_PAYLOAD}
