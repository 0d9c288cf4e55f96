"""
Backing file storage: raw byte access and the document codec.
"""

from .store import FileStore
from .codec import Document, decode_document, encode_document, bootstrap_document

__all__ = [
    "FileStore",
    "Document",
    "decode_document",
    "encode_document",
    "bootstrap_document",
]
