"""
File store: byte-level access to the backing file.
"""

import logging
from pathlib import Path
from typing import Union

import aiofiles
import aiofiles.os

from ...core.exceptions import StoreError
from .codec import bootstrap_document, encode_document

logger = logging.getLogger(__name__)

DIR_MODE = 0o755


class FileStore:
    """
    Reads and writes the backing file as raw bytes.

    Writes create any missing parent directories first. Serializing writes
    against each other is the caller's job.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path).expanduser()

    async def read(self) -> bytes:
        """
        Read the whole backing file.

        Raises:
            FileNotFoundError: If the file does not exist
            StoreError: On any other I/O failure
        """
        try:
            async with aiofiles.open(self.path, 'rb') as f:
                return await f.read()
        except FileNotFoundError:
            raise
        except OSError as e:
            logger.error(f"Failed to read {self.path}: {e}")
            raise StoreError(f"Error reading {self.path}: {e}", str(self.path))

    async def write(self, data: bytes) -> None:
        """
        Replace the backing file contents.

        Raises:
            StoreError: If the directory or file cannot be written
        """
        try:
            await aiofiles.os.makedirs(self.path.parent, mode=DIR_MODE, exist_ok=True)
            async with aiofiles.open(self.path, 'wb') as f:
                await f.write(data)
        except OSError as e:
            logger.error(f"Failed to write {self.path}: {e}")
            raise StoreError(f"Error writing {self.path}: {e}", str(self.path))

        logger.debug(f"Wrote {len(data)} bytes to {self.path}")

    async def ensure_exists(self) -> bool:
        """
        Create parent directories and a bootstrap file if the file is missing.

        Returns:
            True if a new file was created

        Raises:
            StoreError: If the path is a directory or cannot be created
        """
        if await aiofiles.os.path.isdir(self.path):
            raise StoreError(f"Config file path is a directory: {self.path}", str(self.path))

        if await aiofiles.os.path.exists(self.path):
            return False

        await self.write(encode_document(bootstrap_document()))
        logger.info(f"Created config file: {self.path}")
        return True

    async def exists(self) -> bool:
        return bool(await aiofiles.os.path.exists(self.path))

    def __repr__(self) -> str:
        return f"FileStore({str(self.path)!r})"
