"""
File-backed persistence gateway.

Writes go to a sibling temp file which is then renamed over the target, so a
crash mid-write leaves the previous blob intact.
"""

import asyncio
import logging
import os
import tempfile
from pathlib import Path

from mnemo.domain.errors import StateNotFound, StorageError
from mnemo.domain.ports import PersistenceGateway

logger = logging.getLogger(__name__)


class JsonFileGateway(PersistenceGateway):
    """Stores the state blob in a single file on local disk."""

    def __init__(self, path: Path):
        self.path = Path(path)

    async def load(self) -> bytes:
        return await asyncio.to_thread(self._read)

    async def save(self, blob: bytes) -> None:
        await asyncio.to_thread(self._write, blob)

    def _read(self) -> bytes:
        try:
            return self.path.read_bytes()
        except FileNotFoundError:
            raise StateNotFound(str(self.path)) from None
        except OSError as e:
            logger.error(f"Failed to read {self.path}: {e}")
            raise StorageError(f"Cannot read {self.path}: {e}") from e

    def _write(self, blob: bytes) -> None:
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "wb") as f:
                f.write(blob)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
            logger.debug(f"Saved {len(blob)} bytes to {self.path}")
        except OSError as e:
            logger.error(f"Failed to write {self.path}: {e}")
            raise StorageError(f"Cannot write {self.path}: {e}") from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
