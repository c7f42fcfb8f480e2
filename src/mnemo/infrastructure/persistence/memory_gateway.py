"""In-process persistence gateway, used for tests and ephemeral decks."""

from mnemo.domain.errors import StateNotFound
from mnemo.domain.ports import PersistenceGateway


class MemoryGateway(PersistenceGateway):
    def __init__(self, blob: bytes | None = None):
        self.blob = blob
        self.save_count = 0

    async def load(self) -> bytes:
        if self.blob is None:
            raise StateNotFound("memory")
        return self.blob

    async def save(self, blob: bytes) -> None:
        self.blob = blob
        self.save_count += 1
