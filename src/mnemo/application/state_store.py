"""
Owner of the in-memory EngineState and its write-through to the gateway.

The card store and the session manager share one StateStore, so every commit
writes the full card set and session history as a single blob.
"""

import logging

from mnemo.domain.errors import StateNotFound, StorageError
from mnemo.domain.models import EngineState
from mnemo.domain.ports import Clock, PersistenceGateway, StateCodec

logger = logging.getLogger(__name__)


class StateStore:
    def __init__(
        self,
        gateway: PersistenceGateway,
        codec: StateCodec,
        clock: Clock,
        state: EngineState | None = None,
    ):
        self.gateway = gateway
        self.codec = codec
        self.clock = clock
        self.state = state or EngineState()

    async def load(self) -> EngineState:
        """
        Replace the in-memory state with the gateway's last saved blob.

        A gateway with nothing saved yields an empty state.
        """
        try:
            blob = await self.gateway.load()
        except StateNotFound:
            logger.info("No saved state found, starting with an empty deck")
            self.state = EngineState()
            return self.state

        self.state = self.codec.decode(blob)
        logger.info(
            f"Loaded {len(self.state.cards)} cards and "
            f"{len(self.state.sessions)} sessions"
        )
        return self.state

    async def commit(self) -> None:
        """
        Write the current state through the gateway.

        Raises:
            StorageError: if the gateway failed. Callers roll back their
                in-memory change before re-raising.
        """
        blob = self.codec.encode(self.state, saved_at=self.clock.now())
        try:
            await self.gateway.save(blob)
        except StorageError:
            raise
        except OSError as e:
            raise StorageError(f"Failed to save state: {e}") from e
