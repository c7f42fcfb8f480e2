"""
Ports (interfaces) for the engine's external collaborators.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from .models import EngineState


class PersistenceGateway(ABC):
    """
    Port for loading and saving the engine state as an opaque blob.

    Implementations:
        - MemoryGateway: Keeps the blob in process memory.
        - JsonFileGateway: Writes the blob atomically to a file.
    """

    @abstractmethod
    async def load(self) -> bytes:
        """
        Return the last saved blob.

        Raises:
            StateNotFound: if nothing has been saved yet.
            StorageError: if the medium cannot be read.
        """
        pass

    @abstractmethod
    async def save(self, blob: bytes) -> None:
        """
        Durably store the blob, replacing any previous one.

        Raises:
            StorageError: if the write did not complete.
        """
        pass


class Clock(ABC):
    """Port for the current time. Must return timezone-aware datetimes."""

    @abstractmethod
    def now(self) -> datetime:
        pass


class IdGenerator(ABC):
    """Port for unique identifiers."""

    @abstractmethod
    def new_id(self, prefix: str) -> str:
        pass


class StateCodec(ABC):
    """
    Port for turning the engine state into a storable blob and back.

    Implementations:
        - JsonStateCodec: Versioned JSON envelope validated with pydantic.
    """

    @abstractmethod
    def encode(self, state: EngineState, saved_at: datetime | None = None) -> bytes:
        pass

    @abstractmethod
    def decode(self, blob: bytes) -> EngineState:
        """
        Rebuild the state from a blob produced by encode.

        Raises:
            StorageError: if the blob is corrupt or from an unsupported version.
        """
        pass
