# Domain Package
from .errors import (
    CardNotFound,
    CardNotInQueue,
    DuplicateKeyword,
    InvalidAssessment,
    InvalidDeck,
    NoActiveSession,
    NotFound,
    SessionAlreadyActive,
    SessionExpired,
    SessionStateError,
    SrsError,
    StateNotFound,
    StorageError,
)
from .models import (
    Assessment,
    Card,
    CardContext,
    CardStatus,
    EngineState,
    ReviewOutcome,
    ReviewSession,
    SessionQuality,
    SessionType,
    StatisticsSnapshot,
    UpcomingReviews,
)
from .ports import Clock, IdGenerator, PersistenceGateway, StateCodec

__all__ = [
    "Assessment",
    "Card",
    "CardContext",
    "CardStatus",
    "EngineState",
    "ReviewOutcome",
    "ReviewSession",
    "SessionQuality",
    "SessionType",
    "StatisticsSnapshot",
    "UpcomingReviews",
    "Clock",
    "IdGenerator",
    "PersistenceGateway",
    "StateCodec",
    "SrsError",
    "NotFound",
    "CardNotFound",
    "StateNotFound",
    "DuplicateKeyword",
    "SessionStateError",
    "SessionAlreadyActive",
    "NoActiveSession",
    "SessionExpired",
    "CardNotInQueue",
    "InvalidAssessment",
    "InvalidDeck",
    "StorageError",
]
