"""
Typed failures raised by the engine.

Every error the core signals derives from SrsError so callers can map the whole
family to user-facing messages in one place.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ReviewSession


class SrsError(Exception):
    """Base exception for the SRS engine."""

    pass


class NotFound(SrsError):
    """Raised when an identifier does not resolve to a stored object."""

    pass


class CardNotFound(NotFound):
    def __init__(self, card_id: str):
        self.card_id = card_id
        super().__init__(f"Card not found: {card_id}")


class StateNotFound(NotFound):
    """Raised by a persistence gateway that has nothing saved yet."""

    def __init__(self, location: str = "storage"):
        self.location = location
        super().__init__(f"No saved state in {location}")


class DuplicateKeyword(SrsError):
    def __init__(self, keyword_id: str, existing_card_id: str):
        self.keyword_id = keyword_id
        self.existing_card_id = existing_card_id
        super().__init__(
            f"Keyword '{keyword_id}' already has a card ({existing_card_id})"
        )


class SessionStateError(SrsError):
    """Raised when an operation is not allowed in the current session state."""

    pass


class SessionAlreadyActive(SessionStateError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} is still active")


class NoActiveSession(SessionStateError):
    def __init__(self, message: str = "No review session is active"):
        super().__init__(message)


class SessionExpired(SessionStateError):
    """
    Raised when an outcome arrives after the session ran past its time limit.

    The session has already been closed; it is available as `session`.
    """

    def __init__(self, session: ReviewSession):
        self.session = session
        super().__init__(
            f"Session {session.id} exceeded {session.max_duration_minutes} minutes "
            "and was closed"
        )


class CardNotInQueue(SrsError):
    def __init__(self, card_id: str, session_id: str):
        self.card_id = card_id
        self.session_id = session_id
        super().__init__(f"Card {card_id} is not queued in session {session_id}")


class InvalidAssessment(SrsError, ValueError):
    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid assessment: {value!r}")


class InvalidDeck(SrsError, ValueError):
    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid deck {source}: {reason}")


class StorageError(SrsError, OSError):
    """Raised when the persistence gateway fails to read or write."""

    pass
