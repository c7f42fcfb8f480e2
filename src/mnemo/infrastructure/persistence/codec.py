"""
JSON codec for the persisted engine state.

The blob is a versioned envelope around the card list and the closed session
history. Validation is delegated to pydantic so that malformed or hand-edited
files fail loudly instead of producing half-built cards.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from pydantic import TypeAdapter, ValidationError

from mnemo.domain.constants import STATE_FORMAT_VERSION
from mnemo.domain.errors import StorageError
from mnemo.domain.models import Card, EngineState, ReviewSession
from mnemo.domain.ports import StateCodec

logger = logging.getLogger(__name__)


@dataclass
class StateEnvelope:
    version: int
    saved_at: datetime | None = None
    cards: list[Card] = field(default_factory=list)
    sessions: list[ReviewSession] = field(default_factory=list)


_ADAPTER = TypeAdapter(StateEnvelope)


def encode_state(state: EngineState, saved_at: datetime | None = None) -> bytes:
    """Serialize the state to UTF-8 JSON bytes."""
    envelope = StateEnvelope(
        version=STATE_FORMAT_VERSION,
        saved_at=saved_at,
        cards=list(state.cards.values()),
        sessions=list(state.sessions),
    )
    return _ADAPTER.dump_json(envelope, indent=2)


def decode_state(blob: bytes | str) -> EngineState:
    """
    Rebuild an EngineState from a blob produced by encode_state.

    Raises:
        StorageError: if the blob is not valid JSON, fails validation, or was
            written by a newer format version.
    """
    try:
        envelope = _ADAPTER.validate_json(blob)
    except ValidationError as e:
        logger.error(f"Stored state failed validation: {e.error_count()} error(s)")
        raise StorageError(f"Corrupt state blob: {e}") from e

    if envelope.version > STATE_FORMAT_VERSION:
        raise StorageError(
            f"State format v{envelope.version} is newer than supported "
            f"v{STATE_FORMAT_VERSION}"
        )

    cards: dict[str, Card] = {}
    for card in envelope.cards:
        if card.id in cards:
            raise StorageError(f"Corrupt state blob: duplicate card id {card.id}")
        cards[card.id] = card

    return EngineState(cards=cards, sessions=list(envelope.sessions))


class JsonStateCodec(StateCodec):
    """StateCodec backed by encode_state/decode_state."""

    def encode(self, state: EngineState, saved_at: datetime | None = None) -> bytes:
        return encode_state(state, saved_at=saved_at)

    def decode(self, blob: bytes) -> EngineState:
        return decode_state(blob)
