"""
Import cards from a YAML deck file.

Deck layout:

    source_tag: cafe          # optional default for every card
    cards:
      - keyword_id: kw_coffee
        word: coffee
        translation: 咖啡
        audio_ref: audio/coffee.mp3
        difficulty_hint: 2    # optional context keys
        story_id: ep01

Keywords that already have a card are skipped, so re-importing a deck is safe.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from mnemo.domain.errors import InvalidDeck
from mnemo.domain.models import CardContext

from .card_store import CardStore

logger = logging.getLogger(__name__)


class DeckEntry(BaseModel):
    keyword_id: str = Field(min_length=1)
    word: str = Field(min_length=1)
    translation: str
    audio_ref: str = ""
    difficulty_hint: int = Field(default=3, ge=1, le=5)
    source_tag: str | None = None
    image_ref: str | None = None
    story_id: str | None = None
    priority: int = Field(default=5, ge=1, le=10)


class DeckFile(BaseModel):
    source_tag: str | None = None
    cards: list[DeckEntry] = Field(default_factory=list)


@dataclass
class ImportResult:
    added: list[str] = field(default_factory=list)  # card ids
    skipped: list[str] = field(default_factory=list)  # keyword ids already present


def parse_deck(text: str, source: str = "<deck>") -> DeckFile:
    """
    Parse and validate deck YAML.

    Raises:
        InvalidDeck: on malformed YAML or entries missing required fields.
    """
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise InvalidDeck(source, f"YAML error: {e}") from e

    if raw is None:
        return DeckFile()
    if isinstance(raw, list):
        raw = {"cards": raw}
    if not isinstance(raw, dict):
        raise InvalidDeck(source, "expected a mapping with a 'cards' list")

    try:
        return DeckFile.model_validate(raw)
    except ValidationError as e:
        raise InvalidDeck(source, str(e)) from e


async def import_deck(cards: CardStore, path: Path) -> ImportResult:
    """
    Add every card of the deck whose keyword is not stored yet, in one commit.

    Raises:
        InvalidDeck: if the file cannot be read as UTF-8 text or fails validation.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise InvalidDeck(str(path), f"cannot read file: {e}") from e
    deck = parse_deck(text, source=str(path))
    result = ImportResult()
    batch = []
    pending: set[str] = set()

    for entry in deck.cards:
        if cards.get_card_by_keyword(entry.keyword_id) or entry.keyword_id in pending:
            result.skipped.append(entry.keyword_id)
            continue
        context = CardContext(
            difficulty_hint=entry.difficulty_hint,
            source_tag=entry.source_tag or deck.source_tag,
            image_ref=entry.image_ref,
            story_id=entry.story_id,
            priority=entry.priority,
        )
        batch.append(
            cards.new_card(
                entry.keyword_id, entry.word, entry.translation, entry.audio_ref, context
            )
        )
        pending.add(entry.keyword_id)

    if batch:
        await cards.import_cards(batch)
    result.added = [c.id for c in batch]

    logger.info(f"Imported {len(result.added)} cards from {path} ({len(result.skipped)} skipped)")
    return result
