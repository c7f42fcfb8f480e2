"""
Card Store: the keyed collection of cards.

Cards are indexed by id and by keyword id. Every mutation is written through
the StateStore before the call returns; if the write fails the in-memory change
is undone, so memory never runs ahead of what was acknowledged.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import datetime

from mnemo.domain import constants
from mnemo.domain.errors import CardNotFound, DuplicateKeyword, StorageError
from mnemo.domain.models import Card, CardContext, CardStatus
from mnemo.domain.ports import Clock, IdGenerator

from .state_store import StateStore

logger = logging.getLogger(__name__)


def is_due(card: Card, now: datetime, include_mastered: bool = True) -> bool:
    """A card is due when it is not suspended and its review date has passed."""
    if card.suspended or card.next_review_date > now:
        return False
    if card.status is CardStatus.MASTERED and not include_mastered:
        return False
    return True


def due_order(card: Card) -> tuple:
    # Most overdue first; ties broken deterministically
    return (card.next_review_date, card.created_at, card.id)


class CardStore:
    def __init__(
        self,
        store: StateStore,
        clock: Clock,
        ids: IdGenerator,
        initial_ease_factor: float = constants.INITIAL_EASE_FACTOR,
        include_mastered_in_due: bool = True,
    ):
        self._store = store
        self._clock = clock
        self._ids = ids
        self.initial_ease_factor = initial_ease_factor
        self.include_mastered_in_due = include_mastered_in_due
        self._by_keyword: dict[str, str] = {}
        self.reindex()

    @property
    def _cards(self) -> dict[str, Card]:
        return self._store.state.cards

    def reindex(self) -> None:
        """Rebuild the keyword index after the underlying state was replaced."""
        self._by_keyword = {card.keyword_id: card.id for card in self._cards.values()}

    def __len__(self) -> int:
        return len(self._cards)

    def __contains__(self, card_id: object) -> bool:
        return card_id in self._cards

    # ---------- Queries ----------

    def get_card(self, card_id: str) -> Card:
        try:
            return self._cards[card_id]
        except KeyError:
            raise CardNotFound(card_id) from None

    def get_card_by_keyword(self, keyword_id: str) -> Card | None:
        card_id = self._by_keyword.get(keyword_id)
        return self._cards[card_id] if card_id else None

    def all_cards(self) -> list[Card]:
        return list(self._cards.values())

    def get_due_cards(self, limit: int | None = None) -> list[Card]:
        """
        Cards whose review date has passed, most overdue first.

        Mastered cards stay in the pool when overdue unless the store was built
        with include_mastered_in_due=False.
        """
        now = self._clock.now()
        due = sorted(
            (c for c in self._cards.values() if is_due(c, now, self.include_mastered_in_due)),
            key=due_order,
        )
        logger.debug(f"{len(due)} due cards at {now.isoformat()}")
        return _truncate(due, limit)

    def get_new_cards(self, limit: int | None = None) -> list[Card]:
        """Never-reviewed cards, highest priority first, then oldest first."""
        new = sorted(
            (
                c
                for c in self._cards.values()
                if c.status is CardStatus.NEW and not c.suspended
            ),
            key=lambda c: (-c.context.priority, c.created_at, c.id),
        )
        return _truncate(new, limit)

    # ---------- Mutations ----------

    def new_card(
        self,
        keyword_id: str,
        word: str,
        translation: str,
        audio_ref: str,
        context: CardContext | None = None,
    ) -> Card:
        """Build (but do not store) a New card that is due immediately."""
        now = self._clock.now()
        return Card(
            id=self._ids.new_id("card"),
            keyword_id=keyword_id,
            word=word,
            translation=translation,
            audio_ref=audio_ref,
            created_at=now,
            next_review_date=now,
            ease_factor=self.initial_ease_factor,
            context=context or CardContext(),
        )

    async def add_card(
        self,
        keyword_id: str,
        word: str,
        translation: str,
        audio_ref: str,
        context: CardContext | None = None,
    ) -> Card:
        """
        Create a New card for a keyword and persist it.

        Raises:
            DuplicateKeyword: if the keyword already has a card.
        """
        existing = self._by_keyword.get(keyword_id)
        if existing is not None:
            raise DuplicateKeyword(keyword_id, existing)

        card = self.new_card(keyword_id, word, translation, audio_ref, context)

        self._cards[card.id] = card
        self._by_keyword[keyword_id] = card.id

        def undo():
            del self._cards[card.id]
            del self._by_keyword[keyword_id]

        await self._commit(undo)
        logger.info(f"Added card {card.id} for keyword '{keyword_id}'")
        return card

    async def update_card(self, card: Card) -> Card:
        """
        Replace the stored card with the same id.

        Raises:
            CardNotFound: if the id is unknown.
            DuplicateKeyword: if a changed keyword collides with another card.
        """
        previous = self.get_card(card.id)
        if card.keyword_id != previous.keyword_id:
            owner = self._by_keyword.get(card.keyword_id)
            if owner is not None and owner != card.id:
                raise DuplicateKeyword(card.keyword_id, owner)

        self._put(card, previous)
        await self._commit(lambda: self._put(previous, card))
        logger.debug(
            f"Updated card {card.id}: status={card.status.value} "
            f"interval={card.interval} ease={card.ease_factor:.2f}"
        )
        return card

    async def delete_card(self, card_id: str) -> Card:
        """Remove a card. Deletion is only ever requested explicitly by the caller."""
        card = self.get_card(card_id)
        snapshot = dict(self._cards)
        del self._cards[card_id]
        del self._by_keyword[card.keyword_id]

        def undo():
            # Restore the previous insertion order, not just the entry
            self._store.state.cards = snapshot
            self._by_keyword[card.keyword_id] = card_id

        await self._commit(undo)
        logger.info(f"Deleted card {card_id}")
        return card

    async def set_suspended(self, card_id: str, suspended: bool) -> Card:
        card = self.get_card(card_id)
        if card.suspended == suspended:
            return card
        return await self.update_card(replace(card, suspended=suspended))

    async def import_cards(self, cards: Iterable[Card]) -> int:
        """Insert prebuilt cards in one commit. Used by deck import."""
        batch = list(cards)
        seen: dict[str, str] = {}
        for card in batch:
            owner = self._by_keyword.get(card.keyword_id) or seen.get(card.keyword_id)
            if owner is not None:
                raise DuplicateKeyword(card.keyword_id, owner)
            seen[card.keyword_id] = card.id
        for card in batch:
            self._cards[card.id] = card
            self._by_keyword[card.keyword_id] = card.id

        def undo():
            for card in batch:
                self._cards.pop(card.id, None)
                self._by_keyword.pop(card.keyword_id, None)

        await self._commit(undo)
        return len(batch)

    # ---------- Internals ----------

    def _put(self, card: Card, replaced: Card) -> None:
        if replaced.keyword_id != card.keyword_id:
            self._by_keyword.pop(replaced.keyword_id, None)
        self._cards[card.id] = card
        self._by_keyword[card.keyword_id] = card.id

    async def _commit(self, undo: Callable[[], None]) -> None:
        try:
            await self._store.commit()
        except StorageError as e:
            logger.warning(f"Rolling back card change after storage failure: {e}")
            undo()
            raise


def _truncate(cards: list[Card], limit: int | None) -> list[Card]:
    if limit is None:
        return cards
    if limit < 0:
        raise ValueError(f"limit must not be negative: {limit}")
    return cards[:limit]
