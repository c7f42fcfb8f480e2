"""
SRS engine: application layer facade.

Wires the card store, scheduler, session manager and statistics aggregator
around one shared state and exposes the caller-facing API. One engine instance
owns one learner's deck. Calls are expected to be serialized by the caller;
there is no internal locking.
"""

import logging
import random
from datetime import tzinfo
from pathlib import Path

from mnemo.domain import constants
from mnemo.domain.errors import SessionAlreadyActive, StorageError
from mnemo.domain.models import (
    Assessment,
    CalendarCounts,
    Card,
    CardContext,
    EngineState,
    ReviewSession,
    SessionType,
    StatisticsSnapshot,
)
from mnemo.domain.ports import Clock, IdGenerator, PersistenceGateway, StateCodec

from .card_store import CardStore
from .deck_import import ImportResult
from .deck_import import import_deck as import_deck_file
from .id_service import UlidGenerator
from .scheduler import Scheduler
from .session_manager import SessionManager
from .state_store import StateStore
from .stats import StatisticsAggregator

logger = logging.getLogger(__name__)


class SrsEngine:
    """
    Caller-facing API of the spaced-repetition engine.

    Persistence-backed operations are coroutines; reads are plain methods.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        clock: Clock,
        codec: StateCodec,
        ids: IdGenerator | None = None,
        scheduler: Scheduler | None = None,
        rng: random.Random | None = None,
        zone: tzinfo | None = None,
        due_share: float = constants.DUE_SHARE,
        initial_ease_factor: float = constants.INITIAL_EASE_FACTOR,
        include_mastered_in_due: bool = True,
        state: EngineState | None = None,
    ):
        self.clock = clock
        ids = ids or UlidGenerator()
        self.scheduler = scheduler or Scheduler()
        self._state = StateStore(gateway, codec, clock, state)
        self.cards = CardStore(
            self._state,
            clock,
            ids,
            initial_ease_factor=initial_ease_factor,
            include_mastered_in_due=include_mastered_in_due,
        )
        self.sessions = SessionManager(
            self._state,
            self.cards,
            self.scheduler,
            clock,
            ids,
            rng=rng,
            due_share=due_share,
        )
        self.aggregator = StatisticsAggregator(
            zone=zone, include_mastered_in_due=include_mastered_in_due
        )

    @property
    def state(self) -> EngineState:
        return self._state.state

    async def load(self) -> None:
        """Replace the in-memory deck with the last saved one."""
        if self.sessions.current_session is not None:
            raise SessionAlreadyActive(self.sessions.current_session.id)
        await self._state.load()
        self.cards.reindex()

    # ---------- Cards ----------

    async def add_card(
        self,
        keyword_id: str,
        word: str,
        translation: str,
        audio_ref: str,
        context: CardContext | None = None,
    ) -> Card:
        return await self.cards.add_card(keyword_id, word, translation, audio_ref, context)

    def get_card(self, card_id: str) -> Card:
        return self.cards.get_card(card_id)

    def get_card_by_keyword(self, keyword_id: str) -> Card | None:
        return self.cards.get_card_by_keyword(keyword_id)

    def get_due_cards(self, limit: int | None = constants.DEFAULT_DUE_LIMIT) -> list[Card]:
        return self.cards.get_due_cards(limit)

    def get_new_cards(self, limit: int | None = constants.DEFAULT_NEW_LIMIT) -> list[Card]:
        return self.cards.get_new_cards(limit)

    def all_cards(self) -> list[Card]:
        return self.cards.all_cards()

    async def update_card(self, card: Card) -> Card:
        return await self.cards.update_card(card)

    async def delete_card(self, card_id: str) -> Card:
        return await self.cards.delete_card(card_id)

    async def suspend_card(self, card_id: str) -> Card:
        return await self.cards.set_suspended(card_id, True)

    async def unsuspend_card(self, card_id: str) -> Card:
        return await self.cards.set_suspended(card_id, False)

    async def import_deck(self, path: Path) -> ImportResult:
        return await import_deck_file(self.cards, Path(path))

    # ---------- Sessions ----------

    @property
    def current_session(self) -> ReviewSession | None:
        return self.sessions.current_session

    def start_session(
        self,
        session_type: SessionType | str = SessionType.DAILY,
        target_card_count: int = constants.DEFAULT_TARGET_CARDS,
        max_duration_minutes: int = constants.DEFAULT_MAX_DURATION_MINUTES,
    ) -> ReviewSession:
        return self.sessions.start_session(session_type, target_card_count, max_duration_minutes)

    def next_card(self) -> Card | None:
        return self.sessions.next_card()

    async def record_outcome(
        self, card_id: str, assessment: Assessment | str, response_time_ms: int
    ) -> Card:
        return await self.sessions.record_outcome(card_id, assessment, response_time_ms)

    async def end_session(self) -> ReviewSession:
        return await self.sessions.end_session()

    async def check_timeout(self) -> ReviewSession | None:
        return await self.sessions.check_timeout()

    def get_session_history(
        self, limit: int | None = constants.DEFAULT_HISTORY_LIMIT
    ) -> list[ReviewSession]:
        """Closed sessions, newest first."""
        history = sorted(self.state.sessions, key=lambda s: s.started_at, reverse=True)
        return history if limit is None else history[:limit]

    # ---------- Statistics ----------

    def get_statistics(self) -> StatisticsSnapshot:
        return self.aggregator.snapshot(
            self.cards.all_cards(),
            self.state.sessions,
            self.clock.now(),
            active=self.sessions.current_session,
        )

    def get_calendar(self, year: int, month: int) -> CalendarCounts:
        return self.aggregator.calendar(
            self.state.sessions, year, month, active=self.sessions.current_session
        )

    # ---------- Maintenance ----------

    async def reset(self) -> None:
        """
        Delete every card and all history.

        Raises:
            SessionAlreadyActive: while a session is open.
        """
        if self.sessions.current_session is not None:
            raise SessionAlreadyActive(self.sessions.current_session.id)

        previous = self._state.state
        self._state.state = EngineState()
        self.cards.reindex()
        try:
            await self._state.commit()
        except StorageError:
            self._state.state = previous
            self.cards.reindex()
            raise
        logger.info("Engine state reset")
