"""
Review session state machine: Idle -> Active -> Closed.

Owns at most one active session. Closed sessions are appended to the history
held by the StateStore and never reopened; a new start_session always creates
a fresh session object.
"""

import logging
import random
from datetime import datetime, timedelta

from mnemo.domain import constants
from mnemo.domain.errors import (
    CardNotInQueue,
    NoActiveSession,
    SessionAlreadyActive,
    SessionExpired,
    StorageError,
)
from mnemo.domain.models import (
    Assessment,
    Card,
    CardStatus,
    ReviewOutcome,
    ReviewSession,
    SessionQuality,
    SessionType,
)
from mnemo.domain.ports import Clock, IdGenerator

from .card_store import CardStore
from .queue_builder import build_session_queue
from .scheduler import Scheduler
from .state_store import StateStore

logger = logging.getLogger(__name__)


class SessionManager:
    def __init__(
        self,
        store: StateStore,
        cards: CardStore,
        scheduler: Scheduler,
        clock: Clock,
        ids: IdGenerator,
        rng: random.Random | None = None,
        due_share: float = constants.DUE_SHARE,
    ):
        self._store = store
        self._cards = cards
        self._scheduler = scheduler
        self._clock = clock
        self._ids = ids
        self._rng = rng or random.Random()
        self.due_share = due_share
        self._active: ReviewSession | None = None

    @property
    def current_session(self) -> ReviewSession | None:
        return self._active

    @property
    def history(self) -> list[ReviewSession]:
        return self._store.state.sessions

    def start_session(
        self,
        session_type: SessionType | str = SessionType.DAILY,
        target_card_count: int = constants.DEFAULT_TARGET_CARDS,
        max_duration_minutes: int = constants.DEFAULT_MAX_DURATION_MINUTES,
    ) -> ReviewSession:
        """
        Open a new session with a freshly built, shuffled queue.

        Raises:
            SessionAlreadyActive: if a session is still open.
            ValueError: on a non-positive target or duration, or unknown type.
        """
        if self._active is not None:
            raise SessionAlreadyActive(self._active.id)
        if target_card_count < 1:
            raise ValueError(f"target_card_count must be at least 1: {target_card_count}")
        if max_duration_minutes < 1:
            raise ValueError(
                f"max_duration_minutes must be at least 1: {max_duration_minutes}"
            )

        result = build_session_queue(
            self._cards, target_card_count, due_share=self.due_share, rng=self._rng
        )
        session = ReviewSession(
            id=self._ids.new_id("session"),
            type=_session_type(session_type),
            started_at=self._clock.now(),
            target_card_count=target_card_count,
            max_duration_minutes=max_duration_minutes,
            card_ids=result.queue,
        )
        self._active = session
        logger.info(
            f"Started {session.type.value} session {session.id} "
            f"with {len(session.card_ids)} cards (target {target_card_count})"
        )
        return session

    def next_card(self) -> Card | None:
        """First queued card not yet reviewed in the active session."""
        session = self._require_active()
        reviewed = {o.card_id for o in session.outcomes}
        for card_id in session.card_ids:
            if card_id not in reviewed and card_id in self._cards:
                return self._cards.get_card(card_id)
        return None

    async def record_outcome(
        self,
        card_id: str,
        assessment: Assessment | str,
        response_time_ms: int,
    ) -> Card:
        """
        Schedule a reviewed card and add it to the session totals.

        Raises:
            NoActiveSession: if no session is open.
            SessionExpired: if the session ran past its time limit; it is
                closed and the outcome is not recorded.
            InvalidAssessment: on an unknown grade.
            CardNotInQueue: if the card is not part of this session.
            ValueError: if response_time_ms is not a non-negative integer.
            StorageError: if the card could not be persisted; totals unchanged.
        """
        session = self._require_active()
        now = self._clock.now()

        if self._is_expired(session, now):
            logger.warning(
                f"Session {session.id} exceeded {session.max_duration_minutes} min, closing"
            )
            closed = await self._close(session, now, timed_out=True)
            raise SessionExpired(closed)

        grade = Assessment.parse(assessment)
        if card_id not in session.card_ids:
            raise CardNotInQueue(card_id, session.id)

        card = self._cards.get_card(card_id)
        updated = self._scheduler.schedule(card, grade, response_time_ms, now)
        await self._cards.update_card(updated)

        session.cards_reviewed += 1
        if grade.is_correct:
            session.correct_count += 1
        session.total_response_time_ms += response_time_ms
        session.outcomes.append(
            ReviewOutcome(
                card_id=card_id,
                assessment=grade,
                response_time_ms=response_time_ms,
                reviewed_at=now,
                correct=grade.is_correct,
                previous_status=card.status,
                new_status=updated.status,
            )
        )
        return updated

    async def end_session(self) -> ReviewSession:
        """
        Close the active session, append it to history and persist.

        Raises:
            NoActiveSession: if no session is open (including a second call).
            StorageError: if history could not be persisted; the session stays active.
        """
        session = self._require_active()
        return await self._close(session, self._clock.now(), timed_out=False)

    async def check_timeout(self) -> ReviewSession | None:
        """
        Caller-driven timeout check.

        Returns:
            The closed session if the active one ran past its limit, else None.
        """
        session = self._active
        if session is None:
            return None
        now = self._clock.now()
        if not self._is_expired(session, now):
            return None
        logger.warning(f"Session {session.id} timed out")
        return await self._close(session, now, timed_out=True)

    def _require_active(self) -> ReviewSession:
        if self._active is None:
            raise NoActiveSession()
        return self._active

    @staticmethod
    def _is_expired(session: ReviewSession, now: datetime) -> bool:
        return now - session.started_at > timedelta(minutes=session.max_duration_minutes)

    async def _close(
        self, session: ReviewSession, now: datetime, timed_out: bool
    ) -> ReviewSession:
        finalize_session(session)
        session.ended_at = now
        session.timed_out = timed_out
        self.history.append(session)

        try:
            await self._store.commit()
        except StorageError as e:
            logger.error(f"Failed to persist session {session.id}: {e}")
            self.history.pop()
            session.ended_at = None
            session.timed_out = False
            raise

        self._active = None
        logger.info(
            f"Ended session {session.id}: reviewed={session.cards_reviewed} "
            f"accuracy={session.accuracy_rate:.2f} quality={session.quality.value}"
        )
        return session


def _session_type(value: SessionType | str) -> SessionType:
    if isinstance(value, SessionType):
        return value
    return SessionType(value.strip().lower().replace("-", "_"))


def finalize_session(session: ReviewSession) -> None:
    """Fill in the derived fields of a session from its running totals."""
    reviewed = session.cards_reviewed
    session.accuracy_rate = session.correct_count / reviewed if reviewed else 0.0
    session.average_response_time_ms = (
        session.total_response_time_ms / reviewed if reviewed else 0.0
    )
    session.completion_rate = (
        min(1.0, reviewed / session.target_card_count) if session.target_card_count else 0.0
    )

    first_seen: dict[str, ReviewOutcome] = {}
    for outcome in session.outcomes:
        first_seen.setdefault(outcome.card_id, outcome)
    session.new_cards_reviewed = sum(
        1 for o in first_seen.values() if o.previous_status is CardStatus.NEW
    )
    session.review_cards_reviewed = len(first_seen) - session.new_cards_reviewed
    session.mastered_cards = len(
        {
            o.card_id
            for o in session.outcomes
            if o.new_status is CardStatus.MASTERED
            and o.previous_status is not CardStatus.MASTERED
        }
    )
    session.quality = grade_session(session)


def grade_session(session: ReviewSession) -> SessionQuality:
    """
    Grade a session from accuracy (40), completion (30) and pace (20).

    Pace scores 1.0 at the ideal response time and falls linearly to 0 at
    twice (or zero times) that time.
    """
    ideal = constants.IDEAL_RESPONSE_TIME_MS
    pace = max(0.0, 1 - abs(session.average_response_time_ms - ideal) / ideal)
    score = (session.accuracy_rate * 40 + session.completion_rate * 30 + pace * 20) / 0.9

    if score >= 80:
        return SessionQuality.EXCELLENT
    if score >= 65:
        return SessionQuality.GOOD
    if score >= 40:
        return SessionQuality.AVERAGE
    return SessionQuality.POOR
