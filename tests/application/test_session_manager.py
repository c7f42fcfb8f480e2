"""Tests for review sessions: lifecycle, queue building, timeouts and grading."""

import random
from dataclasses import replace
from datetime import timedelta

import pytest

from mnemo.application.queue_builder import build_session_queue, due_quota
from mnemo.application.session_manager import grade_session
from mnemo.domain.errors import (
    CardNotInQueue,
    InvalidAssessment,
    NoActiveSession,
    SessionAlreadyActive,
    SessionExpired,
    StorageError,
)
from mnemo.domain.models import CardStatus, ReviewSession, SessionQuality, SessionType


async def add_cards(engine, count: int, prefix: str = "kw"):
    return [
        await engine.add_card(f"{prefix}_{i}", f"word{i}", f"translation{i}", "")
        for i in range(count)
    ]


async def add_review_cards(engine, clock, count: int, prefix: str = "rev"):
    """Cards that were already learned and are overdue by 1..count days."""
    cards = []
    for i, card in enumerate(await add_cards(engine, count, prefix)):
        reviewed = replace(
            card,
            status=CardStatus.REVIEW,
            repetitions=2,
            interval=6,
            next_review_date=clock.now() - timedelta(days=count - i),
        )
        cards.append(await engine.update_card(reviewed))
    return cards


# --- Lifecycle ---


@pytest.mark.asyncio
async def test_full_session_lifecycle(engine, clock):
    cards = await add_cards(engine, 5)

    session = engine.start_session("daily", target_card_count=5, max_duration_minutes=30)
    assert session.is_active
    assert sorted(session.card_ids) == sorted(c.id for c in cards)
    assert engine.current_session is session

    while (card := engine.next_card()) is not None:
        clock.advance(seconds=10)
        await engine.record_outcome(card.id, "good", 2000)

    closed = await engine.end_session()

    assert closed.cards_reviewed == 5
    assert closed.correct_count == 5
    assert closed.accuracy_rate == 1.0
    assert closed.completion_rate == 1.0
    assert closed.average_response_time_ms == 2000
    assert closed.new_cards_reviewed == 5
    assert closed.review_cards_reviewed == 0
    assert closed.quality is SessionQuality.EXCELLENT
    assert closed.ended_at == clock.now()
    assert not closed.timed_out
    assert engine.current_session is None
    assert engine.get_session_history() == [closed]
    for card in cards:
        updated = engine.get_card(card.id)
        assert updated.status is CardStatus.REVIEW
        assert updated.interval == 1


@pytest.mark.asyncio
async def test_partial_session_completion(engine):
    await add_cards(engine, 4)
    engine.start_session(SessionType.PRACTICE, target_card_count=4)

    card = engine.next_card()
    await engine.record_outcome(card.id, "forgot", 5000)
    card = engine.next_card()
    await engine.record_outcome(card.id, "easy", 1000)
    closed = await engine.end_session()

    assert closed.type is SessionType.PRACTICE
    assert closed.cards_reviewed == 2
    assert closed.correct_count == 1
    assert closed.accuracy_rate == 0.5
    assert closed.completion_rate == 0.5


@pytest.mark.asyncio
async def test_empty_session_can_be_closed(engine):
    session = engine.start_session()
    assert session.card_ids == []
    assert engine.next_card() is None

    closed = await engine.end_session()
    assert closed.cards_reviewed == 0
    assert closed.accuracy_rate == 0.0
    assert closed.completion_rate == 0.0


@pytest.mark.asyncio
async def test_only_one_active_session(engine):
    await add_cards(engine, 2)
    session = engine.start_session()

    with pytest.raises(SessionAlreadyActive) as exc:
        engine.start_session()
    assert exc.value.session_id == session.id


@pytest.mark.asyncio
async def test_operations_without_session(engine):
    with pytest.raises(NoActiveSession):
        await engine.end_session()
    with pytest.raises(NoActiveSession):
        await engine.record_outcome("card_0001", "good", 1000)
    with pytest.raises(NoActiveSession):
        engine.next_card()


@pytest.mark.asyncio
async def test_end_session_twice(engine):
    engine.start_session()
    await engine.end_session()
    with pytest.raises(NoActiveSession):
        await engine.end_session()


def test_invalid_session_arguments(engine):
    with pytest.raises(ValueError):
        engine.start_session(target_card_count=0)
    with pytest.raises(ValueError):
        engine.start_session(max_duration_minutes=0)
    with pytest.raises(ValueError):
        engine.start_session("weekly")
    assert engine.current_session is None


def test_session_type_accepts_hyphenated_names(engine):
    session = engine.start_session("Catch-Up")
    assert session.type is SessionType.CATCH_UP


# --- Recording outcomes ---


@pytest.mark.asyncio
async def test_card_not_in_queue(engine):
    queued = await add_cards(engine, 1)
    engine.start_session(target_card_count=1)
    outsider = await engine.add_card("kw_late", "late", "tard", "")

    with pytest.raises(CardNotInQueue):
        await engine.record_outcome(outsider.id, "good", 1000)

    await engine.record_outcome(queued[0].id, "good", 1000)
    assert engine.current_session.cards_reviewed == 1


@pytest.mark.asyncio
async def test_invalid_grade_records_nothing(engine):
    cards = await add_cards(engine, 1)
    engine.start_session(target_card_count=1)

    with pytest.raises(InvalidAssessment):
        await engine.record_outcome(cards[0].id, "so-so", 1000)

    assert engine.current_session.cards_reviewed == 0
    assert engine.get_card(cards[0].id).total_reviews == 0


@pytest.mark.asyncio
async def test_failed_card_write_leaves_totals_unchanged(engine, gateway):
    cards = await add_cards(engine, 1)
    engine.start_session(target_card_count=1)
    gateway.fail = True

    with pytest.raises(StorageError):
        await engine.record_outcome(cards[0].id, "good", 1000)

    assert engine.current_session.cards_reviewed == 0
    assert engine.get_card(cards[0].id).status is CardStatus.NEW


@pytest.mark.asyncio
async def test_failed_history_write_keeps_session_open(engine, gateway):
    engine.start_session()
    gateway.fail = True

    with pytest.raises(StorageError):
        await engine.end_session()

    assert engine.current_session is not None
    assert engine.current_session.ended_at is None
    assert engine.get_session_history() == []

    gateway.fail = False
    closed = await engine.end_session()
    assert engine.get_session_history() == [closed]


# --- Timeouts ---


@pytest.mark.asyncio
async def test_outcome_after_time_limit_closes_session(engine, clock):
    cards = await add_cards(engine, 2)
    engine.start_session(target_card_count=2, max_duration_minutes=10)
    await engine.record_outcome(engine.next_card().id, "good", 1000)

    clock.advance(minutes=11)
    with pytest.raises(SessionExpired) as exc:
        await engine.record_outcome(engine.next_card().id, "good", 1000)

    closed = exc.value.session
    assert closed.timed_out
    assert closed.cards_reviewed == 1
    assert engine.current_session is None
    assert engine.get_session_history() == [closed]
    assert sum(engine.get_card(c.id).total_reviews for c in cards) == 1


@pytest.mark.asyncio
async def test_check_timeout(engine, clock):
    engine.start_session(max_duration_minutes=5)

    clock.advance(minutes=5)
    assert await engine.check_timeout() is None
    assert engine.current_session is not None

    clock.advance(seconds=1)
    closed = await engine.check_timeout()
    assert closed.timed_out
    assert engine.current_session is None
    assert await engine.check_timeout() is None


# --- Queue building ---


def test_due_quota():
    assert due_quota(20, 0.7) == 14
    assert due_quota(5, 0.7) == 3
    assert due_quota(1, 0.7) == 0
    assert due_quota(4, 1.0) == 4


@pytest.mark.asyncio
async def test_queue_mixes_due_and_new(engine, clock):
    due = await add_review_cards(engine, clock, 10)
    new = await add_cards(engine, 10, prefix="new")

    result = build_session_queue(engine.cards, 10, due_share=0.7, rng=random.Random(1))

    # Most overdue review cards are picked first
    assert result.due_ids == [c.id for c in due[:7]]
    assert result.new_ids == [c.id for c in new[:3]]
    assert result.backfill_ids == []
    assert sorted(result.queue) == sorted(result.due_ids + result.new_ids)


@pytest.mark.asyncio
async def test_queue_backfills_with_due_cards(engine, clock):
    due = await add_review_cards(engine, clock, 5)
    new = await add_cards(engine, 1, prefix="new")

    result = build_session_queue(engine.cards, 5, due_share=0.7, rng=random.Random(1))

    assert result.due_ids == [c.id for c in due[:3]]
    assert result.new_ids == [new[0].id]
    assert result.backfill_ids == [due[3].id]
    assert len(result.queue) == 5


@pytest.mark.asyncio
async def test_queue_is_shorter_when_deck_is_small(engine):
    await add_cards(engine, 2)
    session = engine.start_session(target_card_count=20)
    assert len(session.card_ids) == 2


@pytest.mark.asyncio
async def test_queue_never_repeats_a_card(engine, clock):
    await add_review_cards(engine, clock, 6)
    await add_cards(engine, 6, prefix="new")

    session = engine.start_session(target_card_count=10)
    assert len(session.card_ids) == len(set(session.card_ids)) == 10


@pytest.mark.asyncio
async def test_seeded_shuffle_is_deterministic(engine):
    await add_cards(engine, 12)

    first = build_session_queue(engine.cards, 10, rng=random.Random(42))
    second = build_session_queue(engine.cards, 10, rng=random.Random(42))

    assert first.queue == second.queue
    assert sorted(first.queue) == sorted(first.new_ids)


def test_build_queue_rejects_empty_target(engine):
    with pytest.raises(ValueError):
        build_session_queue(engine.cards, 0)


# --- Grading ---


def _graded(accuracy: float, completion: float, average_ms: float) -> SessionQuality:
    session = ReviewSession(
        id="session_x",
        type=SessionType.DAILY,
        started_at=None,
        target_card_count=10,
        max_duration_minutes=30,
        accuracy_rate=accuracy,
        completion_rate=completion,
        average_response_time_ms=average_ms,
    )
    return grade_session(session)


def test_session_quality_grades():
    assert _graded(1.0, 1.0, 3000) is SessionQuality.EXCELLENT
    assert _graded(0.7, 0.7, 3000) is SessionQuality.GOOD
    assert _graded(0.5, 0.5, 4500) is SessionQuality.AVERAGE
    assert _graded(0.1, 0.2, 9000) is SessionQuality.POOR
