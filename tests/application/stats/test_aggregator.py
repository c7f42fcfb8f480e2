from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from mnemo.application.stats import StatisticsAggregator, current_streak, longest_streak
from mnemo.domain.models import (
    Assessment,
    Card,
    CardStatus,
    ReviewOutcome,
    ReviewSession,
    SessionType,
)

# Wednesday
NOW = datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def aggregator():
    return StatisticsAggregator()


def make_card(card_id: str, **overrides) -> Card:
    fields = dict(
        id=card_id,
        keyword_id=f"kw_{card_id}",
        word=card_id,
        translation=card_id,
        audio_ref="",
        created_at=NOW - timedelta(days=10),
        next_review_date=NOW,
    )
    fields.update(overrides)
    return Card(**fields)


def outcome(at: datetime, correct: bool = True, response_time_ms: int = 2000) -> ReviewOutcome:
    return ReviewOutcome(
        card_id="c1",
        assessment=Assessment.GOOD if correct else Assessment.FORGOT,
        response_time_ms=response_time_ms,
        reviewed_at=at,
        correct=correct,
        previous_status=CardStatus.REVIEW,
        new_status=CardStatus.REVIEW if correct else CardStatus.LEARNING,
    )


def closed_session(*outcomes: ReviewOutcome, session_id: str = "s1") -> ReviewSession:
    started = min(o.reviewed_at for o in outcomes)
    return ReviewSession(
        id=session_id,
        type=SessionType.DAILY,
        started_at=started,
        target_card_count=len(outcomes),
        max_duration_minutes=30,
        ended_at=max(o.reviewed_at for o in outcomes),
        cards_reviewed=len(outcomes),
        correct_count=sum(1 for o in outcomes if o.correct),
        outcomes=list(outcomes),
    )


# --- Empty deck ---


def test_empty_snapshot(aggregator):
    snap = aggregator.snapshot([], [], NOW)

    assert snap.total_cards == 0
    assert snap.new_cards == 0
    assert snap.due_cards == 0
    assert snap.today_reviews == 0
    assert snap.weekly_reviews == 0
    assert snap.overall_accuracy == 0.0
    assert snap.current_streak_days == 0
    assert snap.average_ease_factor == 2.5
    assert snap.average_response_time_ms == 0.0


# --- Card counts ---


def test_card_counts(aggregator):
    cards = [
        make_card("new"),
        make_card("learning", status=CardStatus.LEARNING, ease_factor=2.3),
        make_card(
            "review",
            status=CardStatus.REVIEW,
            ease_factor=2.6,
            next_review_date=NOW + timedelta(days=3),
        ),
        make_card("mastered", status=CardStatus.MASTERED, next_review_date=NOW - timedelta(1)),
        make_card("paused", status=CardStatus.REVIEW, suspended=True),
    ]
    snap = aggregator.snapshot(cards, [], NOW)

    assert snap.total_cards == 5
    assert snap.new_cards == 1
    assert snap.learning_cards == 1
    assert snap.review_cards == 2
    assert snap.mastered_cards == 1
    assert snap.suspended_cards == 1
    # new, learning and the overdue mastered card
    assert snap.due_cards == 3
    assert snap.average_ease_factor == pytest.approx(2.48)


def test_mastered_cards_left_out_of_due_when_configured():
    aggregator = StatisticsAggregator(include_mastered_in_due=False)
    cards = [make_card("m", status=CardStatus.MASTERED, next_review_date=NOW - timedelta(1))]
    assert aggregator.snapshot(cards, [], NOW).due_cards == 0


# --- Activity windows ---


def test_today_week_month_counts(aggregator):
    session = closed_session(
        outcome(datetime(2026, 3, 1, 18, 0, tzinfo=timezone.utc)),  # Sunday, last week
        outcome(datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)),  # Monday
        outcome(datetime(2026, 3, 4, 8, 0, tzinfo=timezone.utc)),  # today
        outcome(datetime(2026, 2, 27, 9, 0, tzinfo=timezone.utc)),  # previous month
    )
    snap = aggregator.snapshot([], [session], NOW)

    assert snap.today_reviews == 1
    assert snap.weekly_reviews == 2
    assert snap.monthly_reviews == 3


def test_outcome_stamped_at_now_counts_today(aggregator):
    session = closed_session(outcome(NOW))
    assert aggregator.snapshot([], [session], NOW).today_reviews == 1


def test_day_boundaries_follow_time_zone():
    tokyo = StatisticsAggregator(zone=ZoneInfo("Asia/Tokyo"))
    late = datetime(2026, 3, 3, 16, 30, tzinfo=timezone.utc)  # 01:30 on the 4th in Tokyo
    session = closed_session(outcome(late))

    assert tokyo.snapshot([], [session], NOW).today_reviews == 1
    assert StatisticsAggregator().snapshot([], [session], NOW).today_reviews == 0
    assert tokyo.calendar([session], 2026, 3) == {date(2026, 3, 4): 1}


# --- Accuracy ---


def test_overall_accuracy_uses_closed_sessions_only(aggregator):
    closed = closed_session(
        outcome(NOW - timedelta(hours=3)),
        outcome(NOW - timedelta(hours=3)),
        outcome(NOW - timedelta(hours=3)),
        outcome(NOW - timedelta(hours=3), correct=False),
    )
    active = ReviewSession(
        id="s2",
        type=SessionType.PRACTICE,
        started_at=NOW - timedelta(minutes=5),
        target_card_count=10,
        max_duration_minutes=30,
        cards_reviewed=2,
        correct_count=0,
        outcomes=[outcome(NOW, correct=False), outcome(NOW, correct=False)],
    )
    snap = aggregator.snapshot([], [closed], NOW, active=active)

    assert snap.overall_accuracy == 0.75
    assert snap.today_reviews == 6


def test_average_response_time(aggregator):
    session = closed_session(
        outcome(NOW, response_time_ms=1000), outcome(NOW, response_time_ms=3000)
    )
    assert aggregator.snapshot([], [session], NOW).average_response_time_ms == 2000


# --- Streaks ---


def test_current_streak_counts_back_from_today():
    today = date(2026, 3, 4)
    days = {date(2026, 3, 4), date(2026, 3, 3), date(2026, 3, 2), date(2026, 2, 27)}
    assert current_streak(days, today) == 3


def test_current_streak_is_zero_without_activity_today():
    assert current_streak({date(2026, 3, 3), date(2026, 3, 2)}, date(2026, 3, 4)) == 0


def test_longest_streak():
    days = {
        date(2026, 1, 1),
        date(2026, 1, 2),
        date(2026, 1, 3),
        date(2026, 1, 4),
        date(2026, 2, 10),
        date(2026, 2, 11),
    }
    assert longest_streak(days) == 4
    assert longest_streak(set()) == 0


def test_streaks_in_snapshot(aggregator):
    session = closed_session(
        outcome(NOW - timedelta(days=1)),
        outcome(NOW),
        outcome(NOW - timedelta(days=5)),
    )
    snap = aggregator.snapshot([], [session], NOW)

    assert snap.current_streak_days == 2
    assert snap.longest_streak_days == 2


# --- Forecast and calendar ---


def test_upcoming_reviews(aggregator):
    cards = [
        make_card("later_today", next_review_date=NOW + timedelta(hours=3)),
        make_card("tomorrow", next_review_date=NOW + timedelta(days=1)),
        make_card("saturday", next_review_date=NOW + timedelta(days=3)),
        make_card("next_tuesday", next_review_date=NOW + timedelta(days=6)),
        make_card("overdue", next_review_date=NOW - timedelta(days=1)),
        make_card(
            "paused", next_review_date=NOW + timedelta(hours=1), suspended=True
        ),
    ]
    upcoming = aggregator.snapshot(cards, [], NOW).upcoming

    assert upcoming.today == 1
    assert upcoming.tomorrow == 1
    assert upcoming.this_week == 3
    assert upcoming.next_week == 1


def test_calendar_groups_by_day(aggregator):
    session = closed_session(
        outcome(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)),
        outcome(datetime(2026, 3, 2, 21, 0, tzinfo=timezone.utc)),
        outcome(datetime(2026, 3, 4, 9, 0, tzinfo=timezone.utc)),
        outcome(datetime(2026, 4, 1, 9, 0, tzinfo=timezone.utc)),
    )
    counts = aggregator.calendar([session], 2026, 3)

    assert counts == {date(2026, 3, 2): 2, date(2026, 3, 4): 1}
    assert list(counts) == sorted(counts)
