"""
Statistics aggregator deriving rollups from cards and review history.

This is a pure computation module with no I/O. Calendar boundaries (day, ISO
week starting Monday, month) are taken in the configured time zone.
"""

from collections import Counter
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, tzinfo
from statistics import fmean
from zoneinfo import ZoneInfo

from mnemo.application.card_store import is_due
from mnemo.domain.constants import INITIAL_EASE_FACTOR
from mnemo.domain.models import (
    CalendarCounts,
    Card,
    CardStatus,
    ReviewOutcome,
    ReviewSession,
    StatisticsSnapshot,
    UpcomingReviews,
)


class StatisticsAggregator:
    """
    Computes a StatisticsSnapshot on demand.

    Stateless and side-effect free.
    """

    def __init__(self, zone: tzinfo | None = None, include_mastered_in_due: bool = True):
        self.zone = zone or ZoneInfo("UTC")
        self.include_mastered_in_due = include_mastered_in_due

    def snapshot(
        self,
        cards: Iterable[Card],
        sessions: Iterable[ReviewSession],
        now: datetime,
        active: ReviewSession | None = None,
    ) -> StatisticsSnapshot:
        """
        Build the statistics snapshot.

        Args:
            cards: Every stored card.
            sessions: Closed sessions (history).
            now: Reference time (timezone-aware).
            active: The open session, whose outcomes count towards activity
                but not towards overall accuracy.
        """
        cards = list(cards)
        closed = [s for s in sessions if not s.is_active]
        outcomes = collect_outcomes(closed, active)

        today = self._local_date(now)
        day_start = self._start_of(today)
        week_start = self._start_of(today - timedelta(days=today.weekday()))
        month_start = self._start_of(today.replace(day=1))

        statuses = Counter(c.status for c in cards)
        active_days = {self._local_date(o.reviewed_at) for o in outcomes}

        return StatisticsSnapshot(
            total_cards=len(cards),
            new_cards=statuses[CardStatus.NEW],
            due_cards=sum(1 for c in cards if is_due(c, now, self.include_mastered_in_due)),
            today_reviews=_count_between(outcomes, day_start, now),
            weekly_reviews=_count_between(outcomes, week_start, now),
            overall_accuracy=self._overall_accuracy(closed),
            current_streak_days=current_streak(active_days, today),
            learning_cards=statuses[CardStatus.LEARNING],
            review_cards=statuses[CardStatus.REVIEW],
            mastered_cards=statuses[CardStatus.MASTERED],
            suspended_cards=sum(1 for c in cards if c.suspended),
            monthly_reviews=_count_between(outcomes, month_start, now),
            average_response_time_ms=(
                fmean(o.response_time_ms for o in outcomes) if outcomes else 0.0
            ),
            longest_streak_days=longest_streak(active_days),
            average_ease_factor=(
                round(fmean(c.ease_factor for c in cards), 2) if cards else INITIAL_EASE_FACTOR
            ),
            upcoming=self._upcoming(cards, now, today),
        )

    def calendar(
        self,
        sessions: Iterable[ReviewSession],
        year: int,
        month: int,
        active: ReviewSession | None = None,
    ) -> CalendarCounts:
        """Outcome counts per local day for one month."""
        counts: CalendarCounts = {}
        for outcome in collect_outcomes(sessions, active):
            day = self._local_date(outcome.reviewed_at)
            if day.year == year and day.month == month:
                counts[day] = counts.get(day, 0) + 1
        return dict(sorted(counts.items()))

    def _overall_accuracy(self, closed: list[ReviewSession]) -> float:
        reviewed = sum(s.cards_reviewed for s in closed)
        if reviewed == 0:
            return 0.0
        return sum(s.correct_count for s in closed) / reviewed

    def _upcoming(self, cards: list[Card], now: datetime, today: date) -> UpcomingReviews:
        tomorrow = self._start_of(today + timedelta(days=1))
        day_after = self._start_of(today + timedelta(days=2))
        next_week = self._start_of(today + timedelta(days=7 - today.weekday()))
        week_after = self._start_of(today + timedelta(days=14 - today.weekday()))

        pending = [
            c.next_review_date for c in cards if not c.suspended and c.next_review_date > now
        ]
        return UpcomingReviews(
            today=sum(1 for d in pending if d < tomorrow),
            tomorrow=sum(1 for d in pending if tomorrow <= d < day_after),
            this_week=sum(1 for d in pending if d < next_week),
            next_week=sum(1 for d in pending if next_week <= d < week_after),
        )

    def _local_date(self, moment: datetime) -> date:
        return moment.astimezone(self.zone).date()

    def _start_of(self, day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=self.zone)


def collect_outcomes(
    sessions: Iterable[ReviewSession], active: ReviewSession | None = None
) -> list[ReviewOutcome]:
    outcomes = [o for s in sessions for o in s.outcomes]
    if active is not None:
        outcomes.extend(active.outcomes)
    return outcomes


def current_streak(active_days: set[date], today: date) -> int:
    """
    Consecutive days with activity, counting back from today.

    A day without outcomes (today included) ends the streak.
    """
    streak = 0
    day = today
    while day in active_days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def longest_streak(active_days: set[date]) -> int:
    longest = 0
    run = 0
    previous: date | None = None
    for day in sorted(active_days):
        run = run + 1 if previous is not None and day - previous == timedelta(days=1) else 1
        longest = max(longest, run)
        previous = day
    return longest


def _count_between(outcomes: list[ReviewOutcome], start: datetime, end: datetime) -> int:
    # Outcomes stamped exactly at `end` belong to the window
    return sum(1 for o in outcomes if start <= o.reviewed_at <= end)
