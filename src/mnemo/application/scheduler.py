"""
SuperMemo-2 scheduler.

This is a pure computation module with no I/O: given a card, the learner's
assessment and the review time, it returns the card's next state.
"""

import math
from dataclasses import replace
from datetime import datetime, timedelta

from mnemo.domain import constants
from mnemo.domain.models import Assessment, Card, CardStatus

QUALITY_SCORES: dict[Assessment, int] = {
    Assessment.FORGOT: 0,
    Assessment.HARD: 3,
    Assessment.GOOD: 4,
    Assessment.EASY: 5,
    Assessment.PERFECT: 5,
}


def quality_of(assessment: Assessment | str) -> int:
    """Map an assessment onto the SM-2 0-5 quality scale."""
    return QUALITY_SCORES[Assessment.parse(assessment)]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class Scheduler:
    """
    Computes a card's next review state.

    Stateless and side-effect free; the configuration only fixes the
    algorithm's constants.
    """

    def __init__(
        self,
        mastery_threshold: int = constants.MASTERY_THRESHOLD,
        min_ease_factor: float = constants.MIN_EASE_FACTOR,
        max_ease_factor: float | None = None,
        perfect_bonus: float = constants.PERFECT_BONUS,
    ):
        self.mastery_threshold = mastery_threshold
        self.min_ease_factor = min_ease_factor
        self.max_ease_factor = max_ease_factor
        self.perfect_bonus = perfect_bonus

    def schedule(
        self,
        card: Card,
        assessment: Assessment | str,
        response_time_ms: int,
        now: datetime,
    ) -> Card:
        """
        Apply one review to a card.

        Args:
            card: The card's state before the review.
            assessment: The learner's self-rating.
            response_time_ms: Time to answer; recorded, never used for scheduling.
            now: Review time (timezone-aware).

        Returns:
            The updated card. The input card is left untouched.

        Raises:
            InvalidAssessment: if the assessment is not one of the five grades.
            ValueError: if response_time_ms is negative or not an integer.
        """
        grade = Assessment.parse(assessment)
        if isinstance(response_time_ms, bool) or not isinstance(response_time_ms, int):
            raise ValueError(f"response_time_ms must be whole milliseconds: {response_time_ms!r}")
        if response_time_ms < 0:
            raise ValueError(f"response_time_ms must not be negative: {response_time_ms}")

        reviewed = self._record_review(card, grade, response_time_ms, now)
        quality = QUALITY_SCORES[grade]

        if quality < constants.PASSING_QUALITY:
            return replace(
                reviewed,
                repetitions=0,
                interval=constants.FAILURE_INTERVAL,
                ease_factor=self._clamp_ease(card.ease_factor - constants.FAILURE_EASE_PENALTY),
                status=CardStatus.LEARNING,
                next_review_date=now + timedelta(days=constants.FAILURE_INTERVAL),
            )

        ease = self._clamp_ease(card.ease_factor + self.ease_delta(quality))
        interval = self._next_interval(card, ease, grade)
        repetitions = card.repetitions + 1
        status = (
            CardStatus.MASTERED
            if repetitions >= self.mastery_threshold
            else CardStatus.REVIEW
        )

        return replace(
            reviewed,
            repetitions=repetitions,
            interval=interval,
            ease_factor=ease,
            status=status,
            next_review_date=now + timedelta(days=interval),
        )

    @staticmethod
    def ease_delta(quality: int) -> float:
        """SM-2 ease adjustment: +0.1 at q=5, 0 at q=4, -0.14 at q=3."""
        miss = 5 - quality
        return 0.1 - miss * (0.08 + miss * 0.02)

    def _clamp_ease(self, ease: float) -> float:
        ease = max(self.min_ease_factor, ease)
        if self.max_ease_factor is not None:
            ease = min(self.max_ease_factor, ease)
        return ease

    def _next_interval(self, card: Card, ease: float, grade: Assessment) -> int:
        # Growth rule is chosen by the repetition count before this review
        if card.repetitions == 0:
            raw = float(constants.FIRST_INTERVAL)
        elif card.repetitions == 1:
            raw = float(constants.SECOND_INTERVAL)
        else:
            raw = card.interval * ease

        if grade is Assessment.PERFECT:
            raw *= self.perfect_bonus

        return max(1, round_half_up(raw))

    @staticmethod
    def _record_review(
        card: Card, grade: Assessment, response_time_ms: int, now: datetime
    ) -> Card:
        total = card.total_reviews + 1
        average = (card.average_response_time_ms * card.total_reviews + response_time_ms) / total
        return replace(
            card,
            total_reviews=total,
            correct_reviews=card.correct_reviews + (1 if grade.is_correct else 0),
            average_response_time_ms=average,
            last_reviewed_at=now,
        )
