"""
Domain models for the spaced-repetition engine.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from .constants import DEFAULT_DIFFICULTY_HINT, DEFAULT_PRIORITY, INITIAL_EASE_FACTOR
from .errors import InvalidAssessment


class CardStatus(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    MASTERED = "mastered"


class SessionType(str, Enum):
    DAILY = "daily"
    CATCH_UP = "catch_up"
    PRACTICE = "practice"


class SessionQuality(str, Enum):
    POOR = "poor"
    AVERAGE = "average"
    GOOD = "good"
    EXCELLENT = "excellent"


class Assessment(str, Enum):
    """The learner's self-rating after revealing a card."""

    FORGOT = "forgot"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"
    PERFECT = "perfect"

    @property
    def is_correct(self) -> bool:
        return self is not Assessment.FORGOT and self is not Assessment.HARD

    @classmethod
    def parse(cls, value: "Assessment | str") -> "Assessment":
        """
        Coerce external input (enum member, value or name) into an Assessment.

        Raises:
            InvalidAssessment: if the value is not one of the five grades.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for member in cls:
                if key == member.value or key == member.name.lower():
                    return member
        raise InvalidAssessment(value)


@dataclass(frozen=True)
class CardContext:
    """
    Optional learning context attached to a card.

    Attributes:
        difficulty_hint: Author-estimated difficulty (1-5).
        source_tag: Free-form grouping such as a topic or interest.
        image_ref: Optional illustration asset reference.
        story_id: Story/video the keyword was picked up from.
        priority: Relative importance (1-10).
    """

    difficulty_hint: int = DEFAULT_DIFFICULTY_HINT
    source_tag: str | None = None
    image_ref: str | None = None
    story_id: str | None = None
    priority: int = DEFAULT_PRIORITY


@dataclass(frozen=True)
class Card:
    """
    One learnable item and its scheduling state.

    Cards are immutable values; the scheduler and the store produce
    replacements via dataclasses.replace.
    """

    id: str
    keyword_id: str
    word: str
    translation: str
    audio_ref: str
    created_at: datetime
    next_review_date: datetime

    # SM-2 state
    ease_factor: float = INITIAL_EASE_FACTOR
    interval: int = 0  # days
    repetitions: int = 0  # consecutive successes since the last failure
    status: CardStatus = CardStatus.NEW
    suspended: bool = False

    context: CardContext = field(default_factory=CardContext)

    # Observational counters, never read by the scheduler
    total_reviews: int = 0
    correct_reviews: int = 0
    average_response_time_ms: float = 0.0
    last_reviewed_at: datetime | None = None


@dataclass(frozen=True)
class ReviewOutcome:
    """A single recorded review inside a session."""

    card_id: str
    assessment: Assessment
    response_time_ms: int
    reviewed_at: datetime
    correct: bool
    previous_status: CardStatus
    new_status: CardStatus


@dataclass
class ReviewSession:
    """
    One bounded review run.

    Running totals are updated while the session is active (ended_at is None);
    derived rates are filled in when it is closed.
    """

    id: str
    type: SessionType
    started_at: datetime
    target_card_count: int
    max_duration_minutes: int
    card_ids: list[str] = field(default_factory=list)
    ended_at: datetime | None = None

    # Running totals
    cards_reviewed: int = 0
    correct_count: int = 0
    total_response_time_ms: int = 0
    outcomes: list[ReviewOutcome] = field(default_factory=list)

    # Derived on close
    accuracy_rate: float = 0.0
    average_response_time_ms: float = 0.0
    completion_rate: float = 0.0
    new_cards_reviewed: int = 0
    review_cards_reviewed: int = 0
    mastered_cards: int = 0
    quality: SessionQuality | None = None
    timed_out: bool = False

    @property
    def is_active(self) -> bool:
        return self.ended_at is None

    @property
    def duration_minutes(self) -> float:
        if self.ended_at is None:
            return 0.0
        return (self.ended_at - self.started_at).total_seconds() / 60.0


@dataclass
class EngineState:
    """Everything the persistence gateway stores: the card set and session history."""

    cards: dict[str, Card] = field(default_factory=dict)
    sessions: list[ReviewSession] = field(default_factory=list)


@dataclass(frozen=True)
class UpcomingReviews:
    """Forecast of reviews that are not due yet."""

    today: int = 0
    tomorrow: int = 0
    this_week: int = 0
    next_week: int = 0


@dataclass(frozen=True)
class StatisticsSnapshot:
    """Derived rollups over the card set and review history. Never stored."""

    total_cards: int
    new_cards: int
    due_cards: int
    today_reviews: int
    weekly_reviews: int
    overall_accuracy: float
    current_streak_days: int

    learning_cards: int = 0
    review_cards: int = 0
    mastered_cards: int = 0
    suspended_cards: int = 0
    monthly_reviews: int = 0
    average_response_time_ms: float = 0.0
    longest_streak_days: int = 0
    average_ease_factor: float = INITIAL_EASE_FACTOR
    upcoming: UpcomingReviews = field(default_factory=UpcomingReviews)


CalendarCounts = dict[date, int]
