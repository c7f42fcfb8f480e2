"""
Queue builder for review sessions.

Builds a session queue by:
1. Taking overdue review cards, most overdue first, up to the due share
2. Filling the remaining slots with new cards, oldest first
3. Backfilling with further due cards when new cards run short
4. Shuffling the result so position carries no information
"""

import logging
import math
import random
from dataclasses import dataclass

from mnemo.domain import constants
from mnemo.domain.models import Card, CardStatus

from .card_store import CardStore

logger = logging.getLogger(__name__)


@dataclass
class QueueBuildResult:
    """Result of queue building operation."""

    queue: list[str]  # Shuffled card ids, the session's review order
    due_ids: list[str]  # Review cards picked within the due share
    new_ids: list[str]  # New cards picked for the remaining slots
    backfill_ids: list[str]  # Extra due cards used because new cards ran short


def due_quota(target: int, due_share: float = constants.DUE_SHARE) -> int:
    """Number of queue slots reserved for due review cards."""
    return min(target, math.floor(target * due_share))


def build_session_queue(
    cards: CardStore,
    target: int,
    due_share: float = constants.DUE_SHARE,
    rng: random.Random | None = None,
) -> QueueBuildResult:
    """
    Compose and shuffle the queue for a new session.

    Args:
        cards: Card store to draw from.
        target: Desired number of cards in the queue.
        due_share: Fraction of the target reserved for due review cards.
        rng: Random source for the shuffle; seed it for deterministic order.

    Returns:
        QueueBuildResult with the shuffled queue and its composition.
    """
    if target < 1:
        raise ValueError(f"target must be at least 1: {target}")

    # New cards are due from creation; they are drawn separately below
    due_reviews = [c for c in cards.get_due_cards() if c.status is not CardStatus.NEW]

    quota = due_quota(target, due_share)
    due = due_reviews[:quota]
    new = cards.get_new_cards(limit=target - len(due))
    backfill = due_reviews[quota : quota + target - len(due) - len(new)]

    queue = _ids(due) + _ids(new) + _ids(backfill)
    (rng or random.Random()).shuffle(queue)

    logger.debug(
        f"Built queue of {len(queue)}/{target}: "
        f"due={len(due)} new={len(new)} backfill={len(backfill)}"
    )

    return QueueBuildResult(
        queue=queue,
        due_ids=_ids(due),
        new_ids=_ids(new),
        backfill_ids=_ids(backfill),
    )


def _ids(cards: list[Card]) -> list[str]:
    return [c.id for c in cards]
