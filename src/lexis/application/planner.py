"""
Session planner: turns a candidate pool into the fixed card order of a session.

Ordering:
1. New cards first (shuffled), so fresh vocabulary is never starved.
2. Reviewable cards bucketed by difficulty, shuffled within each bucket,
   then interleaved easy -> medium -> hard to avoid long same-difficulty runs.
3. The new/review ratio decides how many of each make the cut.

Randomness comes from an injectable ``random.Random`` so plans are
reproducible under a fixed seed.
"""

import logging
import random
from collections.abc import Sequence

from lexis.application.utils.numbers import round_half_up
from lexis.domain.models import Difficulty, VocabularyCard

logger = logging.getLogger(__name__)

INTERLEAVE_ORDER = (Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD)


def interleave(buckets: Sequence[Sequence[VocabularyCard]]) -> list[VocabularyCard]:
    """Round-robin merge: one card from each bucket per pass, in bucket order."""
    arranged: list[VocabularyCard] = []
    longest = max((len(b) for b in buckets), default=0)
    for i in range(longest):
        for bucket in buckets:
            if i < len(bucket):
                arranged.append(bucket[i])
    return arranged


def split_quota(
    total_needed: int, new_review_ratio: int, new_available: int, review_available: int
) -> tuple[int, int]:
    """
    Decide how many new and review cards to take.

    The ratio sets the target split; a pool that cannot meet its share is
    topped up from the other one, so the sum is always ``total_needed``
    (callers guarantee ``total_needed <= new_available + review_available``).
    """
    new_needed = round_half_up(new_review_ratio / 100 * total_needed)
    review_needed = total_needed - new_needed

    new_taken = min(new_needed, new_available)
    review_taken = min(review_needed, review_available)

    shortfall = total_needed - new_taken - review_taken
    if shortfall > 0:
        extra_new = min(shortfall, new_available - new_taken)
        new_taken += extra_new
        review_taken += min(shortfall - extra_new, review_available - review_taken)

    return new_taken, review_taken


class SessionPlanner:
    """
    Builds the ordered card list for a new session.

    Args:
        rng: Random generator used for shuffling; defaults to a fresh
            ``random.Random()``. Pass a seeded instance for reproducible plans.
    """

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()

    def _shuffled(self, cards: Sequence[VocabularyCard]) -> list[VocabularyCard]:
        shuffled = list(cards)
        self._rng.shuffle(shuffled)
        return shuffled

    def order_reviewable(self, cards: Sequence[VocabularyCard]) -> list[VocabularyCard]:
        buckets = [
            self._shuffled([c for c in cards if c.difficulty is tier])
            for tier in INTERLEAVE_ORDER
        ]
        return interleave(buckets)

    def plan(
        self,
        candidates: Sequence[VocabularyCard],
        round_size: int,
        new_review_ratio: int,
        total_rounds_hint: int,
    ) -> list[VocabularyCard]:
        """
        Produce the session's card order.

        Args:
            candidates: Cards to choose from; duplicate ids are dropped.
            round_size: Cards per round.
            new_review_ratio: Target percentage (0-100) of new cards.
            total_rounds_hint: Maximum number of rounds to fill.

        Returns:
            ``min(round_size * total_rounds_hint, len(pool))`` cards, new first.
            Empty when the pool is empty.
        """
        pool: dict[str, VocabularyCard] = {}
        for card in candidates:
            pool.setdefault(card.id, card)
        if not pool:
            return []

        new_cards = self._shuffled([c for c in pool.values() if c.difficulty is Difficulty.NEW])
        reviewable = self.order_reviewable(
            [c for c in pool.values() if c.difficulty is not Difficulty.NEW]
        )

        total_needed = min(round_size * max(total_rounds_hint, 0), len(pool))
        new_taken, review_taken = split_quota(
            total_needed, new_review_ratio, len(new_cards), len(reviewable)
        )

        logger.debug(
            f"Planned {new_taken} new + {review_taken} review cards "
            f"from a pool of {len(new_cards)} new / {len(reviewable)} reviewable"
        )
        return new_cards[:new_taken] + reviewable[:review_taken]
