"""
Metrics calculator for deriving insights from progress records.

This is a pure computation module with no I/O.
"""

from dataclasses import dataclass
from datetime import datetime

from lexis.domain.models import Difficulty, ProgressRecord, ReviewStatus

SECONDS_PER_DAY = 86400


@dataclass
class WordStats:
    """
    A progress record enriched with computed metrics.
    """

    item_id: str
    status: ReviewStatus
    difficulty: Difficulty
    review_count: int
    success_count: int
    failure_count: int
    current_interval: int
    ease_factor: float
    next_review_at: datetime | None

    # Computed metrics
    success_rate: float | None  # None until first review
    days_since_last_review: int | None
    days_overdue: int | None  # Negative if not yet due
    is_due: bool


class WordStatsCalculator:
    """
    Computes derived metrics from ProgressRecord objects.

    Stateless and side-effect free.
    """

    def enrich(self, record: ProgressRecord, now: datetime) -> WordStats:
        return WordStats(
            item_id=record.item_id,
            status=record.status,
            difficulty=record.difficulty,
            review_count=record.review_count,
            success_count=record.success_count,
            failure_count=record.failure_count,
            current_interval=record.current_interval,
            ease_factor=record.ease_factor,
            next_review_at=record.next_review_at,
            success_rate=record.success_rate if record.review_count else None,
            days_since_last_review=self._days_since_last_review(record, now),
            days_overdue=self._days_overdue(record, now),
            is_due=record.is_due(now),
        )

    def _days_since_last_review(self, record: ProgressRecord, now: datetime) -> int | None:
        if record.last_review_at is None:
            return None
        return int((now - record.last_review_at).total_seconds() // SECONDS_PER_DAY)

    def _days_overdue(self, record: ProgressRecord, now: datetime) -> int | None:
        """
        Whole days past the due date (negative if not yet due).
        """
        if record.next_review_at is None:
            return None
        return int((now - record.next_review_at).total_seconds() // SECONDS_PER_DAY)
