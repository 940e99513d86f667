"""
Progress Stats Service: Application layer orchestrator.

Reads progress records from the ledger and summarizes them.
"""

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from lexis.application.ledger import ProgressLedger
from lexis.domain.constants import QUALITY_WINDOW
from lexis.domain.models import ReviewResult, ReviewStatus

from .metrics_calculator import WordStats, WordStatsCalculator

logger = logging.getLogger(__name__)


@dataclass
class OverallStats:
    total_words: int = 0
    status_counts: dict[str, int] = field(default_factory=dict)
    due_count: int = 0
    reviewed_today: int = 0
    average_success_rate: float = 0.0
    current_streak: int = 0
    longest_streak: int = 0


class ProgressStatsService:
    """
    Application service for summarizing learning progress.

    Args:
        ledger: The ledger holding the records to summarize.
        calculator: Optional custom calculator; uses default if not provided.
    """

    def __init__(self, ledger: ProgressLedger, calculator: WordStatsCalculator | None = None):
        self._ledger = ledger
        self._calc = calculator or WordStatsCalculator()

    def overall(self, now: datetime) -> OverallStats:
        records = list(self._ledger.records())
        counts = Counter(r.status.value for r in records)
        reviewed = [r for r in records if r.review_count > 0]
        average = sum(r.success_rate for r in reviewed) / len(reviewed) if reviewed else 0.0
        streak = self._ledger.streak

        return OverallStats(
            total_words=len(records),
            status_counts={s.value: counts.get(s.value, 0) for s in ReviewStatus},
            due_count=len(self._ledger.due_items(now)),
            reviewed_today=self._ledger.today_stats(now).cards_studied,
            average_success_rate=average,
            current_streak=streak.current_streak,
            longest_streak=streak.longest_streak,
        )

    def word_stats(self, item_ids: Iterable[str], now: datetime) -> list[WordStats]:
        """
        Enrich the records of ``item_ids``; ids without a record are skipped.
        """
        stats = []
        for item_id in item_ids:
            record = self._ledger.get(item_id)
            if record is None:
                logger.debug(f"No progress for {item_id}")
                continue
            stats.append(self._calc.enrich(record, now))
        return stats

    def struggling_words(
        self,
        now: datetime,
        success_threshold: float = 0.6,
        min_reviews: int = 3,
    ) -> list[WordStats]:
        """
        Identify words the learner keeps forgetting.

        A word is struggling if:
        - it has at least ``min_reviews`` reviews and a success rate below
          ``success_threshold``, OR
        - it was forgotten within its last few reviews.

        Returns:
            Struggling words, lowest success rate first.
        """
        struggling = []
        for record in self._ledger.records():
            if record.review_count == 0 or record.suspended:
                continue

            low_rate = (
                record.review_count >= min_reviews
                and record.success_rate < success_threshold
            )
            recent_lapse = any(
                e.result is ReviewResult.NOT_REMEMBER
                for e in record.review_history[-QUALITY_WINDOW:]
            )
            if low_rate or recent_lapse:
                struggling.append(self._calc.enrich(record, now))

        return sorted(struggling, key=lambda s: (s.success_rate or 0.0, s.item_id))
