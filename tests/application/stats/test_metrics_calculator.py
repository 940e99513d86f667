from datetime import timedelta

import pytest

from lexis.application.stats import ProgressStatsService, WordStatsCalculator
from lexis.domain.models import Difficulty, ProgressRecord, ReviewResult, ReviewStatus

R = ReviewResult.REMEMBER
N = ReviewResult.NOT_REMEMBER


@pytest.fixture
def calculator():
    return WordStatsCalculator()


def test_enrich_new_record(calculator, clock):
    record = ProgressRecord(item_id="fr:chat", created_at=clock.now, updated_at=clock.now)
    stats = calculator.enrich(record, clock.now)

    assert stats.status is ReviewStatus.NEW
    assert stats.difficulty is Difficulty.NEW
    assert stats.success_rate is None
    assert stats.days_since_last_review is None
    assert stats.days_overdue is None
    assert stats.is_due


def test_enrich_overdue_record(calculator, clock):
    record = ProgressRecord(
        item_id="fr:chat",
        review_count=4,
        success_count=3,
        failure_count=1,
        current_interval=6,
        last_review_at=clock.now - timedelta(days=9),
        next_review_at=clock.now - timedelta(days=3),
        created_at=clock.now,
        updated_at=clock.now,
    )
    stats = calculator.enrich(record, clock.now)

    assert stats.success_rate == 0.75
    assert stats.days_since_last_review == 9
    assert stats.days_overdue == 3
    assert stats.is_due


def test_days_overdue_negative_before_due(calculator, ledger, clock):
    record = ledger.record_review("fr:chat", R).value.record
    stats = calculator.enrich(record, clock.now)
    assert stats.days_overdue == -1
    assert not stats.is_due


def test_overall_stats(ledger, clock):
    ledger.record_review("fr:chat", R)
    ledger.record_review("fr:chien", N)
    ledger.get_or_create("fr:merci")

    overall = ProgressStatsService(ledger).overall(clock.now)

    assert overall.total_words == 3
    assert overall.status_counts["new"] == 1
    assert overall.status_counts["learning"] == 2
    assert overall.status_counts["mastered"] == 0
    assert overall.due_count == 1
    assert overall.reviewed_today == 2
    assert overall.average_success_rate == pytest.approx(0.5)
    assert overall.current_streak == 1


def test_word_stats_skips_unknown_ids(ledger, clock):
    ledger.record_review("fr:chat", R)
    stats = ProgressStatsService(ledger).word_stats(["fr:chat", "fr:nope"], clock.now)
    assert [s.item_id for s in stats] == ["fr:chat"]


def test_struggling_words(ledger, clock):
    for result in (R, R, R, R):
        ledger.record_review("fr:chat", result)
    for result in (N, R, N, N):
        ledger.record_review("fr:chien", result)
    ledger.record_review("fr:maison", N)
    ledger.suspend("fr:maison")

    struggling = ProgressStatsService(ledger).struggling_words(clock.now)

    assert [s.item_id for s in struggling] == ["fr:chien"]
    assert struggling[0].success_rate == 0.25
