from datetime import datetime, timedelta, timezone

import pytest

from lexis.application import scheduler
from lexis.domain.models import (
    ProgressRecord,
    ReviewHistoryEntry,
    ReviewResult,
    ReviewStatus,
)

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
R = ReviewResult.REMEMBER
N = ReviewResult.NOT_REMEMBER


def entry(result):
    return ReviewHistoryEntry(
        timestamp=T0, result=result, response_time=0, interval_before=1, ease_factor_before=2.5
    )


@pytest.fixture
def fresh():
    return ProgressRecord(item_id="fr:chat", created_at=T0, updated_at=T0)


def test_first_second_and_third_success_intervals(fresh):
    first = scheduler.schedule_next(fresh, R, T0)
    assert first.current_interval == 1
    assert first.next_review_at == T0 + timedelta(days=1)

    second = scheduler.schedule_next(first, R, T0 + timedelta(days=1))
    assert second.current_interval == 6

    third = scheduler.schedule_next(second, R, T0 + timedelta(days=7))
    assert third.current_interval == 15  # 6 * 2.5
    assert third.status is ReviewStatus.REVIEW


def test_ease_never_exceeds_maximum(fresh):
    record = fresh
    for _ in range(5):
        record = scheduler.schedule_next(record, R, T0)
    assert record.ease_factor == 2.5


def test_not_remember_resets_interval_and_lowers_ease(fresh):
    record = ProgressRecord(
        item_id="fr:chat",
        review_count=3,
        success_count=3,
        current_interval=15,
        ease_factor=2.5,
        created_at=T0,
        updated_at=T0,
    )
    updated = scheduler.schedule_next(record, N, T0)
    assert updated.current_interval == 1
    assert updated.ease_factor == pytest.approx(2.3)
    assert updated.failure_count == 1
    assert updated.review_count == 4
    assert updated.status is ReviewStatus.LEARNING
    assert updated.last_result is N


def test_ease_floor_on_repeated_failure(fresh):
    record = fresh
    for _ in range(10):
        record = scheduler.schedule_next(record, N, T0)
        assert record.ease_factor >= 1.3
    assert record.ease_factor == pytest.approx(1.3)


def test_quality_uses_last_three_reviews_including_current():
    record = ProgressRecord(
        item_id="fr:chien",
        review_count=2,
        success_count=1,
        failure_count=1,
        ease_factor=2.0,
        review_history=(entry(R), entry(N)),
        created_at=T0,
        updated_at=T0,
    )
    updated = scheduler.schedule_next(record, R, T0)
    # window [R, N, R] -> rate 0.67 -> quality 3 -> ease - 0.14
    assert updated.ease_factor == pytest.approx(1.86)
    assert updated.current_interval == 6


def test_interval_halves_round_up():
    record = ProgressRecord(
        item_id="fr:merci",
        review_count=2,
        success_count=2,
        current_interval=5,
        ease_factor=1.5,
        created_at=T0,
        updated_at=T0,
    )
    updated = scheduler.schedule_next(record, R, T0)
    assert updated.current_interval == 8  # 7.5 rounds up


@pytest.mark.parametrize(
    "results, expected",
    [
        ([], 3),
        ([R, R, R], 5),
        ([R, R, N], 3),
        ([R, N, N], 1),
        ([N, R, R, R], 5),
    ],
)
def test_calculate_quality(results, expected):
    assert scheduler.calculate_quality([entry(r) for r in results]) == expected


def test_history_is_bounded(fresh):
    record = fresh
    for i in range(15):
        record = scheduler.schedule_next(record, R if i % 2 else N, T0)
    assert len(record.review_history) == 10
    assert record.review_count == 15


def test_mastered_requires_long_interval_and_high_success_rate():
    record = ProgressRecord(
        item_id="fr:maison",
        review_count=5,
        success_count=5,
        current_interval=21,
        created_at=T0,
        updated_at=T0,
    )
    assert record.status is ReviewStatus.MASTERED

    shaky = ProgressRecord(
        item_id="fr:maison",
        review_count=5,
        success_count=4,
        failure_count=1,
        current_interval=21,
        created_at=T0,
        updated_at=T0,
    )
    # 0.8 is not strictly greater than the threshold
    assert shaky.status is ReviewStatus.REVIEW


def test_preview_leaves_record_untouched(fresh):
    preview = scheduler.preview_next_review(fresh, N, T0)
    assert preview.failure_count == 1
    assert fresh.review_count == 0
    assert fresh.review_history == ()
