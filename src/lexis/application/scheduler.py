"""
SM-2-derived review scheduler.

This is a pure computation module with no I/O: every function takes a
``ProgressRecord`` and returns a new one.
"""

from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime, timedelta

from lexis.application.utils.numbers import clamp, round_half_up
from lexis.domain.constants import (
    DEFAULT_QUALITY,
    FAILURE_EASE_PENALTY,
    FIRST_SUCCESS_INTERVAL,
    MAX_EASE_FACTOR,
    MIN_EASE_FACTOR,
    QUALITY_WINDOW,
    REVIEW_HISTORY_LIMIT,
    SECOND_SUCCESS_INTERVAL,
)
from lexis.domain.models import (
    ProgressRecord,
    ReviewHistoryEntry,
    ReviewResult,
    ScheduledReview,
)


def calculate_quality(history: Sequence[ReviewHistoryEntry]) -> int:
    """
    Estimate recall quality (1-5) from the last few outcomes.

    5 = every recent review remembered, 1 = mostly forgotten.
    """
    recent = history[-QUALITY_WINDOW:]
    if not recent:
        return DEFAULT_QUALITY

    rate = sum(1 for e in recent if e.result is ReviewResult.REMEMBER) / len(recent)
    if rate >= 1.0:
        return 5
    if rate >= 0.8:
        return 4
    if rate >= 0.6:
        return 3
    if rate >= 0.4:
        return 2
    return 1


def adjust_ease(ease_factor: float, quality: int) -> float:
    penalty = 5 - quality
    updated = ease_factor + 0.1 - penalty * (0.08 + penalty * 0.02)
    return clamp(MIN_EASE_FACTOR, MAX_EASE_FACTOR, updated)


def next_interval(success_count: int, current_interval: int, ease_factor: float) -> int:
    """
    Interval after a successful review.

    Args:
        success_count: Successful reviews including the one being applied.
        current_interval: Interval before this review (days).
        ease_factor: Ease factor before this review.
    """
    if success_count <= 1:
        return FIRST_SUCCESS_INTERVAL
    if success_count == 2:
        return SECOND_SUCCESS_INTERVAL
    return round_half_up(current_interval * ease_factor)


def schedule_next(
    record: ProgressRecord,
    result: ReviewResult,
    now: datetime,
    response_time: float = 0,
) -> ProgressRecord:
    """
    Apply one review outcome to ``record``.

    Returns a new record with counters, history, interval, ease factor and
    next review date updated. The input record is left untouched.
    """
    entry = ReviewHistoryEntry(
        timestamp=now,
        result=result,
        response_time=response_time,
        interval_before=record.current_interval,
        ease_factor_before=record.ease_factor,
    )
    history = (record.review_history + (entry,))[-REVIEW_HISTORY_LIMIT:]

    review_count = record.review_count + 1
    success_count = record.success_count
    failure_count = record.failure_count

    if result is ReviewResult.NOT_REMEMBER:
        failure_count += 1
        interval = 1
        ease_factor = max(MIN_EASE_FACTOR, record.ease_factor - FAILURE_EASE_PENALTY)
    else:
        success_count += 1
        interval = next_interval(success_count, record.current_interval, record.ease_factor)
        ease_factor = adjust_ease(record.ease_factor, calculate_quality(history))

    return replace(
        record,
        review_count=review_count,
        success_count=success_count,
        failure_count=failure_count,
        current_interval=interval,
        ease_factor=ease_factor,
        last_review_at=now,
        next_review_at=now + timedelta(days=interval),
        last_result=result,
        review_history=history,
        updated_at=now,
    )


def scheduled_review(record: ProgressRecord) -> ScheduledReview:
    return ScheduledReview(scheduled_for=record.next_review_at, interval=record.current_interval)


def preview_next_review(
    record: ProgressRecord, result: ReviewResult, now: datetime
) -> ProgressRecord:
    """What ``schedule_next`` would produce, for display before answering."""
    return schedule_next(record, result, now)
