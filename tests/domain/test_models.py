from datetime import datetime, timedelta, timezone

import pytest

from lexis.domain.models import (
    ComparisonGroup,
    Difficulty,
    ProgressRecord,
    ReviewHistoryEntry,
    ReviewResult,
    ReviewStatus,
    SessionState,
    SessionType,
    SimilarityCategory,
    VocabularyCard,
    from_iso,
)

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def record(**kwargs):
    return ProgressRecord(item_id=kwargs.pop("item_id", "fr:chat"), **kwargs)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"item_id": " "},
        {"review_count": -1},
        {"review_count": 1, "success_count": 1, "failure_count": 1},
        {"current_interval": -2},
        {"ease_factor": 1.2},
        {"ease_factor": 2.6},
        {"last_review_at": T0, "next_review_at": T0 - timedelta(days=1)},
    ],
)
def test_progress_record_validation(kwargs):
    with pytest.raises(ValueError, match="ProgressRecord validation failed"):
        record(**kwargs)


@pytest.mark.parametrize(
    "kwargs, expected",
    [
        ({}, ReviewStatus.NEW),
        ({"review_count": 1, "success_count": 1, "current_interval": 6}, ReviewStatus.LEARNING),
        ({"review_count": 2, "success_count": 2, "current_interval": 7}, ReviewStatus.REVIEW),
        ({"review_count": 5, "success_count": 5, "current_interval": 30}, ReviewStatus.MASTERED),
        ({"suspended": True, "review_count": 5, "current_interval": 30}, ReviewStatus.SUSPENDED),
    ],
)
def test_status_is_derived(kwargs, expected):
    assert record(**kwargs).status is expected


@pytest.mark.parametrize(
    "interval, recent, expected",
    [
        (1, [ReviewResult.REMEMBER], Difficulty.HARD),
        (6, [ReviewResult.REMEMBER], Difficulty.MEDIUM),
        (15, [ReviewResult.REMEMBER], Difficulty.EASY),
        (15, [ReviewResult.NOT_REMEMBER, ReviewResult.REMEMBER], Difficulty.HARD),
    ],
)
def test_difficulty(interval, recent, expected):
    history = tuple(ReviewHistoryEntry(T0, r, 0, 1, 2.5) for r in recent)
    rec = record(
        review_count=len(recent),
        success_count=sum(r is ReviewResult.REMEMBER for r in recent),
        failure_count=sum(r is ReviewResult.NOT_REMEMBER for r in recent),
        current_interval=interval,
        review_history=history,
    )
    assert rec.difficulty is expected


def test_stored_status_is_ignored_on_load():
    data = record(review_count=1, success_count=1).to_dict()
    data["status"] = "mastered"
    assert ProgressRecord.from_dict(data).status is ReviewStatus.LEARNING


def test_naive_timestamps_are_utc():
    assert from_iso("2026-03-02T09:00:00") == T0
    assert from_iso(None) is None


def test_comparison_group_size_limits():
    with pytest.raises(ValueError):
        ComparisonGroup("solo", SimilarityCategory.SPELLING, ("chat",))
    with pytest.raises(ValueError):
        ComparisonGroup("crowd", SimilarityCategory.SPELLING, tuple("abcdefg"))
    # duplicates do not count twice
    with pytest.raises(ValueError):
        ComparisonGroup("echo", SimilarityCategory.SPELLING, ("chat", "chat"))


def test_session_state_validation():
    card = VocabularyCard(id="fr:chat", word="chat", translation="cat")
    with pytest.raises(ValueError):
        SessionState(
            id="s", deck_ids=(), round_size=5, new_review_ratio=50,
            session_type=SessionType.MIXED, ordered_cards=(card,),
        )
    with pytest.raises(ValueError):
        SessionState(
            id="s", deck_ids=("fr",), round_size=101, new_review_ratio=50,
            session_type=SessionType.MIXED, ordered_cards=(card,),
        )
    with pytest.raises(ValueError):
        SessionState(
            id="s", deck_ids=("fr",), round_size=5, new_review_ratio=50,
            session_type=SessionType.MIXED, ordered_cards=(card,), cursor=2,
        )


def test_session_state_rounds():
    cards = tuple(VocabularyCard(id=str(i), word=str(i), translation="") for i in range(11))
    state = SessionState(
        id="s", deck_ids=("fr",), round_size=5, new_review_ratio=50,
        session_type=SessionType.MIXED, ordered_cards=cards, cursor=10,
    )
    assert state.total_rounds == 3
    assert state.cards_remaining == 1
    assert state.current_card.id == "10"
    assert not state.is_complete
