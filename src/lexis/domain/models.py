"""
Domain models for vocabulary progress and study sessions.

These are pure, immutable data structures with no I/O. State changes are
expressed as new instances (see ``dataclasses.replace``); validation happens
once, at construction.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from lexis.domain.constants import (
    DEFAULT_EASE_FACTOR,
    DEFAULT_INTERVAL,
    HARD_INTERVAL_LIMIT,
    LEARNING_INTERVAL_LIMIT,
    MASTERED_INTERVAL,
    MASTERED_SUCCESS_RATE,
    MAX_EASE_FACTOR,
    MAX_GROUP_SIZE,
    MAX_ROUND_SIZE,
    MEDIUM_INTERVAL_LIMIT,
    MIN_EASE_FACTOR,
    MIN_GROUP_SIZE,
    MIN_ROUND_SIZE,
    QUALITY_WINDOW,
    REVIEW_HISTORY_LIMIT,
)

# ---------- Enumerations ----------


class ReviewResult(str, Enum):
    REMEMBER = "remember"
    NOT_REMEMBER = "not-remember"


class ReviewStatus(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    MASTERED = "mastered"
    SUSPENDED = "suspended"


class Difficulty(str, Enum):
    NEW = "new"
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class SessionType(str, Enum):
    MIXED = "mixed"
    NEW_ONLY = "new-only"
    REVIEW_ONLY = "review-only"
    COMPARISON_ONLY = "comparison-only"


class SimilarityCategory(str, Enum):
    PHONETIC = "phonetic"
    SPELLING = "spelling"
    MEANING = "meaning"
    GRAMMAR = "grammar"


class WorkItemKind(str, Enum):
    SINGLE = "single"
    COMPARISON = "comparison"
    SESSION_COMPLETE = "session-complete"


# ---------- Timestamp helpers ----------


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def from_iso(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ---------- Progress ----------


@dataclass(frozen=True)
class ReviewHistoryEntry:
    """
    One past review outcome.

    Attributes:
        timestamp: When the review happened.
        result: What the learner answered.
        response_time: Milliseconds the learner took.
        interval_before: Interval (days) before this review was applied.
        ease_factor_before: Ease factor before this review was applied.
    """

    timestamp: datetime
    result: ReviewResult
    response_time: float
    interval_before: int
    ease_factor_before: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": to_iso(self.timestamp),
            "result": self.result.value,
            "response_time": self.response_time,
            "interval_before": self.interval_before,
            "ease_factor_before": self.ease_factor_before,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReviewHistoryEntry:
        return cls(
            timestamp=from_iso(data["timestamp"]),
            result=ReviewResult(data["result"]),
            response_time=float(data.get("response_time", 0)),
            interval_before=int(data.get("interval_before", DEFAULT_INTERVAL)),
            ease_factor_before=float(data.get("ease_factor_before", DEFAULT_EASE_FACTOR)),
        )


@dataclass(frozen=True)
class ProgressRecord:
    """
    Scheduling record for a single vocabulary item.

    ``status`` is never stored as an independent field: it is derived from the
    counters, the interval and the manual ``suspended`` flag.
    """

    item_id: str
    review_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    current_interval: int = DEFAULT_INTERVAL
    ease_factor: float = DEFAULT_EASE_FACTOR
    last_review_at: datetime | None = None
    next_review_at: datetime | None = None
    last_result: ReviewResult | None = None
    suspended: bool = False
    review_history: tuple[ReviewHistoryEntry, ...] = ()
    retry_deadline: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        errors = []
        if not isinstance(self.item_id, str) or not self.item_id.strip():
            errors.append("item_id must be a non-empty string")
        if self.review_count < 0 or self.success_count < 0 or self.failure_count < 0:
            errors.append("review counts cannot be negative")
        if self.success_count + self.failure_count > self.review_count:
            errors.append("success + failure count cannot exceed total review count")
        if self.current_interval < 0:
            errors.append("current interval cannot be negative")
        if not MIN_EASE_FACTOR <= self.ease_factor <= MAX_EASE_FACTOR:
            errors.append(
                f"ease factor must be between {MIN_EASE_FACTOR} and {MAX_EASE_FACTOR}"
            )
        if (
            self.last_review_at is not None
            and self.next_review_at is not None
            and self.next_review_at < self.last_review_at
        ):
            errors.append("next review cannot be before last review")
        if len(self.review_history) > REVIEW_HISTORY_LIMIT:
            errors.append(f"review history is limited to {REVIEW_HISTORY_LIMIT} entries")
        if errors:
            raise ValueError(f"ProgressRecord validation failed: {'; '.join(errors)}")

    @property
    def status(self) -> ReviewStatus:
        if self.suspended:
            return ReviewStatus.SUSPENDED
        if self.review_count == 0:
            return ReviewStatus.NEW
        if self.current_interval < LEARNING_INTERVAL_LIMIT:
            return ReviewStatus.LEARNING
        if (
            self.current_interval >= MASTERED_INTERVAL
            and self.success_rate > MASTERED_SUCCESS_RATE
        ):
            return ReviewStatus.MASTERED
        return ReviewStatus.REVIEW

    @property
    def success_rate(self) -> float:
        return self.success_count / self.review_count if self.review_count else 0.0

    @property
    def difficulty(self) -> Difficulty:
        if self.review_count == 0:
            return Difficulty.NEW
        recent = self.review_history[-QUALITY_WINDOW:]
        if any(e.result is ReviewResult.NOT_REMEMBER for e in recent):
            return Difficulty.HARD
        if self.current_interval <= HARD_INTERVAL_LIMIT:
            return Difficulty.HARD
        if self.current_interval <= MEDIUM_INTERVAL_LIMIT:
            return Difficulty.MEDIUM
        return Difficulty.EASY

    def is_due(self, now: datetime) -> bool:
        if self.suspended:
            return False
        if self.next_review_at is None:
            return self.status is ReviewStatus.NEW
        return now >= self.next_review_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "review_count": self.review_count,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "current_interval": self.current_interval,
            "ease_factor": self.ease_factor,
            "last_review_at": to_iso(self.last_review_at),
            "next_review_at": to_iso(self.next_review_at),
            "last_result": self.last_result.value if self.last_result else None,
            "suspended": self.suspended,
            "status": self.status.value,
            "review_history": [e.to_dict() for e in self.review_history],
            "retry_deadline": to_iso(self.retry_deadline),
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProgressRecord:
        # "status" is derived, so it is ignored on the way in.
        last_result = data.get("last_result")
        return cls(
            item_id=data["item_id"],
            review_count=int(data.get("review_count", 0)),
            success_count=int(data.get("success_count", 0)),
            failure_count=int(data.get("failure_count", 0)),
            current_interval=int(data.get("current_interval", DEFAULT_INTERVAL)),
            ease_factor=float(data.get("ease_factor", DEFAULT_EASE_FACTOR)),
            last_review_at=from_iso(data.get("last_review_at")),
            next_review_at=from_iso(data.get("next_review_at")),
            last_result=ReviewResult(last_result) if last_result else None,
            suspended=bool(data.get("suspended", False)),
            review_history=tuple(
                ReviewHistoryEntry.from_dict(e) for e in data.get("review_history", [])
            ),
            retry_deadline=from_iso(data.get("retry_deadline")),
            created_at=from_iso(data.get("created_at")) or utcnow(),
            updated_at=from_iso(data.get("updated_at")) or utcnow(),
        )


@dataclass(frozen=True)
class ScheduledReview:
    """The schedule implied by a freshly updated record."""

    scheduled_for: datetime | None
    interval: int


@dataclass(frozen=True)
class ReviewOutcome:
    record: ProgressRecord
    next_review: ScheduledReview


# ---------- Cards & groups ----------


@dataclass(frozen=True)
class VocabularyCard:
    """A vocabulary item as presented in a study session."""

    id: str
    word: str
    translation: str
    part_of_speech: str = "noun"
    hint: str | None = None
    deck_id: str | None = None
    tags: tuple[str, ...] = ()
    difficulty: Difficulty = Difficulty.NEW

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "word": self.word,
            "translation": self.translation,
            "part_of_speech": self.part_of_speech,
            "hint": self.hint,
            "deck_id": self.deck_id,
            "tags": list(self.tags),
            "difficulty": self.difficulty.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VocabularyCard:
        return cls(
            id=str(data["id"]),
            word=str(data["word"]),
            translation=str(data.get("translation", "")),
            part_of_speech=data.get("part_of_speech") or "noun",
            hint=data.get("hint"),
            deck_id=data.get("deck_id"),
            tags=tuple(data.get("tags") or ()),
            difficulty=Difficulty(data.get("difficulty", Difficulty.NEW.value)),
        )


@dataclass(frozen=True)
class ComparisonGroup:
    """
    A set of mutually confusable items presented together.

    Members are matched against a card's id or its headword, so a static table
    can be written in terms of words rather than storage ids.
    """

    name: str
    category: SimilarityCategory
    members: tuple[str, ...]
    description: str = ""

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("Comparison group name is required")
        if not MIN_GROUP_SIZE <= len(set(self.members)) <= MAX_GROUP_SIZE:
            raise ValueError(
                f"Comparison group must contain between {MIN_GROUP_SIZE} "
                f"and {MAX_GROUP_SIZE} members"
            )

    def contains(self, card: VocabularyCard) -> bool:
        return card.id in self.members or card.word in self.members


# ---------- Sessions ----------


@dataclass(frozen=True)
class RetryEntry:
    card_id: str
    ready_at: datetime
    enqueued_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "card_id": self.card_id,
            "ready_at": to_iso(self.ready_at),
            "enqueued_at": to_iso(self.enqueued_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RetryEntry:
        ready_at = from_iso(data["ready_at"])
        return cls(
            card_id=data["card_id"],
            ready_at=ready_at,
            enqueued_at=from_iso(data.get("enqueued_at")) or ready_at,
        )


@dataclass(frozen=True)
class SessionAction:
    """A cursor-advancing result, kept so undo can report what it rewound."""

    card_id: str
    result: ReviewResult
    cursor_before: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "card_id": self.card_id,
            "result": self.result.value,
            "cursor_before": self.cursor_before,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionAction:
        return cls(
            card_id=data["card_id"],
            result=ReviewResult(data["result"]),
            cursor_before=int(data["cursor_before"]),
        )


@dataclass(frozen=True)
class SessionStatistics:
    total_cards: int = 0
    remembered_cards: int = 0
    forgotten_cards: int = 0
    average_response_time: float = 0.0
    comparison_groups_shown: int = 0
    new_words_learned: int = 0
    reviews_completed: int = 0
    time_spent_minutes: int = 0

    @property
    def responses(self) -> int:
        return self.remembered_cards + self.forgotten_cards

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_cards": self.total_cards,
            "remembered_cards": self.remembered_cards,
            "forgotten_cards": self.forgotten_cards,
            "average_response_time": self.average_response_time,
            "comparison_groups_shown": self.comparison_groups_shown,
            "new_words_learned": self.new_words_learned,
            "reviews_completed": self.reviews_completed,
            "time_spent_minutes": self.time_spent_minutes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionStatistics:
        return cls(
            total_cards=int(data.get("total_cards", 0)),
            remembered_cards=int(data.get("remembered_cards", 0)),
            forgotten_cards=int(data.get("forgotten_cards", 0)),
            average_response_time=float(data.get("average_response_time", 0.0)),
            comparison_groups_shown=int(data.get("comparison_groups_shown", 0)),
            new_words_learned=int(data.get("new_words_learned", 0)),
            reviews_completed=int(data.get("reviews_completed", 0)),
            time_spent_minutes=int(data.get("time_spent_minutes", 0)),
        )


@dataclass(frozen=True)
class SessionState:
    """
    Snapshot of one study session.

    Owned exclusively by the session engine, which replaces it wholesale on
    every transition.
    """

    id: str
    deck_ids: tuple[str, ...]
    round_size: int
    new_review_ratio: int
    session_type: SessionType
    ordered_cards: tuple[VocabularyCard, ...]
    status: SessionStatus = SessionStatus.ACTIVE
    cursor: int = 0
    current_round: int = 1
    retry_queue: tuple[RetryEntry, ...] = ()
    history: tuple[SessionAction, ...] = ()
    shown_groups: tuple[str, ...] = ()
    statistics: SessionStatistics = field(default_factory=SessionStatistics)
    start_time: datetime = field(default_factory=utcnow)
    end_time: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        errors = []
        if not self.deck_ids:
            errors.append("at least one deck id is required")
        if not MIN_ROUND_SIZE <= self.round_size <= MAX_ROUND_SIZE:
            errors.append(f"round size must be between {MIN_ROUND_SIZE} and {MAX_ROUND_SIZE}")
        if not 0 <= self.new_review_ratio <= 100:
            errors.append("new/review ratio must be between 0 and 100")
        if not 0 <= self.cursor <= len(self.ordered_cards):
            errors.append("cursor is outside the ordered card list")
        if self.current_round < 1:
            errors.append("current round must be at least 1")
        if errors:
            raise ValueError(f"SessionState validation failed: {'; '.join(errors)}")

    @property
    def total_cards(self) -> int:
        return len(self.ordered_cards)

    @property
    def total_rounds(self) -> int:
        return math.ceil(self.total_cards / self.round_size)

    @property
    def cards_completed(self) -> int:
        return self.cursor

    @property
    def cards_remaining(self) -> int:
        return self.total_cards - self.cursor

    @property
    def is_complete(self) -> bool:
        return self.status is SessionStatus.COMPLETED or self.cursor >= self.total_cards

    @property
    def current_card(self) -> VocabularyCard | None:
        if self.cursor >= self.total_cards:
            return None
        return self.ordered_cards[self.cursor]

    def find_card(self, card_id: str) -> VocabularyCard | None:
        for card in self.ordered_cards:
            if card.id == card_id:
                return card
        return None

    def duration_minutes(self, now: datetime) -> int:
        end = self.end_time or now
        return round((end - self.start_time).total_seconds() / 60)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "deck_ids": list(self.deck_ids),
            "round_size": self.round_size,
            "new_review_ratio": self.new_review_ratio,
            "session_type": self.session_type.value,
            "status": self.status.value,
            "ordered_cards": [c.to_dict() for c in self.ordered_cards],
            "cursor": self.cursor,
            "current_round": self.current_round,
            "retry_queue": [r.to_dict() for r in self.retry_queue],
            "history": [a.to_dict() for a in self.history],
            "shown_groups": list(self.shown_groups),
            "statistics": self.statistics.to_dict(),
            "start_time": to_iso(self.start_time),
            "end_time": to_iso(self.end_time),
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionState:
        start_time = from_iso(data.get("start_time")) or utcnow()
        return cls(
            id=data["id"],
            deck_ids=tuple(data.get("deck_ids", ())),
            round_size=int(data["round_size"]),
            new_review_ratio=int(data["new_review_ratio"]),
            session_type=SessionType(data.get("session_type", SessionType.MIXED.value)),
            status=SessionStatus(data.get("status", SessionStatus.ACTIVE.value)),
            ordered_cards=tuple(VocabularyCard.from_dict(c) for c in data.get("ordered_cards", [])),
            cursor=int(data.get("cursor", 0)),
            current_round=int(data.get("current_round", 1)),
            retry_queue=tuple(RetryEntry.from_dict(r) for r in data.get("retry_queue", [])),
            history=tuple(SessionAction.from_dict(a) for a in data.get("history", [])),
            shown_groups=tuple(data.get("shown_groups", ())),
            statistics=SessionStatistics.from_dict(data.get("statistics", {})),
            start_time=start_time,
            end_time=from_iso(data.get("end_time")),
            created_at=from_iso(data.get("created_at")) or start_time,
            updated_at=from_iso(data.get("updated_at")) or start_time,
        )


@dataclass(frozen=True)
class WorkItem:
    """What the learner should see next."""

    kind: WorkItemKind
    cards: tuple[VocabularyCard, ...] = ()
    is_retry: bool = False
    group_name: str | None = None


# ---------- Study activity ----------


@dataclass(frozen=True)
class DailyStats:
    date: str
    cards_studied: int = 0
    new_cards: int = 0
    review_cards: int = 0
    remembered_cards: int = 0
    forgotten_cards: int = 0
    average_response_time: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "cards_studied": self.cards_studied,
            "new_cards": self.new_cards,
            "review_cards": self.review_cards,
            "remembered_cards": self.remembered_cards,
            "forgotten_cards": self.forgotten_cards,
            "average_response_time": self.average_response_time,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DailyStats:
        return cls(
            date=data["date"],
            cards_studied=int(data.get("cards_studied", 0)),
            new_cards=int(data.get("new_cards", 0)),
            review_cards=int(data.get("review_cards", 0)),
            remembered_cards=int(data.get("remembered_cards", 0)),
            forgotten_cards=int(data.get("forgotten_cards", 0)),
            average_response_time=float(data.get("average_response_time", 0.0)),
        )


@dataclass(frozen=True)
class StreakData:
    current_streak: int = 0
    longest_streak: int = 0
    last_study_date: str | None = None  # YYYY-MM-DD

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "last_study_date": self.last_study_date,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StreakData:
        return cls(
            current_streak=int(data.get("current_streak", 0)),
            longest_streak=int(data.get("longest_streak", 0)),
            last_study_date=data.get("last_study_date"),
        )
