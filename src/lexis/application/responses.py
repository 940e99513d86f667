"""
Request and response models exchanged with the presentation layer.

Field names are snake_case in Python and camelCase on the wire
(``model_dump(by_alias=True)``, which FastAPI uses by default).
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from lexis.domain.constants import (
    DEFAULT_NEW_REVIEW_RATIO,
    DEFAULT_ROUND_SIZE,
    MAX_ROUND_SIZE,
    MIN_ROUND_SIZE,
)
from lexis.domain.models import (
    Difficulty,
    ReviewResult,
    SessionStatus,
    SessionType,
    WorkItemKind,
)
from lexis.domain.outcome import FailureKind


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SessionConfig(ApiModel):
    """Parameters of a new study session."""

    deck_ids: list[str] = Field(min_length=1)
    round_size: int = Field(default=DEFAULT_ROUND_SIZE, ge=MIN_ROUND_SIZE, le=MAX_ROUND_SIZE)
    new_review_ratio: int = Field(default=DEFAULT_NEW_REVIEW_RATIO, ge=0, le=100)
    session_type: SessionType = SessionType.MIXED
    max_rounds: int | None = Field(default=None, ge=1)


class CardResult(ApiModel):
    action: ReviewResult
    response_time: float = Field(default=0, ge=0)


# ---------- Views ----------


class CardView(ApiModel):
    id: str
    word: str
    translation: str
    part_of_speech: str
    hint: str | None = None
    deck_id: str | None = None
    difficulty: Difficulty = Difficulty.NEW
    tags: list[str] = Field(default_factory=list)


class ProgressView(ApiModel):
    position: int
    total: int
    round_position: int
    round_total: int


class SessionSummary(ApiModel):
    total_cards: int = 0
    remembered_cards: int = 0
    forgotten_cards: int = 0
    time_spent_minutes: int = 0
    average_response_time: float = 0.0
    comparison_groups_shown: int = 0
    new_words_learned: int = 0
    streak: int = 0


class SessionInfo(ApiModel):
    id: str
    status: SessionStatus
    session_type: SessionType
    total_cards: int
    total_rounds: int
    current_round: int
    cards_completed: int
    estimated_time: int  # minutes


class NextReviewView(ApiModel):
    scheduled_for: datetime | None
    interval: int


class RetryCardView(ApiModel):
    card_id: str
    word: str
    available_at: datetime
    remaining_seconds: int
    is_ready: bool


class RestoredCardView(ApiModel):
    card_id: str | None
    previous_result: ReviewResult | None = None


# ---------- Responses ----------


class ActionResult(ApiModel):
    success: bool = True
    error: str | None = None
    error_kind: FailureKind | None = None


class CreateSessionResponse(ActionResult):
    session: SessionInfo | None = None


class SessionStatusResponse(ActionResult):
    session: SessionInfo | None = None
    progress: ProgressView | None = None


class NextCardResponse(ActionResult):
    type: WorkItemKind = WorkItemKind.SESSION_COMPLETE
    cards: list[CardView] = Field(default_factory=list)
    progress: ProgressView | None = None
    is_retry: bool = False
    group_name: str | None = None
    session_summary: SessionSummary | None = None


class RecordResultResponse(ActionResult):
    next_review: NextReviewView | None = None
    retry_in: int | None = None  # minutes
    session_complete: bool = False


class PauseResponse(ActionResult):
    resume_token: str | None = None


class ResumeResponse(ActionResult):
    session: SessionInfo | None = None
    has_retry_cards: bool = False
    retry_cards: list[RetryCardView] = Field(default_factory=list)


class UndoResponse(ActionResult):
    restored_card: RestoredCardView | None = None


class RetryCardsResponse(ActionResult):
    retry_cards: list[RetryCardView] = Field(default_factory=list)


class SkipRetryResponse(ActionResult):
    cards_ready: int = 0


class SummaryResponse(ActionResult):
    summary: SessionSummary = Field(default_factory=SessionSummary)


class PreviewResponse(ActionResult):
    next_interval: int | None = None
    next_review_date: datetime | None = None
    new_ease_factor: float | None = None
    difficulty: Difficulty | None = None


# ---------- Progress ----------
# Records and stats keep the snake_case layout of the progress export.


class DueItemsResponse(ActionResult):
    items: list[dict[str, Any]] = Field(default_factory=list)


class ProgressRecordResponse(ActionResult):
    record: dict[str, Any] | None = None


class ExportResponse(ActionResult):
    payload: str = ""


class ImportResponse(ActionResult):
    imported: int = 0


class StatsResponse(ActionResult):
    stats: dict[str, Any] = Field(default_factory=dict)
