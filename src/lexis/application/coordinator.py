"""
Session coordinator: the request/response facade used by the CLI and server.

Wires the progress ledger, the session planner and the session engine to a
card source and a key-value store. Every public method:

1. validates its preconditions,
2. delegates to the ledger / planner / engine,
3. persists the session (or clears it once it is finished),
4. returns a response model; nothing raises past this class.

Calls are serialized with a re-entrant lock so the engine never sees two
mutators at once, even when the HTTP server runs handlers in a thread pool.
"""

import functools
import logging
import math
import threading
from collections.abc import Callable, Sequence
from dataclasses import asdict, replace
from datetime import datetime
from typing import Any

from pydantic import ValidationError
from ulid import ULID

from lexis.application import scheduler
from lexis.application.ledger import ProgressLedger
from lexis.application.planner import SessionPlanner
from lexis.application.responses import (
    ActionResult,
    CardView,
    CreateSessionResponse,
    DueItemsResponse,
    ExportResponse,
    ImportResponse,
    NextCardResponse,
    NextReviewView,
    PauseResponse,
    PreviewResponse,
    ProgressRecordResponse,
    ProgressView,
    RecordResultResponse,
    RestoredCardView,
    ResumeResponse,
    RetryCardsResponse,
    RetryCardView,
    SessionConfig,
    SessionInfo,
    SessionStatusResponse,
    SessionSummary,
    SkipRetryResponse,
    StatsResponse,
    SummaryResponse,
    UndoResponse,
)
from lexis.application.session_engine import StudySessionEngine
from lexis.application.stats import ProgressStatsService
from lexis.application.utils.numbers import round_half_up
from lexis.domain.comparison_groups import FRENCH_CONFUSING_GROUPS, find_group
from lexis.domain.constants import (
    RETRY_DELAY_MINUTES,
    SECONDS_PER_CARD_ESTIMATE,
    SESSION_KEY,
)
from lexis.domain.errors import PersistenceError
from lexis.domain.models import (
    ComparisonGroup,
    Difficulty,
    ProgressRecord,
    ReviewResult,
    SessionStatus,
    SessionType,
    VocabularyCard,
    WorkItemKind,
    utcnow,
)
from lexis.domain.outcome import FailureKind, Outcome
from lexis.domain.ports import CardSource, KeyValueStore

logger = logging.getLogger(__name__)

NO_ACTIVE_SESSION = "No active session"


def generate_session_id() -> str:
    """Generate a sortable session id using ULID."""
    return f"session_{ULID()}"


def humanize_validation_error(error: ValidationError) -> str:
    parts = []
    for issue in error.errors():
        field = ".".join(str(p) for p in issue.get("loc", ())) or "config"
        parts.append(f"{field}: {issue.get('msg', 'invalid value')}")
    return "; ".join(parts)


def _guarded(response_cls: type[ActionResult]):
    """Serialize the call and turn unexpected exceptions into a failure response."""

    def decorator(method):
        @functools.wraps(method)
        def wrapper(self, *args, **kwargs):
            with self._lock:
                try:
                    return method(self, *args, **kwargs)
                except Exception as e:
                    logger.error(f"{method.__name__} failed: {e}", exc_info=True)
                    return response_cls(success=False, error=str(e))

        return wrapper

    return decorator


def _card_view(card: VocabularyCard) -> CardView:
    return CardView(
        id=card.id,
        word=card.word,
        translation=card.translation,
        part_of_speech=card.part_of_speech,
        hint=card.hint,
        deck_id=card.deck_id,
        difficulty=card.difficulty,
        tags=list(card.tags),
    )


class SessionCoordinator:
    """
    Orchestrates one study session at a time on behalf of the presentation layer.

    Args:
        ledger: Progress ledger holding every item's schedule.
        card_source: Where deck contents come from.
        store: Key-value store for the in-flight session.
        planner: Session planner; a default unseeded planner if omitted.
        comparison_groups: Static table consulted on every poll.
        clock: Source of the current time; injectable for tests.
        retry_minutes: Delay before a forgotten card comes back.
        session_defaults: Values used for config fields the caller omits.
    """

    def __init__(
        self,
        ledger: ProgressLedger,
        card_source: CardSource,
        store: KeyValueStore,
        planner: SessionPlanner | None = None,
        comparison_groups: Sequence[ComparisonGroup] = FRENCH_CONFUSING_GROUPS,
        clock: Callable[[], datetime] = utcnow,
        retry_minutes: int = RETRY_DELAY_MINUTES,
        session_defaults: dict[str, Any] | None = None,
    ):
        self.ledger = ledger
        self.card_source = card_source
        self._store = store
        self._planner = planner or SessionPlanner()
        self._groups = tuple(comparison_groups)
        self._clock = clock
        self._retry_minutes = retry_minutes
        self._session_defaults = dict(session_defaults or {})
        self._lock = threading.RLock()
        self._engine: StudySessionEngine | None = self._load_session()

    # ---------- Persistence ----------

    def _load_session(self) -> StudySessionEngine | None:
        try:
            data = self._store.get(SESSION_KEY)
        except PersistenceError as e:
            logger.error(f"Could not read saved session: {e}")
            return None
        if not data:
            return None
        try:
            engine = StudySessionEngine.from_dict(data, retry_minutes=self._retry_minutes)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable saved session: {e}")
            return None
        logger.debug(f"Restored session {engine.state.id} at card {engine.state.cursor}")
        return engine

    def _save_session(self) -> str | None:
        if self._engine is None:
            return None
        state = self._engine.state
        try:
            # A finished session with nothing left to retry is no longer active;
            # it stays in memory for the summary and undo.
            if state.status is SessionStatus.COMPLETED and not state.retry_queue:
                self._store.delete(SESSION_KEY)
            else:
                self._store.set(SESSION_KEY, self._engine.to_dict())
        except PersistenceError as e:
            logger.error(f"Failed to save session: {e}")
            return str(e)
        return None

    def _clear_session(self) -> str | None:
        self._engine = None
        try:
            self._store.delete(SESSION_KEY)
        except PersistenceError as e:
            logger.error(f"Failed to clear session: {e}")
            return str(e)
        return None

    # ---------- Helpers ----------

    @property
    def has_session(self) -> bool:
        return self._engine is not None

    def _difficulty(self, record: ProgressRecord | None) -> Difficulty:
        return record.difficulty if record is not None else Difficulty.NEW

    def _gather_cards(self, deck_ids: Sequence[str]) -> list[VocabularyCard]:
        cards: dict[str, VocabularyCard] = {}
        for deck_id in deck_ids:
            deck_cards = self.card_source.cards_for_deck(deck_id)
            if deck_cards is None:
                logger.warning(f"Deck not found: {deck_id}")
                continue
            for card in deck_cards:
                if card.id in cards:
                    continue
                record = self.ledger.get(card.id)
                if record is not None and record.suspended:
                    continue
                cards[card.id] = replace(
                    card, deck_id=card.deck_id or deck_id, difficulty=self._difficulty(record)
                )
        return list(cards.values())

    def _filter_for_type(
        self, cards: list[VocabularyCard], session_type: SessionType
    ) -> list[VocabularyCard]:
        if session_type is SessionType.NEW_ONLY:
            return [c for c in cards if c.difficulty is Difficulty.NEW]
        if session_type is SessionType.REVIEW_ONLY:
            return [c for c in cards if c.difficulty is not Difficulty.NEW]
        if session_type is SessionType.COMPARISON_ONLY:
            return [c for c in cards if find_group(c, self._groups) is not None]
        return cards

    def _session_info(self) -> SessionInfo:
        state = self._engine.state
        return SessionInfo(
            id=state.id,
            status=state.status,
            session_type=state.session_type,
            total_cards=state.total_cards,
            total_rounds=state.total_rounds,
            current_round=state.current_round,
            cards_completed=state.cards_completed,
            estimated_time=round_half_up(state.total_cards * SECONDS_PER_CARD_ESTIMATE / 60),
        )

    def _progress_view(self) -> ProgressView:
        progress = self._engine.progress()
        return ProgressView(
            position=progress.position,
            total=progress.total,
            round_position=progress.round_position,
            round_total=progress.round_total,
        )

    def _summary(self) -> SessionSummary:
        streak = self.ledger.streak.current_streak
        if self._engine is None:
            return SessionSummary(streak=streak)
        state = self._engine.state
        stats = state.statistics
        time_spent = stats.time_spent_minutes
        if state.end_time is None:
            time_spent = state.duration_minutes(self._clock())
        return SessionSummary(
            total_cards=stats.total_cards,
            remembered_cards=stats.remembered_cards,
            forgotten_cards=stats.forgotten_cards,
            time_spent_minutes=time_spent,
            average_response_time=stats.average_response_time,
            comparison_groups_shown=stats.comparison_groups_shown,
            new_words_learned=stats.new_words_learned,
            streak=streak,
        )

    def _retry_views(self, include_pending: bool) -> list[RetryCardView]:
        now = self._clock()
        views = []
        for entry in self._engine.retry_entries(now):
            if not include_pending and not entry.is_ready:
                continue
            card = self._engine.state.find_card(entry.card_id)
            views.append(
                RetryCardView(
                    card_id=entry.card_id,
                    word=card.word if card else "Unknown",
                    available_at=entry.ready_at,
                    remaining_seconds=entry.remaining_seconds,
                    is_ready=entry.is_ready,
                )
            )
        return views

    # ---------- Session lifecycle ----------

    @_guarded(CreateSessionResponse)
    def create_session(self, config: SessionConfig | dict[str, Any]) -> CreateSessionResponse:
        """Plan and start a new session, replacing any session in flight."""
        if isinstance(config, dict):
            try:
                config = SessionConfig.model_validate({**self._session_defaults, **config})
            except ValidationError as e:
                return CreateSessionResponse(
                    success=False,
                    error=humanize_validation_error(e),
                    error_kind=FailureKind.VALIDATION,
                )

        cards = self._filter_for_type(self._gather_cards(config.deck_ids), config.session_type)
        if not cards:
            return CreateSessionResponse(
                success=False,
                error="No cards available in selected decks",
                error_kind=FailureKind.VALIDATION,
            )

        ratio = config.new_review_ratio
        if config.session_type is SessionType.NEW_ONLY:
            ratio = 100
        elif config.session_type is SessionType.REVIEW_ONLY:
            ratio = 0

        rounds_hint = config.max_rounds or math.ceil(len(cards) / config.round_size)
        ordered = self._planner.plan(cards, config.round_size, ratio, rounds_hint)
        if not ordered:
            return CreateSessionResponse(
                success=False,
                error="No cards available in selected decks",
                error_kind=FailureKind.VALIDATION,
            )

        if self._engine is not None:
            logger.info(f"Replacing session {self._engine.state.id}")

        self._engine = StudySessionEngine.start(
            session_id=generate_session_id(),
            deck_ids=config.deck_ids,
            cards=ordered,
            now=self._clock(),
            round_size=config.round_size,
            new_review_ratio=ratio,
            session_type=config.session_type,
            retry_minutes=self._retry_minutes,
        )

        error = self._save_session()
        return CreateSessionResponse(
            success=error is None,
            error=error,
            error_kind=FailureKind.PERSISTENCE if error else None,
            session=self._session_info(),
        )

    @_guarded(SessionStatusResponse)
    def get_session(self) -> SessionStatusResponse:
        if self._engine is None:
            return SessionStatusResponse(
                success=False, error=NO_ACTIVE_SESSION, error_kind=FailureKind.NOT_FOUND
            )
        return SessionStatusResponse(session=self._session_info(), progress=self._progress_view())

    @_guarded(NextCardResponse)
    def get_next_card(self) -> NextCardResponse:
        """Return the next work item: a retry, a comparison unit, a card, or completion."""
        if self._engine is None:
            return NextCardResponse(type=WorkItemKind.SESSION_COMPLETE)

        now = self._clock()
        item = self._engine.current_work_item(now, self._groups)

        if item.kind is WorkItemKind.SESSION_COMPLETE:
            return NextCardResponse(
                type=WorkItemKind.SESSION_COMPLETE,
                progress=self._progress_view(),
                session_summary=self._summary(),
            )

        error = None
        if item.kind is WorkItemKind.COMPARISON and item.group_name:
            before = self._engine.state
            self._engine.note_comparison_shown(item.group_name, now)
            if self._engine.state is not before:
                error = self._save_session()

        return NextCardResponse(
            success=error is None,
            error=error,
            error_kind=FailureKind.PERSISTENCE if error else None,
            type=item.kind,
            cards=[_card_view(c) for c in item.cards],
            progress=self._progress_view(),
            is_retry=item.is_retry,
            group_name=item.group_name,
        )

    @_guarded(RecordResultResponse)
    def record_card_result(
        self, card_id: str, action: ReviewResult | str, response_time: float = 0
    ) -> RecordResultResponse:
        """Record an answer in the session and in the card's progress record."""
        if self._engine is None:
            return RecordResultResponse(
                success=False, error=NO_ACTIVE_SESSION, error_kind=FailureKind.NOT_FOUND
            )
        try:
            result = ReviewResult(action)
        except ValueError:
            return RecordResultResponse(
                success=False,
                error=f"Unknown action: {action}",
                error_kind=FailureKind.VALIDATION,
            )

        recorded = self._engine.record_result(card_id, result, response_time, self._clock())
        if not recorded.ok:
            return RecordResultResponse(
                success=False, error=recorded.error, error_kind=recorded.kind
            )

        errors = []
        review = self.ledger.record_review(card_id, result, response_time)
        if not review.ok:
            errors.append(review.error)

        if result is ReviewResult.NOT_REMEMBER:
            retry = self.ledger.schedule_retry(card_id, self._retry_minutes)
        elif recorded.value.was_retry:
            retry = self.ledger.clear_retry(card_id)
        else:
            retry = None
        if retry is not None and not retry.ok:
            errors.append(retry.error)

        save_error = self._save_session()
        if save_error:
            errors.append(save_error)

        record = review.value.record
        return RecordResultResponse(
            success=not errors,
            error="; ".join(errors) if errors else None,
            error_kind=FailureKind.PERSISTENCE if errors else None,
            next_review=NextReviewView(
                scheduled_for=record.next_review_at, interval=record.current_interval
            ),
            retry_in=self._retry_minutes if result is ReviewResult.NOT_REMEMBER else None,
            session_complete=recorded.value.session_completed,
        )

    @_guarded(PauseResponse)
    def pause_session(self) -> PauseResponse:
        if self._engine is None:
            return PauseResponse(
                success=False, error=NO_ACTIVE_SESSION, error_kind=FailureKind.NOT_FOUND
            )
        if self._engine.pause(self._clock()):
            logger.info(f"Paused session {self._engine.state.id}")
        error = self._save_session()
        return PauseResponse(
            success=error is None,
            error=error,
            error_kind=FailureKind.PERSISTENCE if error else None,
            resume_token=self._engine.state.id,
        )

    @_guarded(ResumeResponse)
    def resume_session(self, resume_token: str | None = None) -> ResumeResponse:
        """Resume the saved session, reloading it from the store if needed."""
        if self._engine is None:
            self._engine = self._load_session()
        if self._engine is None:
            return ResumeResponse(
                success=False, error="No session to resume", error_kind=FailureKind.NOT_FOUND
            )
        if resume_token and resume_token != self._engine.state.id:
            return ResumeResponse(
                success=False, error="Invalid resume token", error_kind=FailureKind.VALIDATION
            )

        if self._engine.resume(self._clock()):
            logger.info(f"Resumed session {self._engine.state.id}")
        error = self._save_session()
        retry_cards = self._retry_views(include_pending=True)
        return ResumeResponse(
            success=error is None,
            error=error,
            error_kind=FailureKind.PERSISTENCE if error else None,
            session=self._session_info(),
            has_retry_cards=bool(retry_cards),
            retry_cards=retry_cards,
        )

    @_guarded(SummaryResponse)
    def complete_session(self) -> SummaryResponse:
        """Finish the session, return its summary and forget it."""
        if self._engine is None:
            return SummaryResponse(
                success=False,
                error=NO_ACTIVE_SESSION,
                error_kind=FailureKind.NOT_FOUND,
                summary=self._summary(),
            )
        self._engine.complete(self._clock())
        summary = self._summary()
        logger.info(f"Completed session {self._engine.state.id}")
        error = self._clear_session()
        return SummaryResponse(
            success=error is None,
            error=error,
            error_kind=FailureKind.PERSISTENCE if error else None,
            summary=summary,
        )

    @_guarded(SummaryResponse)
    def abandon_session(self) -> SummaryResponse:
        if self._engine is None:
            return SummaryResponse(
                success=False,
                error=NO_ACTIVE_SESSION,
                error_kind=FailureKind.NOT_FOUND,
                summary=self._summary(),
            )
        outcome = self._engine.abandon(self._clock())
        if not outcome.ok:
            return SummaryResponse(
                success=False, error=outcome.error, error_kind=outcome.kind, summary=self._summary()
            )
        summary = self._summary()
        logger.info(f"Abandoned session {self._engine.state.id}")
        error = self._clear_session()
        return SummaryResponse(
            success=error is None,
            error=error,
            error_kind=FailureKind.PERSISTENCE if error else None,
            summary=summary,
        )

    @_guarded(UndoResponse)
    def undo_last_action(self) -> UndoResponse:
        """
        Rewind the session by one card.

        The card's progress record keeps the undone answer.
        """
        if self._engine is None:
            return UndoResponse(
                success=False, error=NO_ACTIVE_SESSION, error_kind=FailureKind.NOT_FOUND
            )
        outcome = self._engine.undo_last_action(self._clock())
        if not outcome.ok:
            return UndoResponse(success=False, error=outcome.error, error_kind=outcome.kind)

        error = self._save_session()
        current = self._engine.state.current_card
        return UndoResponse(
            success=error is None,
            error=error,
            error_kind=FailureKind.PERSISTENCE if error else None,
            restored_card=RestoredCardView(
                card_id=current.id if current else None,
                previous_result=outcome.value.result if outcome.value else None,
            ),
        )

    # ---------- Retries ----------

    @_guarded(RetryCardsResponse)
    def get_retry_cards(self, include_pending: bool = False) -> RetryCardsResponse:
        """
        List retry cards whose wait is over.

        With ``include_pending`` cards still waiting are listed too, with the
        seconds left until they come back.
        """
        if self._engine is None:
            return RetryCardsResponse()
        return RetryCardsResponse(retry_cards=self._retry_views(include_pending))

    @_guarded(SkipRetryResponse)
    def skip_retry_wait(self, card_id: str | None = None) -> SkipRetryResponse:
        if self._engine is None:
            return SkipRetryResponse(
                success=False, error=NO_ACTIVE_SESSION, error_kind=FailureKind.NOT_FOUND
            )
        outcome = self._engine.skip_retry_wait(self._clock(), card_id)
        if not outcome.ok:
            return SkipRetryResponse(success=False, error=outcome.error, error_kind=outcome.kind)

        errors = []
        for entry in self._engine.state.retry_queue:
            if (card_id is None or entry.card_id == card_id) and entry.card_id in self.ledger:
                retry = self.ledger.schedule_retry(entry.card_id, minutes=0)
                if not retry.ok:
                    errors.append(retry.error)
        save_error = self._save_session()
        if save_error:
            errors.append(save_error)

        return SkipRetryResponse(
            success=not errors,
            error="; ".join(errors) if errors else None,
            error_kind=FailureKind.PERSISTENCE if errors else None,
            cards_ready=outcome.value,
        )

    # ---------- Reporting ----------

    @_guarded(SummaryResponse)
    def session_summary(self) -> SummaryResponse:
        return SummaryResponse(summary=self._summary())

    @_guarded(PreviewResponse)
    def preview_next_review(self, card_id: str, action: ReviewResult | str) -> PreviewResponse:
        """Show what answering ``card_id`` with ``action`` would do to its schedule."""
        try:
            result = ReviewResult(action)
        except ValueError:
            return PreviewResponse(
                success=False,
                error=f"Unknown action: {action}",
                error_kind=FailureKind.VALIDATION,
            )
        now = self._clock()
        record = self.ledger.get(card_id) or ProgressRecord(
            item_id=card_id, created_at=now, updated_at=now
        )
        preview = scheduler.preview_next_review(record, result, now)
        return PreviewResponse(
            next_interval=preview.current_interval,
            next_review_date=preview.next_review_at,
            new_ease_factor=preview.ease_factor,
            difficulty=preview.difficulty,
        )

    # ---------- Progress ----------

    def _record_response(self, outcome: Outcome[ProgressRecord]) -> ProgressRecordResponse:
        record = outcome.value.to_dict() if outcome.value is not None else None
        return ProgressRecordResponse(
            success=outcome.ok, error=outcome.error, error_kind=outcome.kind, record=record
        )

    @_guarded(DueItemsResponse)
    def due_progress(self, limit: int | None = None) -> DueItemsResponse:
        items = self.ledger.due_items(self._clock())[:limit]
        return DueItemsResponse(items=[r.to_dict() for r in items])

    @_guarded(ProgressRecordResponse)
    def get_progress(self, item_id: str) -> ProgressRecordResponse:
        record = self.ledger.get(item_id)
        if record is None:
            return ProgressRecordResponse(
                success=False,
                error=f"Word not found: {item_id}",
                error_kind=FailureKind.NOT_FOUND,
            )
        return ProgressRecordResponse(record=record.to_dict())

    @_guarded(ProgressRecordResponse)
    def reset_progress(self, item_id: str) -> ProgressRecordResponse:
        return self._record_response(self.ledger.reset(item_id))

    @_guarded(ProgressRecordResponse)
    def suspend_progress(self, item_id: str) -> ProgressRecordResponse:
        return self._record_response(self.ledger.suspend(item_id))

    @_guarded(ProgressRecordResponse)
    def unsuspend_progress(self, item_id: str) -> ProgressRecordResponse:
        return self._record_response(self.ledger.unsuspend(item_id))

    @_guarded(ExportResponse)
    def export_progress(self) -> ExportResponse:
        return ExportResponse(payload=self.ledger.export_progress())

    @_guarded(ImportResponse)
    def import_progress(self, payload: str) -> ImportResponse:
        """Replace all progress with an export; the session in flight is kept."""
        outcome = self.ledger.import_progress(payload)
        return ImportResponse(
            success=outcome.ok,
            error=outcome.error,
            error_kind=outcome.kind,
            imported=outcome.value or 0,
        )

    @_guarded(StatsResponse)
    def progress_stats(self, struggling: bool = False) -> StatsResponse:
        """Overall statistics, or the words most often forgotten with ``struggling``."""
        service = ProgressStatsService(self.ledger)
        now = self._clock()
        if struggling:
            return StatsResponse(
                stats={"struggling": [asdict(w) for w in service.struggling_words(now)]}
            )
        return StatsResponse(stats=asdict(service.overall(now)))
