"""
Study session engine: the state machine behind one study session.

States::

    active <-> paused
    active  -> completed
    active / paused -> abandoned

The engine holds an immutable ``SessionState`` and swaps it for a new one on
every transition. Retry deadlines are evaluated lazily against the ``now``
passed into each call; nothing runs in the background.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any

from lexis.domain.comparison_groups import find_group, matched_members
from lexis.domain.constants import (
    MIN_GROUP_SIZE,
    RETRY_DELAY_MINUTES,
    SESSION_HISTORY_LIMIT,
)
from lexis.domain.models import (
    ComparisonGroup,
    Difficulty,
    RetryEntry,
    ReviewResult,
    SessionAction,
    SessionState,
    SessionStatistics,
    SessionStatus,
    SessionType,
    VocabularyCard,
    WorkItem,
    WorkItemKind,
)
from lexis.domain.outcome import FailureKind, Outcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionProgress:
    position: int
    total: int
    round_position: int
    round_total: int


@dataclass(frozen=True)
class RetryStatus:
    card_id: str
    ready_at: datetime
    remaining_seconds: int
    is_ready: bool


@dataclass(frozen=True)
class RecordedResult:
    """What ``record_result`` did with an answer."""

    card: VocabularyCard
    was_retry: bool
    retry_at: datetime | None
    session_completed: bool


def _incremental_mean(mean: float, count: int, value: float) -> float:
    return (mean * count + value) / (count + 1)


class StudySessionEngine:
    """
    Tracks position, rounds, the retry queue and undo history of a session.

    Args:
        state: The session snapshot to drive.
        retry_minutes: Delay of the 10-minute rule.
    """

    def __init__(self, state: SessionState, retry_minutes: int = RETRY_DELAY_MINUTES):
        self._state = state
        self._retry_delay = timedelta(minutes=retry_minutes)

    @classmethod
    def start(
        cls,
        session_id: str,
        deck_ids: Sequence[str],
        cards: Sequence[VocabularyCard],
        now: datetime,
        round_size: int,
        new_review_ratio: int,
        session_type: SessionType = SessionType.MIXED,
        retry_minutes: int = RETRY_DELAY_MINUTES,
    ) -> "StudySessionEngine":
        state = SessionState(
            id=session_id,
            deck_ids=tuple(deck_ids),
            round_size=round_size,
            new_review_ratio=new_review_ratio,
            session_type=session_type,
            ordered_cards=tuple(cards),
            statistics=SessionStatistics(total_cards=len(cards)),
            start_time=now,
            created_at=now,
            updated_at=now,
        )
        logger.info(
            f"Started session {session_id}: {state.total_cards} cards "
            f"in {state.total_rounds} rounds"
        )
        return cls(state, retry_minutes=retry_minutes)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    # ---------- Queries ----------

    def ready_retries(self, now: datetime) -> list[RetryEntry]:
        """Retry entries whose wait is over, oldest first."""
        ready = [r for r in self._state.retry_queue if r.ready_at <= now]
        return sorted(ready, key=lambda r: (r.ready_at, r.enqueued_at))

    def retry_entries(self, now: datetime) -> list[RetryStatus]:
        return [
            RetryStatus(
                card_id=r.card_id,
                ready_at=r.ready_at,
                remaining_seconds=max(0, int((r.ready_at - now).total_seconds())),
                is_ready=r.ready_at <= now,
            )
            for r in sorted(self._state.retry_queue, key=lambda r: r.ready_at)
        ]

    def progress(self) -> SessionProgress:
        state = self._state
        # Once every card is answered, report the position of the last one.
        last = max(min(state.cursor, state.total_cards - 1), 0)
        return SessionProgress(
            position=min(state.cursor + 1, state.total_cards),
            total=state.total_cards,
            round_position=(last % state.round_size) + 1,
            round_total=state.round_size,
        )

    def current_work_item(
        self, now: datetime, groups: Sequence[ComparisonGroup] = ()
    ) -> WorkItem:
        """
        Decide what to show next.

        Ready retries preempt normal progression. Otherwise the card at the
        cursor is shown, together with the other session cards of its
        comparison group when at least two of them are in the session.
        """
        state = self._state

        for entry in self.ready_retries(now):
            card = state.find_card(entry.card_id)
            if card is not None:
                return WorkItem(kind=WorkItemKind.SINGLE, cards=(card,), is_retry=True)

        card = state.current_card
        if state.is_complete or card is None:
            return WorkItem(kind=WorkItemKind.SESSION_COMPLETE)

        group = find_group(card, groups)
        if group is not None:
            members = matched_members(group, state.ordered_cards)
            if len(members) >= MIN_GROUP_SIZE:
                return WorkItem(
                    kind=WorkItemKind.COMPARISON,
                    cards=tuple(members),
                    group_name=group.name,
                )

        return WorkItem(kind=WorkItemKind.SINGLE, cards=(card,))

    # ---------- Transitions ----------

    def note_comparison_shown(self, group_name: str, now: datetime) -> None:
        """Count a comparison group once per session, however often it is polled."""
        state = self._state
        if group_name in state.shown_groups:
            return
        shown = state.shown_groups + (group_name,)
        self._state = replace(
            state,
            shown_groups=shown,
            statistics=replace(state.statistics, comparison_groups_shown=len(shown)),
            updated_at=now,
        )

    def record_result(
        self,
        card_id: str,
        result: ReviewResult,
        response_time: float,
        now: datetime,
    ) -> Outcome[RecordedResult]:
        """
        Record the learner's answer for ``card_id``.

        An answer to a card with a ready retry entry resolves that retry and
        leaves the cursor alone. Any other answer advances the cursor by one.
        ``not-remember`` (re)schedules a retry ``retry_minutes`` from now.
        """
        state = self._state
        card = state.find_card(card_id)
        if card is None:
            return Outcome.failure(FailureKind.NOT_FOUND, f"Card not in session: {card_id}")

        is_retry = any(r.card_id == card_id for r in self.ready_retries(now))

        if state.status in (SessionStatus.PAUSED, SessionStatus.ABANDONED):
            return Outcome.failure(FailureKind.VALIDATION, f"Session is {state.status.value}")
        if not is_retry and state.is_complete:
            return Outcome.failure(FailureKind.VALIDATION, "Session is already complete")

        remembered = result is ReviewResult.REMEMBER
        stats = state.statistics
        stats = replace(
            stats,
            average_response_time=_incremental_mean(
                stats.average_response_time, stats.responses, response_time
            ),
            remembered_cards=stats.remembered_cards + remembered,
            forgotten_cards=stats.forgotten_cards + (not remembered),
            new_words_learned=stats.new_words_learned
            + (remembered and card.difficulty is Difficulty.NEW),
            reviews_completed=stats.reviews_completed + (card.difficulty is not Difficulty.NEW),
        )

        queue = [r for r in state.retry_queue if not (is_retry and r.card_id == card_id)]
        retry_at = None
        if not remembered:
            # A card waits in the queue at most once; a new failure restarts its wait.
            retry_at = now + self._retry_delay
            queue = [r for r in queue if r.card_id != card_id]
            queue.append(RetryEntry(card_id=card_id, ready_at=retry_at, enqueued_at=now))

        changes: dict[str, Any] = {
            "statistics": stats,
            "retry_queue": tuple(queue),
            "updated_at": now,
        }

        if not is_retry:
            cursor = state.cursor + 1
            action = SessionAction(card_id=card_id, result=result, cursor_before=state.cursor)
            changes["cursor"] = cursor
            changes["history"] = (state.history + (action,))[-SESSION_HISTORY_LIMIT:]
            if cursor % state.round_size == 0 and cursor < state.total_cards:
                changes["current_round"] = state.current_round + 1
            if cursor >= state.total_cards:
                changes["status"] = SessionStatus.COMPLETED
                changes["end_time"] = now

        self._state = replace(state, **changes)
        if changes.get("status") is SessionStatus.COMPLETED:
            self._stamp_time_spent(now)
            logger.info(f"Session {state.id} completed all {state.total_cards} cards")

        return Outcome.success(
            RecordedResult(
                card=card,
                was_retry=is_retry,
                retry_at=retry_at,
                session_completed=self._state.status is SessionStatus.COMPLETED,
            )
        )

    def undo_last_action(self, now: datetime) -> Outcome[SessionAction | None]:
        """
        Step the cursor back one card so it is presented again.

        Statistics and the learner's progress records keep the undone answer;
        only the session position is rewound. A session that completed by
        running out of cards is reopened.
        """
        state = self._state
        if state.status is SessionStatus.ABANDONED:
            return Outcome.failure(FailureKind.VALIDATION, "Session was abandoned")
        if state.cursor == 0:
            return Outcome.failure(FailureKind.VALIDATION, "No actions to undo")

        cursor = state.cursor - 1
        history = state.history
        undone = None
        if history and history[-1].cursor_before == cursor:
            undone = history[-1]
            history = history[:-1]

        changes: dict[str, Any] = {
            "cursor": cursor,
            "current_round": cursor // state.round_size + 1,
            "history": history,
            "updated_at": now,
        }
        if state.status is SessionStatus.COMPLETED:
            changes["status"] = SessionStatus.ACTIVE
            changes["end_time"] = None

        self._state = replace(state, **changes)
        return Outcome.success(undone)

    def pause(self, now: datetime) -> bool:
        if self._state.status is not SessionStatus.ACTIVE:
            return False
        self._state = replace(self._state, status=SessionStatus.PAUSED, updated_at=now)
        return True

    def resume(self, now: datetime) -> bool:
        if self._state.status is not SessionStatus.PAUSED:
            return False
        self._state = replace(self._state, status=SessionStatus.ACTIVE, updated_at=now)
        return True

    def abandon(self, now: datetime) -> Outcome[SessionState]:
        if self._state.status not in (SessionStatus.ACTIVE, SessionStatus.PAUSED):
            return Outcome.failure(
                FailureKind.VALIDATION,
                f"Cannot abandon a {self._state.status.value} session",
            )
        self._state = replace(
            self._state, status=SessionStatus.ABANDONED, end_time=now, updated_at=now
        )
        self._stamp_time_spent(now)
        return Outcome.success(self._state)

    def complete(self, now: datetime) -> SessionState:
        if self._state.status is not SessionStatus.COMPLETED:
            self._state = replace(
                self._state, status=SessionStatus.COMPLETED, end_time=now, updated_at=now
            )
            self._stamp_time_spent(now)
        return self._state

    def skip_retry_wait(self, now: datetime, card_id: str | None = None) -> Outcome[int]:
        """
        Make pending retries eligible immediately.

        Returns:
            Number of entries that were still waiting and are now ready.
        """
        queue = self._state.retry_queue
        if card_id is not None and not any(r.card_id == card_id for r in queue):
            return Outcome.failure(FailureKind.NOT_FOUND, f"No retry pending for {card_id}")

        skipped = 0
        updated = []
        for entry in queue:
            if (card_id is None or entry.card_id == card_id) and entry.ready_at > now:
                entry = replace(entry, ready_at=now)
                skipped += 1
            updated.append(entry)

        self._state = replace(self._state, retry_queue=tuple(updated), updated_at=now)
        return Outcome.success(skipped)

    def _stamp_time_spent(self, now: datetime) -> None:
        state = self._state
        self._state = replace(
            state,
            statistics=replace(state.statistics, time_spent_minutes=state.duration_minutes(now)),
        )

    # ---------- Serialization ----------

    def to_dict(self) -> dict[str, Any]:
        return self._state.to_dict()

    @classmethod
    def from_dict(
        cls, data: dict[str, Any], retry_minutes: int = RETRY_DELAY_MINUTES
    ) -> "StudySessionEngine":
        return cls(SessionState.from_dict(data), retry_minutes=retry_minutes)
