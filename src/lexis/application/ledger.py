"""
Progress ledger: one scheduling record per vocabulary item.

The ledger keeps all records in memory and writes every mutation through to
the key-value store. Storage failures never undo the in-memory change; they
are logged and reported back as ``FailureKind.PERSISTENCE`` outcomes.
"""

import json
import logging
from collections.abc import Callable, Iterator
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

from lexis.application import scheduler
from lexis.domain.constants import (
    DAILY_STATS_PREFIX,
    EXPORT_FORMAT_VERSION,
    PROGRESS_PREFIX,
    RETRY_DELAY_MINUTES,
    STREAK_KEY,
)
from lexis.domain.errors import PersistenceError
from lexis.domain.models import (
    DailyStats,
    ProgressRecord,
    ReviewOutcome,
    ReviewResult,
    ReviewStatus,
    StreakData,
    to_iso,
    utcnow,
)
from lexis.domain.outcome import FailureKind, Outcome
from lexis.domain.ports import KeyValueStore

logger = logging.getLogger(__name__)


def _day(moment: datetime) -> str:
    return moment.date().isoformat()


class ProgressLedger:
    """
    Owns the ``ProgressRecord`` of every item the learner has met.

    Args:
        store: Key-value store used for persistence.
        clock: Source of the current time; injectable for tests.
    """

    def __init__(self, store: KeyValueStore, clock: Callable[[], datetime] = utcnow):
        self._store = store
        self._clock = clock
        self._records: dict[str, ProgressRecord] = {}
        self._daily: dict[str, DailyStats] = {}
        self._streak = StreakData()
        self.load()

    # ---------- Loading & persistence ----------

    def load(self) -> None:
        """(Re)load all records, daily stats and the streak from the store."""
        self._records.clear()
        self._daily.clear()
        self._streak = StreakData()
        for key in self._keys(PROGRESS_PREFIX):
            try:
                record = ProgressRecord.from_dict(self._store.get(key))
            except (PersistenceError, AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable progress record {key}: {e}")
                continue
            self._records[record.item_id] = record

        for key in self._keys(DAILY_STATS_PREFIX):
            try:
                stats = DailyStats.from_dict(self._store.get(key))
            except (PersistenceError, AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable daily stats {key}: {e}")
                continue
            self._daily[stats.date] = stats

        try:
            streak = self._store.get(STREAK_KEY)
            if streak is not None:
                self._streak = StreakData.from_dict(streak)
        except (PersistenceError, AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Skipping unreadable streak data: {e}")

        logger.debug(f"Loaded {len(self._records)} progress records")

    def _keys(self, prefix: str) -> list[str]:
        try:
            return list(self._store.keys(prefix))
        except PersistenceError as e:
            logger.error(f"Failed to list {prefix} keys: {e}")
            return []

    def _save(self, key: str, value: Any) -> str | None:
        try:
            self._store.set(key, value)
        except PersistenceError as e:
            logger.error(f"Failed to persist {key}: {e}")
            return str(e)
        return None

    def _delete(self, key: str) -> str | None:
        try:
            self._store.delete(key)
        except PersistenceError as e:
            logger.error(f"Failed to delete {key}: {e}")
            return str(e)
        return None

    def _save_record(self, record: ProgressRecord) -> str | None:
        return self._save(f"{PROGRESS_PREFIX}{record.item_id}", record.to_dict())

    def _commit(self, record: ProgressRecord) -> Outcome[ProgressRecord]:
        self._records[record.item_id] = record
        error = self._save_record(record)
        if error:
            return Outcome.failure(FailureKind.PERSISTENCE, error, value=record)
        return Outcome.success(record)

    # ---------- Queries ----------

    def now(self) -> datetime:
        return self._clock()

    def get(self, item_id: str) -> ProgressRecord | None:
        return self._records.get(item_id)

    def records(self) -> Iterator[ProgressRecord]:
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._records

    def due_items(self, now: datetime | None = None) -> list[ProgressRecord]:
        """
        Items to study now.

        New items come first (in insertion order), followed by scheduled items
        ordered by how long they have been due.
        """
        now = now or self._clock()
        due = [r for r in self._records.values() if r.is_due(now)]
        new = [r for r in due if r.status is ReviewStatus.NEW]
        scheduled = sorted(
            (r for r in due if r.status is not ReviewStatus.NEW),
            key=lambda r: r.next_review_at,
        )
        return new + scheduled

    def retry_ready(self, now: datetime | None = None) -> list[str]:
        now = now or self._clock()
        return [
            r.item_id
            for r in self._records.values()
            if r.retry_deadline is not None and now >= r.retry_deadline
        ]

    # ---------- Mutations ----------

    def get_or_create(self, item_id: str) -> ProgressRecord:
        record = self._records.get(item_id)
        if record is not None:
            return record

        now = self._clock()
        record = ProgressRecord(item_id=item_id, created_at=now, updated_at=now)
        self._commit(record)
        logger.debug(f"Created progress record for {item_id}")
        return record

    def record_review(
        self, item_id: str, result: ReviewResult, response_time: float = 0
    ) -> Outcome[ReviewOutcome]:
        """
        Apply a review outcome to the item's record and persist it.

        Missing records are created on the fly.
        """
        now = self._clock()
        before = self._records.get(item_id) or ProgressRecord(
            item_id=item_id, created_at=now, updated_at=now
        )
        was_new = before.status is ReviewStatus.NEW

        record = scheduler.schedule_next(before, result, now, response_time)
        self._records[item_id] = record

        errors = [
            self._save_record(record),
            self._update_daily_stats(now, result, response_time, was_new),
            self._update_streak(now),
        ]
        outcome = ReviewOutcome(record=record, next_review=scheduler.scheduled_review(record))

        logger.debug(
            f"Recorded {result.value} for {item_id}: interval={record.current_interval} "
            f"ease={record.ease_factor:.2f} status={record.status.value}"
        )

        failed = [e for e in errors if e]
        if failed:
            return Outcome.failure(FailureKind.PERSISTENCE, "; ".join(failed), value=outcome)
        return Outcome.success(outcome)

    def schedule_retry(
        self, item_id: str, minutes: int = RETRY_DELAY_MINUTES
    ) -> Outcome[ProgressRecord]:
        record = self._records.get(item_id)
        if record is None:
            return Outcome.failure(FailureKind.NOT_FOUND, f"Word not found: {item_id}")
        now = self._clock()
        return self._commit(
            replace(record, retry_deadline=now + timedelta(minutes=minutes), updated_at=now)
        )

    def clear_retry(self, item_id: str) -> Outcome[ProgressRecord]:
        record = self._records.get(item_id)
        if record is None:
            return Outcome.failure(FailureKind.NOT_FOUND, f"Word not found: {item_id}")
        return self._commit(replace(record, retry_deadline=None, updated_at=self._clock()))

    def clear_all_retries(self) -> Outcome[int]:
        cleared = 0
        errors = []
        for record in list(self._records.values()):
            if record.retry_deadline is None:
                continue
            outcome = self.clear_retry(record.item_id)
            cleared += 1
            if not outcome.ok:
                errors.append(outcome.error)
        if errors:
            return Outcome.failure(FailureKind.PERSISTENCE, "; ".join(errors), value=cleared)
        return Outcome.success(cleared)

    def reset(self, item_id: str) -> Outcome[ProgressRecord]:
        """Replace an item's record with a fresh ``new`` one. Irreversible."""
        if item_id not in self._records:
            return Outcome.failure(FailureKind.NOT_FOUND, f"Word not found: {item_id}")
        now = self._clock()
        logger.info(f"Resetting progress for {item_id}")
        return self._commit(ProgressRecord(item_id=item_id, created_at=now, updated_at=now))

    def suspend(self, item_id: str) -> Outcome[ProgressRecord]:
        return self._set_suspended(item_id, True)

    def unsuspend(self, item_id: str) -> Outcome[ProgressRecord]:
        return self._set_suspended(item_id, False)

    def _set_suspended(self, item_id: str, suspended: bool) -> Outcome[ProgressRecord]:
        record = self._records.get(item_id)
        if record is None:
            return Outcome.failure(FailureKind.NOT_FOUND, f"Word not found: {item_id}")
        return self._commit(replace(record, suspended=suspended, updated_at=self._clock()))

    def clear_all(self) -> Outcome[int]:
        count = len(self._records)
        errors = [self._delete(f"{PROGRESS_PREFIX}{item_id}") for item_id in self._records]
        errors += [self._delete(f"{DAILY_STATS_PREFIX}{day}") for day in self._daily]
        errors.append(self._delete(STREAK_KEY))
        self._records.clear()
        self._daily.clear()
        self._streak = StreakData()
        failed = [e for e in errors if e]
        if failed:
            return Outcome.failure(FailureKind.PERSISTENCE, "; ".join(failed), value=count)
        return Outcome.success(count)

    # ---------- Daily stats & streak ----------

    @property
    def streak(self) -> StreakData:
        return self._streak

    def today_stats(self, now: datetime | None = None) -> DailyStats:
        day = _day(now or self._clock())
        return self._daily.get(day) or DailyStats(date=day)

    def _update_daily_stats(
        self, now: datetime, result: ReviewResult, response_time: float, was_new: bool
    ) -> str | None:
        stats = self.today_stats(now)
        remembered = stats.remembered_cards + (result is ReviewResult.REMEMBER)
        forgotten = stats.forgotten_cards + (result is ReviewResult.NOT_REMEMBER)
        responses = remembered + forgotten
        average = (stats.average_response_time * (responses - 1) + response_time) / responses

        stats = replace(
            stats,
            cards_studied=stats.cards_studied + 1,
            new_cards=stats.new_cards + was_new,
            review_cards=stats.review_cards + (not was_new),
            remembered_cards=remembered,
            forgotten_cards=forgotten,
            average_response_time=average,
        )
        self._daily[stats.date] = stats
        return self._save(f"{DAILY_STATS_PREFIX}{stats.date}", stats.to_dict())

    def _update_streak(self, now: datetime) -> str | None:
        today = _day(now)
        yesterday = _day(now - timedelta(days=1))
        streak = self._streak

        if streak.last_study_date == today:
            return None
        if streak.last_study_date == yesterday:
            current = streak.current_streak + 1
        else:
            current = 1

        self._streak = StreakData(
            current_streak=current,
            longest_streak=max(streak.longest_streak, current),
            last_study_date=today,
        )
        return self._save(STREAK_KEY, self._streak.to_dict())

    # ---------- Export / import ----------

    def export_progress(self) -> str:
        data = {
            "version": EXPORT_FORMAT_VERSION,
            "export_date": to_iso(self._clock()),
            "progress_entries": [r.to_dict() for r in self._records.values()],
            "daily_stats": {day: s.to_dict() for day, s in self._daily.items()},
            "streak_data": self._streak.to_dict(),
        }
        return json.dumps(data, indent=2, ensure_ascii=False)

    def import_progress(self, text: str) -> Outcome[int]:
        """
        Replace all progress with the contents of an export.

        The payload is fully validated before anything is replaced.
        """
        try:
            data = json.loads(text)
            if not isinstance(data, dict):
                raise ValueError("export must be a JSON object")
            entries = data.get("progress_entries") or []
            daily_data = data.get("daily_stats") or {}
            streak_data = data.get("streak_data") or {}
            if not isinstance(entries, list):
                raise ValueError("progress_entries must be a list")
            if not isinstance(daily_data, dict):
                raise ValueError("daily_stats must be an object")
            if not isinstance(streak_data, dict):
                raise ValueError("streak_data must be an object")
            records = [ProgressRecord.from_dict(e) for e in entries]
            daily = [DailyStats.from_dict(s) for s in daily_data.values()]
            streak = StreakData.from_dict(streak_data)
        except (json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as e:
            return Outcome.failure(FailureKind.VALIDATION, f"Invalid progress export: {e}")

        self.clear_all()
        self._records = {r.item_id: r for r in records}
        self._daily = {s.date: s for s in daily}
        self._streak = streak

        errors = [self._save_record(r) for r in records]
        errors += [self._save(f"{DAILY_STATS_PREFIX}{s.date}", s.to_dict()) for s in daily]
        errors.append(self._save(STREAK_KEY, streak.to_dict()))

        logger.info(f"Imported {len(records)} progress records")
        failed = [e for e in errors if e]
        if failed:
            return Outcome.failure(FailureKind.PERSISTENCE, "; ".join(failed), value=len(records))
        return Outcome.success(len(records))
