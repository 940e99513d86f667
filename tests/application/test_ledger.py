import json
from datetime import timedelta

import pytest

from lexis.application.ledger import ProgressLedger
from lexis.domain.errors import PersistenceError
from lexis.domain.models import ReviewResult, ReviewStatus
from lexis.domain.outcome import FailureKind
from lexis.infrastructure.adapters.json_store import JsonFileStore
from lexis.infrastructure.adapters.memory_store import MemoryStore

R = ReviewResult.REMEMBER
N = ReviewResult.NOT_REMEMBER


class FailingStore(MemoryStore):
    def set(self, key, value):
        raise PersistenceError(key, "disk full")


def test_get_or_create_is_idempotent_and_persisted(ledger, store):
    first = ledger.get_or_create("fr:chat")
    second = ledger.get_or_create("fr:chat")
    assert first is second
    assert first.status is ReviewStatus.NEW
    assert store.get("progress/fr:chat")["item_id"] == "fr:chat"


def test_record_review_creates_missing_record(ledger, clock):
    outcome = ledger.record_review("fr:chat", R, response_time=1200)
    assert outcome.ok
    assert outcome.value.record.review_count == 1
    assert outcome.value.next_review.interval == 1
    assert outcome.value.next_review.scheduled_for == clock.now + timedelta(days=1)
    assert ledger.get("fr:chat").last_result is R


def test_records_survive_reload(ledger, store, clock):
    ledger.record_review("fr:chat", R)
    reloaded = ProgressLedger(store, clock=clock)
    assert reloaded.get("fr:chat") == ledger.get("fr:chat")


def test_unreadable_file_only_skips_that_record(tmp_path, clock):
    store = JsonFileStore(tmp_path)
    ledger = ProgressLedger(store, clock=clock)
    ledger.record_review("a", R)
    ledger.record_review("b", N)
    ledger.record_review("c", R)
    (tmp_path / "progress" / "a.json").write_text("{not json", encoding="utf-8")
    (tmp_path / "stats" / "daily" / "1999-01-01.json").write_text("{not json", encoding="utf-8")

    reloaded = ProgressLedger(store, clock=clock)

    assert reloaded.get("a") is None
    assert reloaded.get("b") == ledger.get("b")
    assert reloaded.get("c") == ledger.get("c")
    assert reloaded.streak == ledger.streak
    assert reloaded.today_stats() == ledger.today_stats()


def test_invalid_stored_record_does_not_break_loading(store, clock):
    store.set("progress/broken", {"item_id": 5})
    store.set("progress/ok", {"item_id": "ok"})
    store.set("stats/streak", [1, 2])

    ledger = ProgressLedger(store, clock=clock)

    assert "ok" in ledger
    assert len(ledger) == 1
    assert ledger.streak.current_streak == 0


def test_due_items_orders_new_first_then_by_due_date(ledger, clock):
    ledger.record_review("fr:bonjour", R)  # due in 1 day
    clock.advance(hours=1)
    ledger.record_review("fr:merci", R)  # due 1 hour later
    ledger.get_or_create("fr:chat")
    ledger.get_or_create("fr:chien")
    ledger.suspend("fr:chien")

    assert [r.item_id for r in ledger.due_items()] == ["fr:chat"]

    clock.advance(days=3)
    assert [r.item_id for r in ledger.due_items()] == ["fr:chat", "fr:bonjour", "fr:merci"]


def test_due_boundary_is_inclusive(ledger, clock):
    ledger.record_review("fr:chat", R)
    clock.advance(days=1)
    assert [r.item_id for r in ledger.due_items()] == ["fr:chat"]


def test_missing_item_operations_are_not_found(ledger):
    for op in (ledger.schedule_retry, ledger.clear_retry, ledger.reset, ledger.suspend):
        outcome = op("nope")
        assert not outcome.ok
        assert outcome.kind is FailureKind.NOT_FOUND
    assert len(ledger) == 0


def test_retry_deadline(ledger, clock):
    ledger.record_review("fr:chat", N)
    ledger.schedule_retry("fr:chat", 10)

    clock.advance(minutes=9, seconds=59)
    assert ledger.retry_ready() == []
    clock.advance(seconds=1)
    assert ledger.retry_ready() == ["fr:chat"]

    ledger.clear_retry("fr:chat")
    assert ledger.retry_ready() == []


def test_clear_all_retries(ledger):
    for item in ("a", "b", "c"):
        ledger.get_or_create(item)
    ledger.schedule_retry("a", 0)
    ledger.schedule_retry("b", 5)

    outcome = ledger.clear_all_retries()
    assert outcome.ok
    assert outcome.value == 2
    assert all(r.retry_deadline is None for r in ledger.records())


def test_reset_and_suspend(ledger):
    ledger.record_review("fr:chat", R)
    ledger.record_review("fr:chat", R)

    assert ledger.suspend("fr:chat").value.status is ReviewStatus.SUSPENDED
    assert ledger.unsuspend("fr:chat").value.status is not ReviewStatus.SUSPENDED

    reset = ledger.reset("fr:chat").value
    assert reset.status is ReviewStatus.NEW
    assert reset.review_count == 0
    assert reset.review_history == ()


def test_daily_stats(ledger):
    ledger.record_review("fr:chat", R, response_time=1000)
    ledger.record_review("fr:chien", N, response_time=3000)
    ledger.record_review("fr:chat", R, response_time=2000)

    today = ledger.today_stats()
    assert today.cards_studied == 3
    assert today.new_cards == 2
    assert today.review_cards == 1
    assert today.remembered_cards == 2
    assert today.forgotten_cards == 1
    assert today.average_response_time == pytest.approx(2000)


def test_streak_continues_on_consecutive_days(ledger, clock):
    ledger.record_review("fr:chat", R)
    ledger.record_review("fr:chien", R)
    assert ledger.streak.current_streak == 1

    clock.advance(days=1)
    ledger.record_review("fr:chat", R)
    assert ledger.streak.current_streak == 2

    clock.advance(days=2)
    ledger.record_review("fr:chat", R)
    assert ledger.streak.current_streak == 1
    assert ledger.streak.longest_streak == 2


def test_export_import_round_trip(ledger, clock):
    ledger.record_review("fr:chat", R)
    ledger.record_review("fr:chien", N)
    exported = ledger.export_progress()

    data = json.loads(exported)
    assert data["version"] == "1.0.0"
    assert len(data["progress_entries"]) == 2

    other = ProgressLedger(MemoryStore(), clock=clock)
    other.get_or_create("stale")
    outcome = other.import_progress(exported)

    assert outcome.ok
    assert outcome.value == 2
    assert "stale" not in other
    assert other.get("fr:chien") == ledger.get("fr:chien")
    assert other.streak == ledger.streak
    assert other.today_stats() == ledger.today_stats()


@pytest.mark.parametrize(
    "payload",
    [
        "not json",
        "[]",
        json.dumps({"progress_entries": [{"review_count": 1}]}),
        json.dumps({"progress_entries": [{"item_id": "x", "ease_factor": 9}]}),
        json.dumps({"progress_entries": [{"item_id": 5}]}),
        json.dumps({"progress_entries": {"item_id": "x"}}),
        json.dumps({"progress_entries": [], "daily_stats": [1]}),
        json.dumps({"progress_entries": [], "streak_data": [1, 2]}),
    ],
)
def test_import_rejects_malformed_payload(ledger, payload):
    ledger.record_review("fr:chat", R)
    before = ledger.get("fr:chat")

    outcome = ledger.import_progress(payload)

    assert not outcome.ok
    assert outcome.kind is FailureKind.VALIDATION
    assert ledger.get("fr:chat") == before
    assert len(ledger) == 1


def test_persistence_failure_keeps_in_memory_change(clock):
    ledger = ProgressLedger(FailingStore(), clock=clock)
    outcome = ledger.record_review("fr:chat", R)

    assert not outcome.ok
    assert outcome.kind is FailureKind.PERSISTENCE
    assert "disk full" in outcome.error
    assert outcome.value.record.review_count == 1
    assert ledger.get("fr:chat").review_count == 1


def test_clear_all(ledger, store):
    ledger.record_review("fr:chat", R)
    outcome = ledger.clear_all()
    assert outcome.value == 1
    assert len(ledger) == 0
    assert store.keys("progress/") == []
    assert ledger.streak.current_streak == 0
