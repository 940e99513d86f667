import random
from datetime import datetime, timedelta, timezone

import pytest

from lexis.application.coordinator import SessionCoordinator
from lexis.application.ledger import ProgressLedger
from lexis.application.planner import SessionPlanner
from lexis.domain.models import Difficulty, VocabularyCard
from lexis.infrastructure.adapters.memory_store import MemoryStore
from lexis.infrastructure.adapters.static_source import StaticCardSource

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def make_card(word: str, deck_id: str = "fr", difficulty=Difficulty.NEW, **kwargs):
    return VocabularyCard(
        id=kwargs.pop("id", f"{deck_id}:{word}"),
        word=word,
        translation=kwargs.pop("translation", word.upper()),
        deck_id=deck_id,
        difficulty=difficulty,
        **kwargs,
    )


FRENCH_WORDS = ["chat", "chien", "bonjour", "merci", "maison"]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def ledger(store, clock):
    return ProgressLedger(store, clock=clock)


@pytest.fixture
def card_factory():
    return make_card


@pytest.fixture
def french_cards():
    return [make_card(w) for w in FRENCH_WORDS]


@pytest.fixture
def card_source(french_cards):
    return StaticCardSource({"fr": french_cards})


@pytest.fixture
def coordinator(ledger, card_source, store, clock):
    """Coordinator without comparison groups and with a seeded planner."""
    return SessionCoordinator(
        ledger=ledger,
        card_source=card_source,
        store=store,
        planner=SessionPlanner(random.Random(7)),
        comparison_groups=(),
        clock=clock,
    )


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Isolate config files and default data directories
    monkeypatch.setenv("HOME", str(home))
    for var in ("LEXIS_DATA_DIR", "LEXIS_DECKS_DIR", "LEXIS_STORE_BACKEND", "LEXIS_SEED"):
        monkeypatch.delenv(var, raising=False)
    return home
