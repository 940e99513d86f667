"""Card source backed by an in-memory mapping of deck id to cards."""

from collections.abc import Iterable, Mapping

from lexis.domain.models import VocabularyCard
from lexis.domain.ports import CardSource


class StaticCardSource(CardSource):
    def __init__(self, decks: Mapping[str, Iterable[VocabularyCard]] | None = None):
        self._decks = {deck_id: list(cards) for deck_id, cards in (decks or {}).items()}

    def add_deck(self, deck_id: str, cards: Iterable[VocabularyCard]) -> None:
        self._decks[deck_id] = list(cards)

    def deck_ids(self) -> list[str]:
        return list(self._decks)

    def cards_for_deck(self, deck_id: str) -> list[VocabularyCard] | None:
        cards = self._decks.get(deck_id)
        return list(cards) if cards is not None else None
