"""
Ports (interfaces) for the collaborators of the study engine.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from typing import Any

from .models import VocabularyCard


class KeyValueStore(ABC):
    """
    Port for persisting JSON-serializable values under string keys.

    Implementations:
        - JsonFileStore: one JSON file per key below a data directory.
        - MemoryStore: a process-local dict, used by tests and ``--store memory``.

    Every method raises ``PersistenceError`` when the underlying medium fails.
    """

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the stored value, or None when the key is absent."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``. Deleting an absent key is not an error."""

    @abstractmethod
    def keys(self, prefix: str = "") -> list[str]:
        """
        List stored keys starting with ``prefix``.

        Returns:
            Keys sorted lexicographically.
        """


class CardSource(ABC):
    """
    Port for reading the vocabulary cards of a deck.

    Implementations:
        - YamlDeckSource: decks stored as YAML files in a directory.
        - StaticCardSource: decks held in memory.
    """

    @abstractmethod
    def deck_ids(self) -> list[str]:
        """Return the ids of all known decks."""

    @abstractmethod
    def cards_for_deck(self, deck_id: str) -> list[VocabularyCard] | None:
        """
        Fetch the cards of one deck.

        Returns:
            The deck's cards, or None if no deck has this id.
        """
