"""
YAML deck source: Infrastructure adapter for the card source port.

Every ``*.yaml`` / ``*.yml`` file in the decks directory is one deck::

    id: french-basics          # optional, defaults to the file stem
    name: French basics
    cards:
      - word: chat
        translation: cat
        part_of_speech: noun
        hint: "Le ___ dort."
        tags: [animals]
    comparison_groups:         # optional
      - name: Sounds like "sh"
        category: phonetic
        members: [chat, chien]
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from lexis.domain.comparison_groups import group_from_dict
from lexis.domain.models import ComparisonGroup, VocabularyCard
from lexis.domain.ports import CardSource

logger = logging.getLogger(__name__)

DECK_SUFFIXES = (".yaml", ".yml")


def card_from_entry(deck_id: str, entry: dict[str, Any]) -> VocabularyCard:
    word = str(entry["word"]).strip()
    if not word:
        raise ValueError("card word is empty")
    tags = entry.get("tags") or ()
    if isinstance(tags, str):
        tags = [t.strip() for t in tags.split(",") if t.strip()]
    return VocabularyCard(
        id=str(entry.get("id") or f"{deck_id}:{word}"),
        word=word,
        translation=str(entry.get("translation", "")),
        part_of_speech=entry.get("part_of_speech") or "noun",
        hint=entry.get("hint"),
        deck_id=deck_id,
        tags=tuple(tags),
    )


class YamlDeckSource(CardSource):
    """
    Reads decks from YAML files.

    Files are parsed lazily and cached; call ``reload()`` after editing them.
    Unreadable files and malformed cards are logged and skipped.
    """

    def __init__(self, decks_dir: Path):
        self.decks_dir = Path(decks_dir)
        self._decks: dict[str, list[VocabularyCard]] | None = None
        self._groups: list[ComparisonGroup] = []

    def reload(self) -> None:
        self._decks = None
        self._groups = []

    def _load(self) -> dict[str, list[VocabularyCard]]:
        if self._decks is not None:
            return self._decks

        self._decks = {}
        if not self.decks_dir.is_dir():
            logger.warning(f"Decks directory not found: {self.decks_dir}")
            return self._decks

        for path in sorted(self.decks_dir.iterdir()):
            if path.suffix.lower() not in DECK_SUFFIXES:
                continue
            try:
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Skipping unreadable deck {path.name}: {e}")
                continue
            if not isinstance(data, dict):
                logger.warning(f"Skipping deck {path.name}: expected a mapping")
                continue
            self._load_deck(path, data)

        logger.debug(f"Loaded {len(self._decks)} decks from {self.decks_dir}")
        return self._decks

    def _load_deck(self, path: Path, data: dict[str, Any]) -> None:
        deck_id = str(data.get("id") or path.stem)
        if deck_id in self._decks:
            logger.warning(f"Duplicate deck id {deck_id} in {path.name}; ignoring")
            return

        cards = []
        for i, entry in enumerate(data.get("cards") or []):
            try:
                cards.append(card_from_entry(deck_id, entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"{path.name}: skipping card #{i + 1}: {e}")
        self._decks[deck_id] = cards

        for entry in data.get("comparison_groups") or []:
            try:
                self._groups.append(group_from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"{path.name}: skipping comparison group: {e}")

    def deck_ids(self) -> list[str]:
        return list(self._load())

    def cards_for_deck(self, deck_id: str) -> list[VocabularyCard] | None:
        cards = self._load().get(deck_id)
        return list(cards) if cards is not None else None

    def comparison_groups(self) -> list[ComparisonGroup]:
        """Groups declared inside deck files, in file order."""
        self._load()
        return list(self._groups)
