"""Builtin comparison groups of easily confused French words."""

from collections.abc import Iterable, Sequence
from typing import Any

from .models import ComparisonGroup, SimilarityCategory, VocabularyCard

FRENCH_CONFUSING_GROUPS: tuple[ComparisonGroup, ...] = (
    ComparisonGroup(
        name="Animals with CH sound",
        category=SimilarityCategory.PHONETIC,
        members=("chat", "chien", "cheval"),
        description="French animals starting with CH",
    ),
    ComparisonGroup(
        name="Colors - Primary",
        category=SimilarityCategory.MEANING,
        members=("rouge", "bleu", "vert"),
        description="Basic color words",
    ),
    ComparisonGroup(
        name="Size adjectives",
        category=SimilarityCategory.MEANING,
        members=("grand", "petit"),
        description="Opposite size descriptions",
    ),
    ComparisonGroup(
        name="Essential verbs",
        category=SimilarityCategory.GRAMMAR,
        members=("être", "avoir", "aller", "faire"),
        description="Most common French verbs",
    ),
    ComparisonGroup(
        name="Greetings",
        category=SimilarityCategory.MEANING,
        members=("bonjour", "bonsoir", "salut"),
        description="Different greeting expressions",
    ),
)


def group_from_dict(data: dict[str, Any]) -> ComparisonGroup:
    return ComparisonGroup(
        name=data["name"],
        category=SimilarityCategory(data.get("category", SimilarityCategory.PHONETIC.value)),
        members=tuple(data.get("members") or data.get("words") or ()),
        description=data.get("description", ""),
    )


def find_group(
    card: VocabularyCard, groups: Iterable[ComparisonGroup]
) -> ComparisonGroup | None:
    """Return the first group that lists ``card`` as a member."""
    for group in groups:
        if group.contains(card):
            return group
    return None


def matched_members(
    group: ComparisonGroup, cards: Sequence[VocabularyCard]
) -> list[VocabularyCard]:
    """Cards of ``cards`` belonging to ``group``, in order, each id once."""
    seen: set[str] = set()
    matched = []
    for card in cards:
        if card.id in seen or not group.contains(card):
            continue
        seen.add(card.id)
        matched.append(card)
    return matched
