import random

import pytest

from lexis.application.planner import SessionPlanner, interleave, split_quota
from lexis.domain.models import Difficulty

E, M, H, NEW = Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD, Difficulty.NEW


@pytest.fixture
def planner():
    return SessionPlanner(random.Random(42))


def pool(card_factory, new=0, easy=0, medium=0, hard=0):
    cards = []
    for prefix, count, difficulty in (
        ("n", new, NEW),
        ("e", easy, E),
        ("m", medium, M),
        ("h", hard, H),
    ):
        cards += [card_factory(f"{prefix}{i}", difficulty=difficulty) for i in range(count)]
    return cards


@pytest.mark.parametrize(
    "sizes, round_size, ratio, hint",
    [
        ((10, 0, 0, 0), 5, 50, 2),
        ((4, 2, 2, 2), 5, 50, 2),
        ((4, 2, 2, 2), 3, 50, 2),
        ((0, 3, 3, 3), 4, 100, 1),
        ((7, 0, 0, 0), 5, 0, 5),
        ((2, 1, 0, 5), 50, 30, 1),
    ],
)
def test_plan_length_and_uniqueness(planner, card_factory, sizes, round_size, ratio, hint):
    candidates = pool(card_factory, *sizes)
    plan = planner.plan(candidates, round_size, ratio, hint)

    assert len(plan) == min(round_size * hint, len(candidates))
    assert len({c.id for c in plan}) == len(plan)


def test_duplicate_ids_are_dropped(planner, card_factory):
    cards = pool(card_factory, new=3)
    plan = planner.plan(cards + cards, 10, 50, 1)
    assert sorted(c.id for c in plan) == sorted(c.id for c in cards)


def test_new_cards_come_first(planner, card_factory):
    plan = planner.plan(pool(card_factory, new=3, easy=2, hard=2), 10, 50, 1)
    kinds = [c.difficulty is NEW for c in plan]
    assert kinds == sorted(kinds, reverse=True)


def test_ratio_split(planner, card_factory):
    plan = planner.plan(pool(card_factory, new=10, easy=10), 10, 30, 1)
    assert sum(c.difficulty is NEW for c in plan) == 3
    assert sum(c.difficulty is E for c in plan) == 7


def test_shortfall_is_backfilled_from_other_pool(planner, card_factory):
    plan = planner.plan(pool(card_factory, new=2, medium=8), 10, 80, 1)
    assert sum(c.difficulty is NEW for c in plan) == 2
    assert len(plan) == 10


def test_review_cards_are_interleaved_by_difficulty(planner, card_factory):
    plan = planner.plan(pool(card_factory, easy=2, medium=2, hard=2), 10, 0, 1)
    assert [c.difficulty for c in plan] == [E, M, H, E, M, H]


def test_interleave_handles_uneven_buckets(card_factory):
    easy = [card_factory("e0"), card_factory("e1"), card_factory("e2")]
    hard = [card_factory("h0")]
    assert [c.word for c in interleave([easy, [], hard])] == ["e0", "h0", "e1", "e2"]


def test_seeded_plans_are_reproducible(card_factory):
    cards = pool(card_factory, new=6, easy=3, medium=3, hard=3)
    first = SessionPlanner(random.Random(3)).plan(cards, 5, 50, 3)
    second = SessionPlanner(random.Random(3)).plan(cards, 5, 50, 3)
    assert first == second


def test_empty_pool(planner):
    assert planner.plan([], 10, 50, 3) == []


@pytest.mark.parametrize(
    "total, ratio, new_available, review_available, expected",
    [
        (10, 50, 10, 10, (5, 5)),
        (5, 50, 10, 10, (3, 2)),  # 2.5 rounds up
        (10, 50, 2, 10, (2, 8)),
        (10, 50, 10, 1, (9, 1)),
        (0, 50, 3, 3, (0, 0)),
    ],
)
def test_split_quota(total, ratio, new_available, review_available, expected):
    assert split_quota(total, ratio, new_available, review_available) == expected
