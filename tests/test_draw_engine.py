from __future__ import annotations

import random
from collections import Counter

import pytest

from conftest import ScriptedRandom
from domain.models import Choice
from services.draw_engine import draw, selection_odds, total_weight


def _fifty_fifty() -> list[Choice]:
    return [Choice("yes", 5, 50), Choice("no", 5, 50)]


def test_empty_list_returns_none():
    assert draw([], ScriptedRandom([0])) is None


def test_no_eligible_choice_returns_none():
    rng = ScriptedRandom([0])
    assert draw([Choice("A", 0, 50), Choice("B", 0, 70)], rng) is None
    assert rng.calls == []  # never rolled


@pytest.mark.parametrize("r, expected", [(0, 0), (49, 0), (50, 1), (99, 1)])
def test_boundaries_of_fifty_fifty(r, expected):
    rng = ScriptedRandom([r])
    assert draw(_fifty_fifty(), rng) == expected
    assert rng.calls == [100]


def test_cumulative_walk_over_uneven_weights(abc_choices):
    # weights 10 / 30 / 60 -> A:[0,10) B:[10,40) C:[40,100)
    assert draw(abc_choices, ScriptedRandom([9])) == 0
    assert draw(abc_choices, ScriptedRandom([10])) == 1
    assert draw(abc_choices, ScriptedRandom([39])) == 1
    assert draw(abc_choices, ScriptedRandom([40])) == 2


def test_ineligible_choices_take_no_width():
    choices = [Choice("A", 0, 90), Choice("B", 3, 20), Choice("C", 0, 5), Choice("D", 1, 10)]
    rng = ScriptedRandom([19])
    assert draw(choices, rng) == 1
    assert rng.calls == [30]
    assert draw(choices, ScriptedRandom([20])) == 3


def test_zero_total_weight_is_handled():
    # cannot come from the store (weights are clamped), but must not blow up
    assert draw([Choice("A", 2, 0)], ScriptedRandom([0])) is None


def test_out_of_range_source_yields_none():
    class Liar:
        def randrange(self, stop):
            return stop

    assert draw(_fifty_fifty(), Liar()) is None


def test_draw_only_returns_eligible_indexes():
    rng = random.Random(1234)
    choices = [Choice("A", 0, 100), Choice("B", 1, 1), Choice("C", 0, 100), Choice("D", 2, 7)]
    for _ in range(500):
        assert draw(choices, rng) in (1, 3)


def test_frequencies_follow_weights():
    rng = random.Random(20240601)
    choices = [Choice("A", 9, 10), Choice("B", 9, 30), Choice("C", 9, 60), Choice("Z", 0, 100)]
    n = 20000
    counts = Counter(draw(choices, rng) for _ in range(n))

    assert counts[3] == 0
    for idx, expected in ((0, 0.10), (1, 0.30), (2, 0.60)):
        assert abs(counts[idx] / n - expected) < 0.02


def test_total_weight_and_odds():
    choices = [Choice("A", 1, 25), Choice("B", 0, 50), Choice("C", 2, 75)]
    assert total_weight(choices) == 100
    assert selection_odds(choices) == [0.25, 0.0, 0.75]
    assert selection_odds([Choice("A", 0, 10)]) == [0.0]
