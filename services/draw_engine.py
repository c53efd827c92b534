# services/draw_engine.py
from __future__ import annotations

import random
from typing import Optional, Protocol, Sequence

from domain.models import Choice


class RandomSource(Protocol):
    def randrange(self, stop: int) -> int:
        """Return an integer in [0, stop)."""
        ...


_default_rng = random.Random()


def total_weight(choices: Sequence[Choice]) -> int:
    return sum(c.weight for c in choices if c.quantity > 0)


def draw(choices: Sequence[Choice], rng: RandomSource | None = None) -> Optional[int]:
    """
    Pick a winning index with cumulative-weight sampling.

    - only choices with quantity > 0 take part
    - returns None when nothing is eligible (or the eligible weight is 0)
    - the returned index is into `choices`, so it is also the wheel segment
    """
    if not choices:
        return None

    total = total_weight(choices)
    if total <= 0:
        return None

    r = (rng or _default_rng).randrange(total)

    cumulative = 0
    for idx, c in enumerate(choices):
        if c.quantity <= 0:
            continue
        cumulative += c.weight
        if r < cumulative:
            return idx

    # r out of range from a misbehaving source
    return None


def selection_odds(choices: Sequence[Choice]) -> list[float]:
    total = total_weight(choices)
    if total <= 0:
        return [0.0 for _ in choices]
    return [(c.weight / total) if c.quantity > 0 else 0.0 for c in choices]
