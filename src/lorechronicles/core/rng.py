"""Deterministic RNG wrapper built on top of random.Random."""
from __future__ import annotations

from random import Random


class RNG:
    """Seedable random source used for loot rolls."""

    def __init__(self, seed: int | None = None) -> None:
        self._random = Random(seed)

    def roll_percent(self) -> float:
        """Return a float in the range [0.0, 100.0)."""
        return self._random.random() * 100

    def randint(self, a: int, b: int) -> int:
        """Return a random integer N such that a <= N <= b."""
        return self._random.randint(a, b)
