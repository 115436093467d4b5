"""
Randomized feature values.

A resolver may return (or a feature may be defined as) a ``Lottery``; it is
drawn once when the feature is first resolved for a scope and the drawn
value is what gets stored.

Usage:
    manager.define("new_checkout", Lottery.odds(1, 10))
    manager.define("banner", Lottery.odds(0.25).winner("blue").loser("red"))
"""

from __future__ import annotations

import random
from typing import Any


class Lottery:
    """Weighted odds that collapse to a concrete value when called."""

    def __init__(
        self,
        chances: int | float,
        out_of: int | None = None,
        *,
        rng: random.Random | None = None,
    ):
        if out_of is None:
            if not 0 <= chances <= 1:
                raise ValueError("Chances must be between 0 and 1 when out_of is omitted")
        elif out_of < 1 or not 0 <= chances <= out_of:
            raise ValueError("Chances must be between 0 and out_of")

        self.chances = chances
        self.out_of = out_of
        self._rng = rng or random.Random()
        self._winner: Any = True
        self._loser: Any = False

    @classmethod
    def odds(cls, chances: int | float, out_of: int | None = None, **kwargs) -> "Lottery":
        return cls(chances, out_of, **kwargs)

    def winner(self, value: Any) -> "Lottery":
        """Value produced by a winning draw."""
        self._winner = value
        return self

    def loser(self, value: Any) -> "Lottery":
        """Value produced by a losing draw."""
        self._loser = value
        return self

    def wins(self) -> bool:
        if self.out_of is None:
            return self._rng.random() < self.chances
        return self._rng.randint(1, self.out_of) <= self.chances

    def __call__(self, *args: Any) -> Any:
        return self._winner if self.wins() else self._loser

    def __repr__(self) -> str:
        odds = self.chances if self.out_of is None else f"{self.chances}/{self.out_of}"
        return f"<Lottery {odds}>"
