"""Randomness source for synthetic fallback values.

The completion pass draws every synthetic value through a ``RandomSource`` so
tests can substitute a deterministic one.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from decimal import Decimal
from typing import Protocol, TypeVar

T = TypeVar("T")


class RandomSource(Protocol):
    def next_bounded(self, low: float, high: float) -> float:
        """Return a value in ``[low, high]``."""
        ...


class SeededRandomSource:
    """``random.Random`` backed source; a fixed seed gives repeatable output."""

    def __init__(self, seed: int | None = None):
        self._random = random.Random(seed)
        self.seed = seed

    def next_bounded(self, low: float, high: float) -> float:
        return self._random.uniform(low, high)


class SequenceRandomSource:
    """Replays fractions in ``[0, 1]`` scaled into each requested range, cycling."""

    def __init__(self, fractions: Sequence[float] = (0.5,)):
        if not fractions:
            raise ValueError("fractions must not be empty")
        if any(not 0.0 <= f <= 1.0 for f in fractions):
            raise ValueError("fractions must lie in [0, 1]")
        self._fractions = list(fractions)
        self._index = 0
        self.calls = 0

    def next_bounded(self, low: float, high: float) -> float:
        fraction = self._fractions[self._index % len(self._fractions)]
        self._index += 1
        self.calls += 1
        return low + (high - low) * fraction


def bounded_int(rng: RandomSource, low: int, high: int) -> int:
    """Whole number in ``[low, high]``."""
    return max(low, min(high, int(rng.next_bounded(low, high + 1))))


def bounded_decimal(rng: RandomSource, low: float, high: float, places: int = 2) -> Decimal:
    value = round(rng.next_bounded(low, high), places)
    return Decimal(str(min(max(value, low), high)))


def pick(rng: RandomSource, options: Sequence[T]) -> T:
    return options[bounded_int(rng, 0, len(options) - 1)]


def digit_string(rng: RandomSource, length: int) -> str:
    """Digit string of ``length`` with a non-zero leading digit."""
    digits = [str(bounded_int(rng, 1, 9))]
    digits.extend(str(bounded_int(rng, 0, 9)) for _ in range(length - 1))
    return "".join(digits)
