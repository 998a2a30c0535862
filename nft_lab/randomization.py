from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Optional, Protocol


class RandomSource(Protocol):
    def uniform(self, a: float, b: float) -> float:
        """Return a float N such that a <= N <= b."""


@dataclass(slots=True)
class DeterministicRNG:
    """Seeded random source; two instances with the same seed replay the same draws."""

    seed: Optional[int]
    _random: random.Random = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._random = random.Random(self.seed)

    def uniform(self, a: float, b: float) -> float:
        return self._random.uniform(a, b)

    def random(self) -> float:
        return self._random.random()


def make_rng(seed: Optional[int] = None) -> RandomSource:
    """Seeded :class:`DeterministicRNG`, or an OS-seeded :class:`random.Random`."""

    return DeterministicRNG(seed) if seed is not None else random.Random()


__all__ = ["DeterministicRNG", "RandomSource", "make_rng"]
