"""Weighted single-trait draw."""
from __future__ import annotations

from typing import Sequence

from nft_lab.collection.model import Trait
from nft_lab.randomization import RandomSource


def sample_trait(traits: Sequence[Trait], rng: RandomSource) -> Trait:
    """Pick one trait with probability proportional to its weight.

    Walks the traits in list order subtracting each weight from a uniform draw
    over the total; the last trait absorbs floating-point leftovers.
    """

    if not traits:
        raise ValueError("cannot sample from an empty trait list")
    total = sum(trait.weight for trait in traits)
    remaining = rng.uniform(0, total)
    for trait in traits:
        remaining -= trait.weight
        if remaining <= 0:
            return trait
    return traits[-1]


__all__ = ["sample_trait"]
