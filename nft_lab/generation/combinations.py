"""Unique trait combination generation with a bounded retry budget."""
from __future__ import annotations

import logging
from typing import Callable, List

from nft_lab.collection.model import Combination, LayerSet
from nft_lab.randomization import RandomSource

from .sampler import sample_trait

LOGGER = logging.getLogger("nft_lab.generation")

DEFAULT_MAX_ATTEMPTS = 1000

ProgressSink = Callable[[int, int], None]


def build_candidate(layer_set: LayerSet, rng: RandomSource) -> Combination:
    """Sample one trait for each visible layer that holds traits."""

    return Combination([(layer.name, sample_trait(layer.traits, rng)) for layer in layer_set.visible_layers()])


def generate_combinations(
    layer_set: LayerSet,
    count: int,
    rng: RandomSource,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    progress: ProgressSink | None = None,
) -> List[Combination]:
    """Draw ``count`` combinations, unique whenever the trait space allows it.

    Each output gets up to ``max_attempts`` candidates. When none of them is
    new the last candidate is accepted as a duplicate instead of failing, since
    uniqueness is impossible once ``count`` exceeds the number of distinct
    combinations. Seen keys live only for the duration of this call.
    """

    if count <= 0:
        return []
    attempts_budget = max(1, int(max_attempts))
    seen: set[str] = set()
    results: List[Combination] = []
    duplicates = 0

    for position in range(1, count + 1):
        candidate = build_candidate(layer_set, rng)
        key = candidate.key()
        attempts = 1
        while key in seen and attempts < attempts_budget:
            candidate = build_candidate(layer_set, rng)
            key = candidate.key()
            attempts += 1
        if key in seen:
            duplicates += 1
            LOGGER.warning(
                "no new combination after %d attempts for #%d; accepting duplicate %s",
                attempts_budget,
                position,
                key or "<empty>",
            )
        seen.add(key)
        results.append(candidate)
        if progress is not None:
            progress(position, count)

    if duplicates:
        LOGGER.info("generated %d combinations (%d duplicates)", count, duplicates)
    return results


__all__ = ["DEFAULT_MAX_ATTEMPTS", "ProgressSink", "build_candidate", "generate_combinations"]
