"""Collection-relative rarity scores, ranks and tiers.

Scores only order tokens within one collection; they are not probabilities.
"""
from __future__ import annotations

from dataclasses import replace
from typing import List, Sequence, Tuple

import numpy as np

from nft_lab.collection.model import Combination, GeneratedToken, RarityTier

RARITY_SCALE = 1e12

# Upper percentile bound (exclusive) for each tier, rarest last.
TIER_THRESHOLDS: Tuple[Tuple[float, RarityTier], ...] = (
    (40.0, RarityTier.COMMON),
    (70.0, RarityTier.UNCOMMON),
    (85.0, RarityTier.RARE),
    (95.0, RarityTier.EPIC),
)


def score_weights(weights: Sequence[float]) -> int:
    if not weights:
        return 0
    mean = sum(weights) / len(weights)
    if mean <= 0:
        return 0
    return int(round(RARITY_SCALE / mean))


def score_combination(combination: Combination) -> int:
    """Inverse of the mean trait weight: low-weight combinations score higher."""

    return score_weights(combination.weights())


def percentile_ranks(scores: Sequence[float]) -> np.ndarray:
    """Share of the collection (0-100) scoring strictly below each entry."""

    values = np.asarray(scores, dtype=np.float64)
    if values.size == 0:
        return values
    ordered = np.sort(values)
    below = np.searchsorted(ordered, values, side="left")
    return below * 100.0 / values.size


def tier_for_percentile(percentile: float) -> RarityTier:
    for bound, tier in TIER_THRESHOLDS:
        if percentile < bound:
            return tier
    return RarityTier.LEGENDARY


def rank_tokens(tokens: Sequence[GeneratedToken]) -> List[GeneratedToken]:
    """Attach rank (1 = rarest, ties broken by index) and tier to every token.

    The returned list keeps the input order.
    """

    if not tokens:
        return []
    order = sorted(range(len(tokens)), key=lambda i: (-tokens[i].rarity_score, tokens[i].index))
    ranks = [0] * len(tokens)
    for rank, position in enumerate(order, start=1):
        ranks[position] = rank
    percentiles = percentile_ranks([token.rarity_score for token in tokens])
    return [
        replace(token, rarity_rank=ranks[i], rarity_tier=tier_for_percentile(float(percentiles[i])))
        for i, token in enumerate(tokens)
    ]


__all__ = [
    "RARITY_SCALE",
    "TIER_THRESHOLDS",
    "percentile_ranks",
    "rank_tokens",
    "score_combination",
    "score_weights",
    "tier_for_percentile",
]
