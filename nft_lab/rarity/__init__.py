"""Rarity weight normalization and collection scoring."""

from .normalizer import (
    distribute_evenly,
    normalize_layer_set,
    set_trait_weight,
    split_evenly,
    split_proportionally,
)
from .scoring import RARITY_SCALE, rank_tokens, score_combination, score_weights, tier_for_percentile

__all__ = [
    "RARITY_SCALE",
    "distribute_evenly",
    "normalize_layer_set",
    "rank_tokens",
    "score_combination",
    "score_weights",
    "set_trait_weight",
    "split_evenly",
    "split_proportionally",
    "tier_for_percentile",
]
