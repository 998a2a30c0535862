from __future__ import annotations

import numpy as np
import pytest

from nft_lab.collection.model import Combination, GeneratedToken, RarityTier, RasterImage, Trait
from nft_lab.rarity.scoring import (
    percentile_ranks,
    rank_tokens,
    score_combination,
    score_weights,
    tier_for_percentile,
)


def _combo(*weights: int) -> Combination:
    return Combination([(f"L{i}", Trait.create(f"t{i}", weight=w)) for i, w in enumerate(weights)])


def _token(index: int, score: int) -> GeneratedToken:
    return GeneratedToken(
        index=index,
        name=f"Test #{index}",
        composite_image=RasterImage(data=b"", width=1, height=1),
        attributes=(),
        rarity_score=score,
    )


def test_rare_traits_score_strictly_higher() -> None:
    assert score_combination(_combo(1, 1, 1)) > score_combination(_combo(100, 100, 100))


def test_score_is_inverse_mean_weight() -> None:
    assert score_weights([50, 50]) == 20_000_000_000
    assert score_combination(_combo(10, 30)) == 50_000_000_000


def test_empty_or_zero_weights_score_zero() -> None:
    assert score_weights([]) == 0
    assert score_weights([0, 0]) == 0


def test_percentiles_count_strictly_lower_scores() -> None:
    result = percentile_ranks([10, 20, 20, 40])
    np.testing.assert_allclose(result, [0.0, 25.0, 25.0, 75.0])
    assert percentile_ranks([]).size == 0


@pytest.mark.parametrize(
    "percentile, tier",
    [
        (0.0, RarityTier.COMMON),
        (39.9, RarityTier.COMMON),
        (40.0, RarityTier.UNCOMMON),
        (70.0, RarityTier.RARE),
        (85.0, RarityTier.EPIC),
        (95.0, RarityTier.LEGENDARY),
        (99.0, RarityTier.LEGENDARY),
    ],
)
def test_tier_boundaries(percentile: float, tier: RarityTier) -> None:
    assert tier_for_percentile(percentile) is tier


def test_rank_tokens_orders_by_score_and_index() -> None:
    tokens = [_token(1, 10), _token(2, 30), _token(3, 30), _token(4, 5)]
    ranked = rank_tokens(tokens)
    assert [token.index for token in ranked] == [1, 2, 3, 4]
    assert [token.rarity_rank for token in ranked] == [3, 1, 2, 4]
    assert ranked[3].rarity_tier is RarityTier.COMMON
    assert ranked[1].rarity_tier is ranked[2].rarity_tier is RarityTier.UNCOMMON
    assert tokens[0].rarity_rank is None


def test_rank_tokens_top_of_large_collection_is_legendary() -> None:
    tokens = [_token(i, i) for i in range(1, 101)]
    ranked = rank_tokens(tokens)
    assert ranked[-1].rarity_rank == 1
    assert ranked[-1].rarity_tier is RarityTier.LEGENDARY
    assert ranked[0].rarity_tier is RarityTier.COMMON
    assert rank_tokens([]) == []
