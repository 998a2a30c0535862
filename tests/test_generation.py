from __future__ import annotations

import logging
import random

import pytest

from nft_lab.collection.model import Combination, Layer, LayerSet, Trait
from nft_lab.generation.combinations import build_candidate, generate_combinations
from nft_lab.generation.sampler import sample_trait
from nft_lab.randomization import DeterministicRNG, make_rng


class FixedRNG:
    def __init__(self, value: float) -> None:
        self.value = value

    def uniform(self, a: float, b: float) -> float:
        return a + (b - a) * self.value


def test_sampler_matches_weights_over_many_draws() -> None:
    traits = [Trait.create("rare", weight=10), Trait.create("common", weight=90)]
    rng = DeterministicRNG(1234)
    draws = 100_000
    common = sum(1 for _ in range(draws) if sample_trait(traits, rng) is traits[1])
    assert 0.88 <= common / draws <= 0.92


def test_sampler_walks_traits_in_list_order() -> None:
    traits = [Trait.create("a", weight=10), Trait.create("b", weight=90)]
    assert sample_trait(traits, FixedRNG(0.05)) is traits[0]
    assert sample_trait(traits, FixedRNG(0.10)) is traits[0]
    assert sample_trait(traits, FixedRNG(0.11)) is traits[1]
    assert sample_trait(traits, FixedRNG(1.0)) is traits[1]


def test_sampler_never_picks_zero_weight_when_others_positive() -> None:
    traits = [Trait.create("never", weight=0), Trait.create("always", weight=5)]
    rng = random.Random(7)
    assert all(sample_trait(traits, rng) is traits[1] for _ in range(500))


def test_sampler_rejects_empty_list() -> None:
    with pytest.raises(ValueError):
        sample_trait([], random.Random(0))


def test_candidate_skips_hidden_and_empty_layers(layer_set: LayerSet) -> None:
    hidden = layer_set.get("Eyes").with_visibility(False)
    layers = layer_set.with_layer(hidden).with_layer(Layer.create("Hat"))
    combination = build_candidate(layers, random.Random(3))
    assert list(combination) == ["Background", "Body"]


def test_generate_returns_distinct_combinations(layer_set: LayerSet) -> None:
    count = layer_set.max_unique_combinations()
    assert count == 12
    combinations = generate_combinations(layer_set, count, DeterministicRNG(99))
    assert len(combinations) == count
    assert len({combination.key() for combination in combinations}) == count


def test_generate_degrades_to_duplicates(caplog: pytest.LogCaptureFixture) -> None:
    single = LayerSet(
        (
            Layer.create("Background", [Trait.create("Blue", weight=100)]),
            Layer.create("Body", [Trait.create("Ape", weight=100)]),
        )
    )
    with caplog.at_level(logging.WARNING, logger="nft_lab.generation"):
        combinations = generate_combinations(single, 5, make_rng(1), max_attempts=10)
    assert len(combinations) == 5
    assert len(set(combinations)) == 1
    assert combinations[0].key() == "Background:Blue|Body:Ape"
    assert sum("accepting duplicate" in r.getMessage() for r in caplog.records) == 4


def test_generate_reports_progress(layer_set: LayerSet) -> None:
    events: list[tuple[int, int]] = []
    generate_combinations(layer_set, 4, DeterministicRNG(5), progress=lambda n, total: events.append((n, total)))
    assert events == [(1, 4), (2, 4), (3, 4), (4, 4)]


def test_generate_is_reproducible_with_seed(layer_set: LayerSet) -> None:
    first = generate_combinations(layer_set, 6, DeterministicRNG(42))
    second = generate_combinations(layer_set, 6, DeterministicRNG(42))
    assert [c.key() for c in first] == [c.key() for c in second]


def test_zero_count_yields_nothing(layer_set: LayerSet) -> None:
    assert generate_combinations(layer_set, 0, DeterministicRNG(1)) == []


def test_combination_equality_uses_trait_identity() -> None:
    blue = Trait.create("Blue")
    other_blue = Trait.create("Blue")
    assert Combination([("Background", blue)]) == Combination({"Background": blue})
    assert Combination([("Background", blue)]) != Combination([("Background", other_blue)])
