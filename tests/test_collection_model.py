from __future__ import annotations

import dataclasses
import logging

import pytest

from nft_lab.collection.model import (
    Combination,
    GeneratedToken,
    Layer,
    LayerSet,
    RarityTier,
    RasterImage,
    Trait,
    is_background_layer,
)
from nft_lab.collection.validation import (
    LayerValidationError,
    ensure_generatable,
    validate_layers,
)


@pytest.mark.parametrize(
    "name, expected",
    [("Background", True), ("02 background sky", True), ("BG", True), ("Bgm", False), ("Body", False)],
)
def test_background_detection(name: str, expected: bool) -> None:
    assert is_background_layer(name) is expected


def test_background_render_order_is_pinned() -> None:
    assert Layer.create("Background", render_order=4).render_order == 0
    assert Layer.create("Eyes", render_order=4).render_order == 4


def test_values_are_immutable_and_updates_return_copies() -> None:
    trait = Trait.create("Blue", weight=40)
    layer = Layer.create("Eyes", [trait])
    with pytest.raises(dataclasses.FrozenInstanceError):
        trait.weight = 10  # type: ignore[misc]
    updated = layer.with_weights([60])
    assert layer.traits[0].weight == 40
    assert updated.traits[0].weight == 60
    assert updated.id == layer.id
    with pytest.raises(ValueError):
        layer.with_weights([1, 2])


def test_layer_set_lookup_and_replacement() -> None:
    eyes = Layer.create("Eyes", [Trait.create("Blue")])
    layers = LayerSet((eyes,))
    assert layers.get("Eyes") is eyes
    with pytest.raises(KeyError):
        layers.get("Mouth")
    replaced = layers.with_layer(eyes.with_visibility(False))
    assert len(replaced) == 1
    assert replaced.visible_layers() == []
    assert layers.visible_layers() == [eyes]
    assert eyes.trait(eyes.traits[0].id) is eyes.traits[0]


def test_combination_key_and_attributes() -> None:
    combination = Combination([("Background", Trait.create("Blue")), ("Eyes", Trait.create("Laser"))])
    assert combination.key() == "Background:Blue|Eyes:Laser"
    assert combination.attributes() == (("Background", "Blue"), ("Eyes", "Laser"))
    assert len(combination) == 2


def test_generated_token_to_dict() -> None:
    token = GeneratedToken(
        index=3,
        name="Apes #3",
        composite_image=RasterImage(data=b"png", width=1, height=1),
        attributes=(("Eyes", "Laser"),),
        rarity_score=10,
        rarity_rank=1,
        rarity_tier=RarityTier.EPIC,
    )
    assert token.to_dict() == {
        "index": 3,
        "name": "Apes #3",
        "attributes": [["Eyes", "Laser"]],
        "rarity_score": 10,
        "placeholder": False,
        "rarity_rank": 1,
        "rarity_tier": "epic",
    }


def _rules(layers: LayerSet) -> set[str]:
    return {issue.rule for issue in validate_layers(layers)}


def test_validation_rules() -> None:
    assert _rules(LayerSet()) == {"no_layers"}
    empty = Layer.create("Hat")
    zero = Layer.create("Eyes", [Trait.create("Blue", weight=0)])
    skewed = Layer.create("Body", [Trait.create("Ape", weight=30), Trait.create("Robot", weight=30)])
    assert _rules(LayerSet((empty, skewed))) == {"empty_layer", "weight_sum"}
    assert "zero_weight" in _rules(LayerSet((zero, skewed)))
    assert "nothing_visible" in _rules(LayerSet((skewed.with_visibility(False),)))


def test_zero_weight_on_hidden_layer_is_only_a_warning() -> None:
    zero = Layer.create("Eyes", [Trait.create("Blue", weight=0)], visible=False)
    body = Layer.create("Body", [Trait.create("Ape", weight=100)])
    issues = ensure_generatable(LayerSet((zero, body)))
    assert {issue.severity for issue in issues} == {"warning"}


def test_ensure_generatable_raises_with_issues(caplog: pytest.LogCaptureFixture) -> None:
    with pytest.raises(LayerValidationError) as excinfo:
        ensure_generatable(LayerSet((Layer.create("Eyes", [Trait.create("Blue", weight=0)]),)))
    assert {issue.rule for issue in excinfo.value.issues} == {"zero_weight"}

    skewed = LayerSet((Layer.create("Body", [Trait.create("Ape", weight=30)]),))
    with caplog.at_level(logging.WARNING, logger="nft_lab.validation"):
        ensure_generatable(skewed)
    assert any("expected 100" in record.getMessage() for record in caplog.records)
