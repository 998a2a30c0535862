"""Keep each layer's trait weights summing to exactly 100.

Every operation returns a new :class:`Layer`; trait identity, order and count
never change.

``set_trait_weight`` spreads the leftover percent evenly over the other
traits by count, so relative proportions among them are discarded. Pass
``strategy="proportional"`` to keep their previous ratios instead.
"""
from __future__ import annotations

import logging
from typing import List, Sequence

from nft_lab.collection.model import Layer, LayerSet

LOGGER = logging.getLogger("nft_lab.rarity")

TOTAL_PERCENT = 100
STRATEGIES = ("even", "proportional")


def split_evenly(total: int, count: int) -> List[int]:
    """Floor/remainder split: the first ``total % count`` slots get one extra."""

    if count <= 0:
        return []
    base, remainder = divmod(int(total), count)
    return [base + 1 if position < remainder else base for position in range(count)]


def split_proportionally(total: int, weights: Sequence[int]) -> List[int]:
    """Largest-remainder apportionment of ``total`` following ``weights``."""

    if not weights:
        return []
    basis = sum(max(0, w) for w in weights)
    if basis <= 0:
        return split_evenly(total, len(weights))
    quotas = [total * max(0, w) / basis for w in weights]
    shares = [int(q) for q in quotas]
    leftover = total - sum(shares)
    order = sorted(range(len(weights)), key=lambda i: (-(quotas[i] - shares[i]), i))
    for position in order[:leftover]:
        shares[position] += 1
    return shares


def distribute_evenly(layer: Layer, total_percent: int = TOTAL_PERCENT) -> Layer:
    if not layer.traits:
        return layer
    if len(layer.traits) > total_percent:
        LOGGER.warning(
            "layer '%s' has %d traits for %d percent; %d traits get weight 0",
            layer.name,
            len(layer.traits),
            total_percent,
            len(layer.traits) - total_percent,
        )
    return layer.with_weights(split_evenly(total_percent, len(layer.traits)))


def set_trait_weight(
    layer: Layer,
    trait_id: str,
    new_weight: int,
    *,
    strategy: str = "even",
) -> Layer:
    """Pin ``new_weight`` on one trait and rebalance the others to reach 100.

    The pinned value is clamped so every other trait keeps at least 1.
    Raises :class:`KeyError` when the trait is not part of the layer.
    """

    if strategy not in STRATEGIES:
        raise ValueError(f"unknown redistribution strategy '{strategy}'")
    target_index = next(
        (position for position, trait in enumerate(layer.traits) if trait.id == trait_id),
        None,
    )
    if target_index is None:
        raise KeyError(f"layer '{layer.name}' has no trait with id '{trait_id}'")

    others = len(layer.traits) - 1
    if others == 0:
        return layer.with_weights([TOTAL_PERCENT])

    pinned = max(1, min(int(new_weight), TOTAL_PERCENT - others))
    if pinned != int(new_weight):
        LOGGER.debug("clamped weight %s -> %s on layer '%s'", new_weight, pinned, layer.name)

    leftover = max(0, TOTAL_PERCENT - pinned)
    other_traits = [trait for position, trait in enumerate(layer.traits) if position != target_index]
    if strategy == "proportional":
        shares = split_proportionally(leftover, [trait.weight for trait in other_traits])
        shares = _lift_zero_shares(shares)
    else:
        shares = split_evenly(leftover, others)

    weights: List[int] = []
    share_iter = iter(shares)
    for position in range(len(layer.traits)):
        weights.append(pinned if position == target_index else next(share_iter))
    return layer.with_weights(weights)


def _lift_zero_shares(shares: List[int]) -> List[int]:
    # Move single points from the largest share to any share that rounded to zero.
    lifted = list(shares)
    for position, share in enumerate(lifted):
        if share >= 1:
            continue
        donor = max(range(len(lifted)), key=lambda i: (lifted[i], -i))
        if lifted[donor] <= 1:
            break
        lifted[donor] -= 1
        lifted[position] += 1
    return lifted


def normalize_layer_set(layer_set: LayerSet, total_percent: int = TOTAL_PERCENT) -> LayerSet:
    """Even out every layer whose weights do not already sum to ``total_percent``."""

    layers = []
    for layer in layer_set:
        if layer.traits and layer.total_weight != total_percent:
            layers.append(distribute_evenly(layer, total_percent))
        else:
            layers.append(layer)
    return LayerSet(tuple(layers))


__all__ = [
    "STRATEGIES",
    "TOTAL_PERCENT",
    "distribute_evenly",
    "normalize_layer_set",
    "set_trait_weight",
    "split_evenly",
    "split_proportionally",
]
