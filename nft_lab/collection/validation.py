"""Pre-generation checks for a :class:`LayerSet`.

Hard errors block generation (nothing could be sampled). Weight sums other
than 100 are reported as warnings only: the sampler works with any positive
weights, it just loses the exact "percent" reading.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from .model import LayerSet

LOGGER = logging.getLogger("nft_lab.validation")

TARGET_TOTAL_WEIGHT = 100


@dataclass(frozen=True)
class LayerIssue:
    rule: str
    message: str
    severity: str = "warning"
    layer: str | None = None


class LayerValidationError(ValueError):
    """Raised when a layer set cannot produce any combination."""

    def __init__(self, issues: Sequence[LayerIssue]) -> None:
        messages = "; ".join(issue.message for issue in issues)
        super().__init__(f"layer set is not generatable: {messages}")
        self.issues = list(issues)


def validate_layers(layer_set: LayerSet) -> list[LayerIssue]:
    issues: list[LayerIssue] = []
    if len(layer_set) == 0:
        issues.append(LayerIssue("no_layers", "No layers found. Upload some image files.", "error"))
        return issues

    for layer in layer_set:
        if not layer.traits:
            issues.append(
                LayerIssue("empty_layer", f"Layer '{layer.name}' has no traits.", "warning", layer.name)
            )
            continue
        total = layer.total_weight
        if total <= 0:
            issues.append(
                LayerIssue(
                    "zero_weight",
                    f"Layer '{layer.name}' has no valid rarity settings.",
                    "error" if layer.visible else "warning",
                    layer.name,
                )
            )
        elif total != TARGET_TOTAL_WEIGHT:
            issues.append(
                LayerIssue(
                    "weight_sum",
                    f"Layer '{layer.name}' weights sum to {total}, expected {TARGET_TOTAL_WEIGHT}.",
                    "warning",
                    layer.name,
                )
            )
        if any(trait.weight < 1 for trait in layer.traits):
            issues.append(
                LayerIssue(
                    "weight_min",
                    f"Layer '{layer.name}' has traits with weight below 1.",
                    "warning",
                    layer.name,
                )
            )

    if not layer_set.visible_layers():
        issues.append(LayerIssue("nothing_visible", "No visible layer holds any trait.", "error"))
    return issues


def ensure_generatable(layer_set: LayerSet) -> list[LayerIssue]:
    """Raise on hard errors, log and return the remaining warnings."""

    issues = validate_layers(layer_set)
    errors = [issue for issue in issues if issue.severity == "error"]
    if errors:
        raise LayerValidationError(errors)
    for issue in issues:
        LOGGER.warning("%s", issue.message)
    return issues


__all__ = ["LayerIssue", "LayerValidationError", "TARGET_TOTAL_WEIGHT", "ensure_generatable", "validate_layers"]
