"""Collection value types and validation."""

from .model import (
    CollectionSpec,
    Combination,
    GeneratedToken,
    Layer,
    LayerSet,
    ProgressEvent,
    ProgressStatus,
    RarityTier,
    RasterImage,
    Trait,
    is_background_layer,
)
from .validation import LayerValidationError, ensure_generatable, validate_layers

__all__ = [
    "CollectionSpec",
    "Combination",
    "GeneratedToken",
    "Layer",
    "LayerSet",
    "LayerValidationError",
    "ProgressEvent",
    "ProgressStatus",
    "RarityTier",
    "RasterImage",
    "Trait",
    "ensure_generatable",
    "is_background_layer",
    "validate_layers",
]
