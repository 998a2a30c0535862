"""Value types shared by the classifier, generator, compositor and pricing layers."""
from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Sequence, Tuple, Union

from nft_lab.pricing.curves import CurveSpec

ImageRef = Union[bytes, Path, None]

_BACKGROUND_PATTERN = re.compile(r"background", re.IGNORECASE)


def new_object_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def is_background_layer(name: str) -> bool:
    """Return ``True`` for layer names that must always render first."""

    stripped = name.strip()
    return bool(_BACKGROUND_PATTERN.search(stripped)) or stripped.lower() == "bg"


@dataclass(frozen=True)
class Trait:
    """One selectable option within a layer."""

    id: str
    name: str
    image_ref: ImageRef = field(default=None, repr=False, compare=False)
    weight: int = 100
    source_path: str | None = None

    @classmethod
    def create(
        cls,
        name: str,
        image_ref: ImageRef = None,
        *,
        weight: int = 100,
        source_path: str | None = None,
    ) -> "Trait":
        return cls(
            id=new_object_id("trait"),
            name=name,
            image_ref=image_ref,
            weight=int(weight),
            source_path=source_path,
        )

    def with_weight(self, weight: int) -> "Trait":
        return replace(self, weight=int(weight))


@dataclass(frozen=True)
class Layer:
    """Named group of mutually exclusive traits composited at a fixed depth."""

    id: str
    name: str
    traits: Tuple[Trait, ...] = ()
    render_order: int = 0
    visible: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "traits", tuple(self.traits))
        if is_background_layer(self.name) and self.render_order != 0:
            object.__setattr__(self, "render_order", 0)

    @classmethod
    def create(
        cls,
        name: str,
        traits: Sequence[Trait] = (),
        *,
        render_order: int = 0,
        visible: bool = True,
    ) -> "Layer":
        return cls(
            id=new_object_id("layer"),
            name=name,
            traits=tuple(traits),
            render_order=render_order,
            visible=visible,
        )

    @property
    def total_weight(self) -> int:
        return sum(trait.weight for trait in self.traits)

    def trait(self, trait_id: str) -> Trait:
        for trait in self.traits:
            if trait.id == trait_id:
                return trait
        raise KeyError(f"layer '{self.name}' has no trait with id '{trait_id}'")

    def with_traits(self, traits: Sequence[Trait]) -> "Layer":
        return replace(self, traits=tuple(traits))

    def with_weights(self, weights: Sequence[int]) -> "Layer":
        if len(weights) != len(self.traits):
            raise ValueError(
                f"expected {len(self.traits)} weights for layer '{self.name}', got {len(weights)}"
            )
        return self.with_traits(
            [trait.with_weight(weight) for trait, weight in zip(self.traits, weights)]
        )

    def with_visibility(self, visible: bool) -> "Layer":
        return replace(self, visible=bool(visible))


@dataclass(frozen=True)
class LayerSet:
    """Ordered, immutable collection of layers for one collection."""

    layers: Tuple[Layer, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "layers", tuple(self.layers))

    def __iter__(self) -> Iterator[Layer]:
        return iter(self.layers)

    def __len__(self) -> int:
        return len(self.layers)

    def get(self, name: str) -> Layer:
        for layer in self.layers:
            if layer.name == name:
                return layer
        raise KeyError(f"unknown layer '{name}'")

    def names(self) -> list[str]:
        return [layer.name for layer in self.layers]

    def visible_layers(self) -> list[Layer]:
        """Layers that take part in sampling: visible and holding at least one trait."""

        return [layer for layer in self.layers if layer.visible and layer.traits]

    def with_layer(self, layer: Layer) -> "LayerSet":
        updated = []
        found = False
        for existing in self.layers:
            if existing.id == layer.id:
                updated.append(layer)
                found = True
            else:
                updated.append(existing)
        if not found:
            updated.append(layer)
        return LayerSet(tuple(updated))

    def max_unique_combinations(self) -> int:
        visible = self.visible_layers()
        if not visible:
            return 0
        total = 1
        for layer in visible:
            total *= len(layer.traits)
        return total


class Combination(Mapping[str, Trait]):
    """One trait per visible layer, keyed by layer name in sampling order."""

    __slots__ = ("_selections",)

    def __init__(self, selections: Mapping[str, Trait] | Sequence[Tuple[str, Trait]]) -> None:
        items = selections.items() if isinstance(selections, Mapping) else selections
        self._selections: Dict[str, Trait] = {str(name): trait for name, trait in items}

    def __getitem__(self, layer_name: str) -> Trait:
        return self._selections[layer_name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._selections)

    def __len__(self) -> int:
        return len(self._selections)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Combination):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(frozenset(self._identity().items()))

    def __repr__(self) -> str:
        return f"Combination({self.key()!r})"

    def _identity(self) -> Dict[str, str]:
        return {name: trait.id for name, trait in self._selections.items()}

    def key(self) -> str:
        """Canonical ``Layer:Trait|Layer:Trait`` string used for uniqueness checks."""

        return "|".join(f"{name}:{trait.name}" for name, trait in self._selections.items())

    def attributes(self) -> Tuple[Tuple[str, str], ...]:
        return tuple((name, trait.name) for name, trait in self._selections.items())

    def weights(self) -> list[int]:
        return [trait.weight for trait in self._selections.values()]


@dataclass(frozen=True)
class RasterImage:
    """Encoded composite image handed to the storage collaborator."""

    data: bytes = field(repr=False)
    width: int
    height: int
    media_type: str = "image/png"
    placeholder: bool = False


class RarityTier(str, Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


@dataclass(frozen=True)
class GeneratedToken:
    index: int
    name: str
    composite_image: RasterImage
    attributes: Tuple[Tuple[str, str], ...]
    rarity_score: int
    rarity_rank: int | None = None
    rarity_tier: RarityTier | None = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "index": self.index,
            "name": self.name,
            "attributes": [list(pair) for pair in self.attributes],
            "rarity_score": self.rarity_score,
            "placeholder": self.composite_image.placeholder,
        }
        if self.rarity_rank is not None:
            payload["rarity_rank"] = self.rarity_rank
        if self.rarity_tier is not None:
            payload["rarity_tier"] = self.rarity_tier.value
        return payload


@dataclass(frozen=True)
class CollectionSpec:
    """Validated collection input supplied by the wizard layer."""

    layers: LayerSet
    total_supply: int
    curve: CurveSpec
    whitelist_reservations: Tuple[int, ...] = ()
    requested_count: int = 0
    name: str = "Collection"
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "whitelist_reservations", tuple(int(v) for v in self.whitelist_reservations))


class ProgressStatus(str, Enum):
    GENERATING = "generating"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class ProgressEvent:
    current: int
    total: int
    status: ProgressStatus


__all__ = [
    "CollectionSpec",
    "Combination",
    "GeneratedToken",
    "ImageRef",
    "Layer",
    "LayerSet",
    "ProgressEvent",
    "ProgressStatus",
    "RarityTier",
    "RasterImage",
    "Trait",
    "is_background_layer",
    "new_object_id",
]
