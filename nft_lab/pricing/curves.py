"""Pricing configuration and schedule value types."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, Sequence, Tuple


class CurveType(str, Enum):
    FLAT = "flat"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    LOGARITHMIC = "logarithmic"
    S_CURVE = "s-curve"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: "CurveType | str") -> "CurveType":
        if isinstance(value, CurveType):
            return value
        normalized = str(value).strip().lower().replace("_", "-")
        if normalized in {"scurve", "sigmoid"}:
            normalized = cls.S_CURVE.value
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ValueError(f"unsupported curve type '{value}'") from exc


@dataclass(frozen=True)
class CustomFormula:
    expression: str
    variables: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class CurveSpec:
    """Bonding-curve (or flat) pricing configuration.

    ``growth_rate`` is a percentage per mint used by the exponential curve.
    ``steepness`` and ``inflection_point`` shape the s-curve, the latter as a
    fraction of effective supply.
    """

    type: CurveType = CurveType.FLAT
    starting_price: float = 0.0
    ending_price: float | None = None
    price_points: Tuple[Tuple[int, float], ...] = ()
    custom_formula: CustomFormula | None = None
    price_floor: float | None = None
    price_cap: float | None = None
    growth_rate: float = 1.0
    steepness: float = 10.0
    inflection_point: float = 0.5

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", CurveType.parse(self.type))
        points = tuple((int(supply), float(price)) for supply, price in self.price_points)
        object.__setattr__(self, "price_points", points)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "CurveSpec":
        if not raw:
            return cls()
        formula = None
        formula_raw = raw.get("custom_formula") or raw.get("formula")
        if isinstance(formula_raw, str):
            formula = CustomFormula(expression=formula_raw, variables=_float_map(raw.get("variables")))
        elif isinstance(formula_raw, Mapping):
            formula = CustomFormula(
                expression=str(formula_raw.get("expression", "")),
                variables=_float_map(formula_raw.get("variables")),
            )
        return cls(
            type=CurveType.parse(raw.get("type", CurveType.FLAT)),
            starting_price=float(raw.get("starting_price", raw.get("start", 0.0))),
            ending_price=_optional_float(raw.get("ending_price", raw.get("end"))),
            price_points=tuple(_price_points(raw.get("price_points"))),
            custom_formula=formula,
            price_floor=_optional_float(raw.get("price_floor")),
            price_cap=_optional_float(raw.get("price_cap")),
            growth_rate=float(raw.get("growth_rate", 1.0)),
            steepness=float(raw.get("steepness", 10.0)),
            inflection_point=float(raw.get("inflection_point", 0.5)),
        )


@dataclass(frozen=True)
class PricePoint:
    mint_index: int
    price: float


@dataclass(frozen=True)
class PriceSchedule:
    """Per-mint-index prices for the non-whitelist part of supply."""

    entries: Tuple[PricePoint, ...] = ()

    def __iter__(self) -> Iterator[PricePoint]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, position: int) -> PricePoint:
        return self.entries[position]

    def prices(self) -> list[float]:
        return [entry.price for entry in self.entries]

    def price_for(self, mint_index: int) -> float:
        if mint_index < 1 or mint_index > len(self.entries):
            raise IndexError(f"mint index {mint_index} outside 1..{len(self.entries)}")
        return self.entries[mint_index - 1].price

    def total(self) -> float:
        return sum(entry.price for entry in self.entries)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "length": len(self.entries),
            "entries": [[entry.mint_index, entry.price] for entry in self.entries],
        }

    def to_json(self) -> bytes:
        """Canonical encoding; identical schedules produce identical bytes."""

        return json.dumps(self.as_dict(), separators=(",", ":"), sort_keys=True).encode("utf-8")


@dataclass(frozen=True)
class WhitelistPhase:
    """Reserved supply sold at a fixed, optionally discounted price."""

    name: str
    spots: int
    price: float = 0.0
    price_multiplier: float = 1.0

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "WhitelistPhase":
        return cls(
            name=str(raw.get("name", "Phase")),
            spots=int(raw.get("spots", raw.get("max_mints", 0))),
            price=float(raw.get("price", 0.0)),
            price_multiplier=float(raw.get("price_multiplier", 1.0)),
        )


def reservations_from_phases(phases: Sequence[WhitelistPhase]) -> Tuple[int, ...]:
    return tuple(int(phase.spots) for phase in phases)


def phase_price(phase: WhitelistPhase) -> float:
    """Price paid during a whitelist phase.

    The multiplier applies to the phase's own fixed price and never to the
    bonding-curve schedule, which only covers supply left after reservations.
    """

    return float(phase.price) * float(phase.price_multiplier)


def _optional_float(value: Any) -> float | None:
    if value in (None, ""):
        return None
    return float(value)


def _float_map(value: Any) -> Dict[str, float]:
    if not isinstance(value, Mapping):
        return {}
    return {str(key): float(raw) for key, raw in value.items()}


def _price_points(value: Any) -> list[Tuple[int, float]]:
    if not value:
        return []
    points: list[Tuple[int, float]] = []
    for entry in value:
        if isinstance(entry, Mapping):
            points.append((int(entry["supply"]), float(entry["price"])))
        else:
            supply, price = entry
            points.append((int(supply), float(price)))
    return points


__all__ = [
    "CurveSpec",
    "CurveType",
    "CustomFormula",
    "PricePoint",
    "PriceSchedule",
    "WhitelistPhase",
    "phase_price",
    "reservations_from_phases",
]
