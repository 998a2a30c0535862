"""Per-mint price schedules for bonding-curve and flat pricing."""
from __future__ import annotations

import bisect
import logging
import math
from typing import Callable, Mapping, Sequence, Tuple

from .curves import CurveSpec, CurveType, PricePoint, PriceSchedule
from .formula import FormulaError, FormulaEvaluator, SafeFormulaEvaluator

LOGGER = logging.getLogger("nft_lab.pricing")


class PricingError(ValueError):
    """Raised when a schedule cannot be computed.

    ``mint_index`` and ``expression`` identify the failing position and
    custom expression when known.
    """

    def __init__(
        self,
        message: str,
        *,
        mint_index: int | None = None,
        expression: str | None = None,
    ) -> None:
        details = []
        if mint_index is not None:
            details.append(f"mint_index={mint_index}")
        if expression is not None:
            details.append(f"expression={expression!r}")
        suffix = f" ({', '.join(details)})" if details else ""
        super().__init__(f"{message}{suffix}")
        self.mint_index = mint_index
        self.expression = expression


def effective_supply(total_supply: int, whitelist_reservations: Sequence[int]) -> int:
    if total_supply < 0:
        raise PricingError(f"total supply must not be negative, got {total_supply}")
    reserved = 0
    for spots in whitelist_reservations:
        if spots < 0:
            raise PricingError(f"whitelist reservation must not be negative, got {spots}")
        reserved += int(spots)
    return max(0, int(total_supply) - reserved)


def compute_schedule(
    total_supply: int,
    whitelist_reservations: Sequence[int],
    curve: CurveSpec,
    *,
    evaluator: FormulaEvaluator | None = None,
) -> PriceSchedule:
    """Price every mint index of the effective (non-whitelist) supply."""

    supply = effective_supply(total_supply, whitelist_reservations)
    if supply == 0:
        return PriceSchedule(())

    floor, cap = _bounds(curve)
    price_at = _price_function(curve, supply, evaluator)

    entries = []
    for mint_index in range(1, supply + 1):
        raw = price_at(mint_index)
        if math.isnan(raw):
            raise PricingError("price is not a number", mint_index=mint_index, expression=_expression(curve))
        # Only exponential growth saturates at the cap; anything else overflowing is malformed.
        if math.isinf(raw) and curve.type is not CurveType.EXPONENTIAL:
            raise PricingError("price is not finite", mint_index=mint_index, expression=_expression(curve))
        price = min(cap, max(floor, raw))
        if math.isinf(price):
            raise PricingError("price is not finite", mint_index=mint_index, expression=_expression(curve))
        entries.append(PricePoint(mint_index=mint_index, price=price))

    LOGGER.debug(
        "computed %s schedule: supply=%d first=%s last=%s",
        curve.type.value,
        supply,
        entries[0].price,
        entries[-1].price,
    )
    return PriceSchedule(tuple(entries))


def _bounds(curve: CurveSpec) -> Tuple[float, float]:
    floor = 0.0 if curve.price_floor is None else float(curve.price_floor)
    cap = math.inf if curve.price_cap is None else float(curve.price_cap)
    if curve.type is CurveType.EXPONENTIAL and curve.ending_price is not None:
        cap = min(cap, float(curve.ending_price))
    if floor > cap:
        raise PricingError(f"price floor {floor} is above price cap {cap}")
    return floor, cap


def _expression(curve: CurveSpec) -> str | None:
    if curve.type is CurveType.CUSTOM and curve.custom_formula is not None:
        return curve.custom_formula.expression
    return None


def _require_ending(curve: CurveSpec) -> float:
    if curve.ending_price is None:
        raise PricingError(f"{curve.type.value} curve requires an ending price")
    return float(curve.ending_price)


def _price_function(
    curve: CurveSpec,
    supply: int,
    evaluator: FormulaEvaluator | None,
) -> Callable[[int], float]:
    start = float(curve.starting_price)
    kind = curve.type

    if kind is CurveType.FLAT:
        return lambda _index: start

    if kind is CurveType.CUSTOM:
        return _custom_price(curve, supply, evaluator or SafeFormulaEvaluator())

    if curve.price_points:
        return _interpolated_price(curve.price_points)

    if kind is CurveType.EXPONENTIAL:
        factor = 1.0 + float(curve.growth_rate) / 100.0
        if factor <= 0:
            raise PricingError(f"growth rate {curve.growth_rate}% collapses the curve")

        def exponential(index: int) -> float:
            try:
                return start * factor ** (index - 1)
            except OverflowError:
                return math.inf if start > 0 else 0.0

        return exponential

    end = _require_ending(curve)
    span = end - start

    if kind is CurveType.LINEAR:
        if supply == 1:
            return lambda _index: start
        return lambda index: start + span * (index - 1) / (supply - 1)

    if kind is CurveType.LOGARITHMIC:
        if supply == 1:
            return lambda _index: start
        denominator = math.log(supply)
        return lambda index: start + span * math.log(index) / denominator

    if kind is CurveType.S_CURVE:
        if supply == 1:
            return lambda _index: start
        steepness = float(curve.steepness)
        midpoint = float(curve.inflection_point)
        if steepness <= 0:
            raise PricingError(f"s-curve steepness must be positive, got {steepness}")

        def logistic(x: float) -> float:
            return 1.0 / (1.0 + math.exp(-steepness * (x - midpoint)))

        low = logistic(0.0)
        high = logistic(1.0)
        if math.isclose(high, low):
            raise PricingError("s-curve parameters produce a flat curve")

        def s_curve(index: int) -> float:
            x = (index - 1) / (supply - 1)
            return start + span * (logistic(x) - low) / (high - low)

        return s_curve

    raise PricingError(f"unsupported curve type {kind!r}")


def _interpolated_price(points: Sequence[Tuple[int, float]]) -> Callable[[int], float]:
    ordered = sorted(points)
    supplies = [supply for supply, _ in ordered]
    if len(set(supplies)) != len(supplies):
        raise PricingError("price points must have distinct supply values")
    prices = [price for _, price in ordered]

    def interpolate(index: int) -> float:
        if index <= supplies[0]:
            return prices[0]
        if index >= supplies[-1]:
            return prices[-1]
        upper = bisect.bisect_left(supplies, index)
        if supplies[upper] == index:
            return prices[upper]
        lower = upper - 1
        fraction = (index - supplies[lower]) / (supplies[upper] - supplies[lower])
        return prices[lower] + (prices[upper] - prices[lower]) * fraction

    return interpolate


def _custom_price(
    curve: CurveSpec,
    supply: int,
    evaluator: FormulaEvaluator,
) -> Callable[[int], float]:
    formula = curve.custom_formula
    if formula is None or not formula.expression.strip():
        raise PricingError("custom curve requires a formula")
    variables: Mapping[str, float] = {str(k): float(v) for k, v in formula.variables.items()}

    def custom(index: int) -> float:
        bindings = dict(variables)
        bindings["supply"] = float(index)
        bindings["maxSupply"] = float(supply)
        try:
            return float(evaluator.evaluate(formula.expression, bindings))
        except FormulaError as exc:
            raise PricingError(exc.reason, mint_index=index, expression=formula.expression) from exc
        except (ArithmeticError, ValueError, TypeError) as exc:
            raise PricingError(str(exc), mint_index=index, expression=formula.expression) from exc

    return custom


__all__ = ["PricingError", "compute_schedule", "effective_supply"]
