"""Mint pricing: curve configuration, schedules and formula evaluation."""

from .curves import (
    CurveSpec,
    CurveType,
    CustomFormula,
    PricePoint,
    PriceSchedule,
    WhitelistPhase,
    phase_price,
    reservations_from_phases,
)
from .engine import PricingError, compute_schedule, effective_supply
from .formula import FormulaError, FormulaEvaluator, SafeFormulaEvaluator

__all__ = [
    "CurveSpec",
    "CurveType",
    "CustomFormula",
    "FormulaError",
    "FormulaEvaluator",
    "PricePoint",
    "PriceSchedule",
    "PricingError",
    "SafeFormulaEvaluator",
    "WhitelistPhase",
    "compute_schedule",
    "effective_supply",
    "phase_price",
    "reservations_from_phases",
]
