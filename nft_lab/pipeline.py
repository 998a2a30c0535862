"""Batch orchestration: price, validate, sample, render, rank."""
from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from nft_lab.collection.model import (
    CollectionSpec,
    Combination,
    GeneratedToken,
    ProgressEvent,
    ProgressStatus,
)
from nft_lab.collection.validation import LayerIssue, ensure_generatable
from nft_lab.generation.combinations import DEFAULT_MAX_ATTEMPTS, generate_combinations
from nft_lab.image.compositor import Compositor
from nft_lab.pricing.curves import PriceSchedule
from nft_lab.pricing.engine import compute_schedule
from nft_lab.pricing.formula import FormulaEvaluator
from nft_lab.randomization import RandomSource, make_rng
from nft_lab.rarity.scoring import rank_tokens, score_combination

LOGGER = logging.getLogger("nft_lab.pipeline")

ProgressCallback = Callable[[ProgressEvent], None]


class CancellationToken:
    """Thread-safe stop flag checked between combinations."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass(frozen=True)
class GenerationResult:
    tokens: Tuple[GeneratedToken, ...]
    schedule: PriceSchedule
    status: ProgressStatus
    duplicates: int = 0
    cancelled: bool = False
    issues: Tuple[LayerIssue, ...] = field(default=())

    @property
    def placeholders(self) -> int:
        return sum(1 for token in self.tokens if token.composite_image.placeholder)

    def summary(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "tokens": len(self.tokens),
            "duplicates": self.duplicates,
            "placeholders": self.placeholders,
            "cancelled": self.cancelled,
            "schedule_length": len(self.schedule),
        }


def requested_count(spec: CollectionSpec) -> int:
    """Tokens to produce: ``requested_count`` when set, else the full supply."""

    if spec.requested_count > 0:
        return int(spec.requested_count)
    return max(0, int(spec.total_supply))


def _count_duplicates(combinations: Sequence[Combination]) -> int:
    seen: set[str] = set()
    duplicates = 0
    for combination in combinations:
        key = combination.key()
        if key in seen:
            duplicates += 1
        seen.add(key)
    return duplicates


async def generate_collection(
    spec: CollectionSpec,
    *,
    rng: Optional[RandomSource] = None,
    compositor: Optional[Compositor] = None,
    concurrency: int = 4,
    progress: Optional[ProgressCallback] = None,
    cancel: Optional[CancellationToken] = None,
    evaluator: Optional[FormulaEvaluator] = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> GenerationResult:
    """Produce ranked tokens and the mint price schedule for ``spec``.

    Pricing and layer validation errors propagate after an ``error`` progress
    event. Image problems never do: affected tokens carry placeholders.
    """

    rng = rng or make_rng()
    compositor = compositor or Compositor()
    total = requested_count(spec)

    def emit(current: int, status: ProgressStatus) -> None:
        if progress is not None:
            progress(ProgressEvent(current=current, total=total, status=status))

    try:
        schedule = compute_schedule(
            spec.total_supply,
            spec.whitelist_reservations,
            spec.curve,
            evaluator=evaluator,
        )
        issues = ensure_generatable(spec.layers)
    except Exception:
        emit(0, ProgressStatus.ERROR)
        raise

    combinations = generate_combinations(spec.layers, total, rng, max_attempts=max_attempts)
    duplicates = _count_duplicates(combinations)
    LOGGER.info(
        "rendering %d combinations (%d duplicates, concurrency=%d)",
        len(combinations),
        duplicates,
        concurrency,
    )

    semaphore = asyncio.Semaphore(max(1, int(concurrency)))
    produced = 0

    async def render_one(index: int, combination: Combination) -> GeneratedToken | None:
        nonlocal produced
        async with semaphore:
            if cancel is not None and cancel.cancelled:
                return None
            image = await compositor.render(combination, spec.layers)
            token = GeneratedToken(
                index=index,
                name=f"{spec.name} #{index}",
                composite_image=image,
                attributes=combination.attributes(),
                rarity_score=score_combination(combination),
            )
        produced += 1
        emit(produced, ProgressStatus.GENERATING)
        return token

    try:
        rendered = await asyncio.gather(
            *(render_one(index, combination) for index, combination in enumerate(combinations, start=1))
        )
    except Exception:
        emit(produced, ProgressStatus.ERROR)
        raise

    tokens: List[GeneratedToken] = [token for token in rendered if token is not None]
    ranked = rank_tokens(tokens)
    was_cancelled = bool(cancel is not None and cancel.cancelled and len(ranked) < total)
    if was_cancelled:
        LOGGER.warning("generation cancelled after %d of %d tokens", len(ranked), total)
    emit(len(ranked), ProgressStatus.COMPLETE)
    return GenerationResult(
        tokens=tuple(ranked),
        schedule=schedule,
        status=ProgressStatus.COMPLETE,
        duplicates=duplicates,
        cancelled=was_cancelled,
        issues=tuple(issues),
    )


def run_generation(spec: CollectionSpec, **kwargs: Any) -> GenerationResult:
    """Blocking wrapper around :func:`generate_collection`."""

    return asyncio.run(generate_collection(spec, **kwargs))


__all__ = [
    "CancellationToken",
    "GenerationResult",
    "ProgressCallback",
    "generate_collection",
    "requested_count",
    "run_generation",
]
