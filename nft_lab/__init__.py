"""Layered NFT collection generation and mint pricing."""
from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - type checking helper
    from .config import GeneratorConfig, load_config
    from .pipeline import CancellationToken, GenerationResult, generate_collection, run_generation
    from .pricing import compute_schedule

__all__ = [
    "CancellationToken",
    "GenerationResult",
    "GeneratorConfig",
    "compute_schedule",
    "generate_collection",
    "load_config",
    "run_generation",
]

_EXPORTS = {
    "GeneratorConfig": ".config",
    "load_config": ".config",
    "CancellationToken": ".pipeline",
    "GenerationResult": ".pipeline",
    "generate_collection": ".pipeline",
    "run_generation": ".pipeline",
    "compute_schedule": ".pricing",
}


def __getattr__(name: str) -> Any:  # pragma: no cover - dispatch helper
    try:
        module_name = _EXPORTS[name]
    except KeyError:
        raise AttributeError(name) from None
    value = getattr(import_module(module_name, __name__), name)
    globals()[name] = value
    return value
