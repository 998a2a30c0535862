"""Trait sampling and combination generation."""

from .combinations import DEFAULT_MAX_ATTEMPTS, build_candidate, generate_combinations
from .sampler import sample_trait

__all__ = ["DEFAULT_MAX_ATTEMPTS", "build_candidate", "generate_combinations", "sample_trait"]
