"""Layer naming heuristics for uploaded asset paths."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Sequence, Tuple

DEFAULT_LAYER_NAME = "Default Layer"

# Root folder name that is never a layer even when it sits in the layer slot.
RESERVED_ROOT_ALIASES: Tuple[str, ...] = ("LosBros",)

_DIGIT_PREFIX = re.compile(r"^[0-9]+[_-]")
_WORD_START = re.compile(r"\b\w")
_TOKEN_SPLIT = re.compile(r"[-_]")


def format_layer_name(name: str) -> str:
    """``01_left_eye`` -> ``Left Eye``; the rest of each word keeps its case."""

    formatted = _DIGIT_PREFIX.sub("", name.strip())
    formatted = formatted.replace("_", " ")
    return _WORD_START.sub(lambda match: match.group(0).upper(), formatted).strip()


def split_tokens(stem: str) -> list[str]:
    return [token for token in _TOKEN_SPLIT.split(stem) if token]


@dataclass(frozen=True)
class LayerRule:
    predicate: Callable[[str], bool]
    layer_name: str

    def matches(self, lowered_path: str) -> bool:
        return self.predicate(lowered_path)


def keyword_rule(layer_name: str, *keywords: str) -> LayerRule:
    lowered = tuple(keyword.lower() for keyword in keywords)
    return LayerRule(lambda path: any(keyword in path for keyword in lowered), layer_name)


DEFAULT_RULES: Tuple[LayerRule, ...] = (
    keyword_rule("Background", "background", "bg"),
    keyword_rule("Body", "body", "skin"),
    keyword_rule("Clothes", "clothes", "clothing"),
    keyword_rule("Eyes", "eyes"),
    keyword_rule("Mouth", "mouth"),
    keyword_rule("Head", "hat", "head"),
    keyword_rule("Accessory", "accessory"),
    keyword_rule("Weapon", "weapon"),
    keyword_rule("Special", "special", "effect"),
    keyword_rule("1of1s", "1of1"),
)


def match_rules(lowered_path: str, rules: Sequence[LayerRule] = DEFAULT_RULES) -> str | None:
    """First matching rule wins; ``None`` when nothing applies."""

    for rule in rules:
        if rule.matches(lowered_path):
            return rule.layer_name
    return None


__all__ = [
    "DEFAULT_LAYER_NAME",
    "DEFAULT_RULES",
    "LayerRule",
    "RESERVED_ROOT_ALIASES",
    "format_layer_name",
    "keyword_rule",
    "match_rules",
    "split_tokens",
]
