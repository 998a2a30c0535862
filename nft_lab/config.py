from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import json
import yaml

from nft_lab.collection.model import CollectionSpec, LayerSet
from nft_lab.pricing.curves import CurveSpec, WhitelistPhase, reservations_from_phases


class ConfigError(ValueError):
    """Raised when a configuration document cannot be turned into settings."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


@dataclass
class PathsConfig:
    layers: Path | None = None
    output_dir: Path = Path("output")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "PathsConfig":
        if not raw:
            return cls()
        return cls(
            layers=_optional_path(raw.get("layers") or raw.get("assets")),
            output_dir=Path(str(raw.get("output_dir", "output"))),
        )


@dataclass
class CollectionConfig:
    name: str = "Collection"
    description: str = ""
    total_supply: int = 0
    requested_count: int = 0
    seed: Optional[int] = None
    image_base_uri: str | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "CollectionConfig":
        if not raw:
            return cls()
        total_supply = int(raw.get("total_supply", raw.get("supply", 0)))
        seed = raw.get("seed")
        return cls(
            name=str(raw.get("name", "Collection")),
            description=str(raw.get("description", "") or ""),
            total_supply=total_supply,
            requested_count=int(raw.get("requested_count", raw.get("count", total_supply))),
            seed=int(seed) if seed is not None else None,
            image_base_uri=_optional_str(raw.get("image_base_uri")),
        )


@dataclass
class RenderConfig:
    width: int = 1024
    height: int = 1024
    concurrency: int = 4

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "RenderConfig":
        if not raw:
            return cls()
        return cls(
            width=int(raw.get("width", 1024)),
            height=int(raw.get("height", 1024)),
            concurrency=max(1, int(raw.get("concurrency", 4))),
        )

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height


@dataclass
class GenerationConfig:
    max_attempts: int = 1000
    normalize_weights: bool = False

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "GenerationConfig":
        if not raw:
            return cls()
        return cls(
            max_attempts=max(1, int(raw.get("max_attempts", 1000))),
            normalize_weights=bool(raw.get("normalize_weights", False)),
        )


@dataclass
class LoggingConfig:
    level: str = "INFO"
    logfile: Path | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "LoggingConfig":
        if not raw:
            return cls()
        return cls(
            level=str(raw.get("level", "INFO")).upper(),
            logfile=_optional_path(raw.get("logfile")),
        )


@dataclass
class GeneratorConfig:
    paths: PathsConfig = field(default_factory=PathsConfig)
    collection: CollectionConfig = field(default_factory=CollectionConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    pricing: CurveSpec = field(default_factory=CurveSpec)
    whitelist: tuple[WhitelistPhase, ...] = ()
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "GeneratorConfig":
        if not isinstance(raw, Mapping):
            raise ConfigError("configuration must be a mapping")
        try:
            whitelist_data = raw.get("whitelist") or []
            if isinstance(whitelist_data, Mapping):
                whitelist_data = whitelist_data.get("phases") or []
            return cls(
                paths=PathsConfig.from_mapping(_section(raw, "paths")),
                collection=CollectionConfig.from_mapping(_section(raw, "collection")),
                render=RenderConfig.from_mapping(_section(raw, "render")),
                generation=GenerationConfig.from_mapping(_section(raw, "generation")),
                pricing=CurveSpec.from_mapping(_section(raw, "pricing")),
                whitelist=tuple(
                    WhitelistPhase.from_mapping(phase)
                    for phase in whitelist_data
                    if isinstance(phase, Mapping)
                ),
                logging=LoggingConfig.from_mapping(_section(raw, "logging")),
            )
        except ConfigError:
            raise
        except (TypeError, ValueError, KeyError) as exc:
            raise ConfigError(f"invalid configuration: {exc}") from exc

    def reservations(self) -> tuple[int, ...]:
        return reservations_from_phases(self.whitelist)

    def to_collection_spec(self, layers: LayerSet) -> CollectionSpec:
        return CollectionSpec(
            layers=layers,
            total_supply=self.collection.total_supply,
            curve=self.pricing,
            whitelist_reservations=self.reservations(),
            requested_count=self.collection.requested_count,
            name=self.collection.name,
            description=self.collection.description,
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "paths": {
                "layers": str(self.paths.layers) if self.paths.layers else None,
                "output_dir": str(self.paths.output_dir),
            },
            "collection": {
                "name": self.collection.name,
                "total_supply": self.collection.total_supply,
                "requested_count": self.collection.requested_count,
                "seed": self.collection.seed,
            },
            "render": {
                "width": self.render.width,
                "height": self.render.height,
                "concurrency": self.render.concurrency,
            },
            "generation": {
                "max_attempts": self.generation.max_attempts,
                "normalize_weights": self.generation.normalize_weights,
            },
            "pricing": {"type": self.pricing.type.value},
            "whitelist": [phase.name for phase in self.whitelist],
            "logging": {"level": self.logging.level},
        }


def load_config(path: Path) -> GeneratorConfig:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read configuration: {exc}", path=path) from exc
    suffix = path.suffix.lower()
    try:
        if suffix in {".json", ".jsonc"}:
            data = json.loads(_strip_jsonc(text))
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot parse configuration: {exc}", path=path) from exc
    if not isinstance(data, dict):
        raise ConfigError("Configuration file must contain a mapping at the top level", path=path)
    try:
        return GeneratorConfig.from_dict(data)
    except ConfigError as exc:
        raise ConfigError(str(exc), path=path) from exc


def _strip_jsonc(payload: str) -> str:
    result: list[str] = []
    length = len(payload)
    i = 0
    in_string = False
    escape = False
    while i < length:
        ch = payload[i]
        if in_string:
            result.append(ch)
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            i += 1
            continue

        if ch == '"':
            in_string = True
            result.append(ch)
            i += 1
            continue

        if ch == '/' and i + 1 < length:
            nxt = payload[i + 1]
            if nxt == '/':
                i += 2
                while i < length and payload[i] not in "\r\n":
                    i += 1
                continue
            if nxt == '*':
                i += 2
                while i < length - 1:
                    if payload[i] == '*' and payload[i + 1] == '/':
                        i += 2
                        break
                    i += 1
                continue

        result.append(ch)
        i += 1
    return "".join(result)


def _section(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = raw.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"section '{key}' must be a mapping")
    return value


def _optional_path(value: Any) -> Path | None:
    if value in (None, "", False):
        return None
    return Path(str(value))


def _optional_str(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


__all__ = [
    "CollectionConfig",
    "ConfigError",
    "GenerationConfig",
    "GeneratorConfig",
    "LoggingConfig",
    "PathsConfig",
    "RenderConfig",
    "load_config",
]
