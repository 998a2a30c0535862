"""Command line entry point: ``nft-lab generate`` and ``nft-lab price``."""
from __future__ import annotations

import argparse
import json
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from rich.console import Console
from rich.table import Table

from nft_lab.assets.classifier import classify_archive, classify_directory
from nft_lab.collection.model import LayerSet, ProgressEvent
from nft_lab.collection.validation import LayerValidationError
from nft_lab.config import ConfigError, GeneratorConfig, load_config
from nft_lab.image.compositor import Compositor
from nft_lab.image.store import TokenArtifactStore
from nft_lab.logging_utils import RunLogger, create_logger
from nft_lab.pipeline import run_generation
from nft_lab.pricing.curves import PriceSchedule, phase_price
from nft_lab.pricing.engine import PricingError, compute_schedule
from nft_lab.rarity.normalizer import normalize_layer_set
from nft_lab.randomization import make_rng

PREVIEW_ROWS = 5


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nft-lab",
        description="Generate layered NFT collections and their mint price schedules.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    generate = commands.add_parser("generate", help="Compose tokens from layer images.")
    generate.add_argument(
        "--config",
        type=Path,
        required=True,
        help="YAML or JSON(C) configuration file.",
    )
    generate.add_argument(
        "--layers",
        type=Path,
        default=None,
        help="Layer folder or ZIP archive (overrides paths.layers).",
    )
    generate.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Directory for images, metadata and schedule.json (overrides paths.output_dir).",
    )
    generate.add_argument(
        "--count",
        type=int,
        default=None,
        help="Number of tokens to generate (overrides collection.requested_count).",
    )
    generate.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible trait sampling.",
    )
    generate.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="DEBUG, INFO, WARN or ERROR (overrides logging.level).",
    )

    price = commands.add_parser("price", help="Print the mint price schedule.")
    price.add_argument(
        "--config",
        type=Path,
        required=True,
        help="YAML or JSON(C) configuration file.",
    )
    price.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Optional path for the canonical schedule JSON.",
    )
    return parser


def load_layers(source: Path) -> LayerSet:
    if source.is_dir():
        return classify_directory(source)
    if source.is_file():
        return classify_archive(source)
    raise FileNotFoundError(f"layer source not found: {source}")


def _apply_overrides(config: GeneratorConfig, args: argparse.Namespace) -> GeneratorConfig:
    if args.layers is not None:
        config.paths.layers = args.layers
    if args.output is not None:
        config.paths.output_dir = args.output
    if args.count is not None:
        config.collection.requested_count = int(args.count)
    if args.seed is not None:
        config.collection.seed = int(args.seed)
    if args.log_level:
        config.logging.level = args.log_level.upper()
    return config


def _progress_reporter(logger: RunLogger):
    def report(event: ProgressEvent) -> None:
        logger.log("progress", f"{event.current}/{event.total} {event.status.value}", level="DEBUG")

    return report


def cmd_generate(args: argparse.Namespace) -> int:
    config = _apply_overrides(load_config(args.config), args)
    with create_logger(config.logging.level, config.logging.logfile) as logger:
        try:
            logger.log("config", json.dumps(config.as_dict(), sort_keys=True), level="DEBUG")
            if config.paths.layers is None:
                logger.log("assets", "no layer source configured (paths.layers or --layers)", level="ERROR")
                return 2
            layers = logger.timed(
                "assets",
                lambda result: f"{len(result)} layers from {config.paths.layers}",
                load_layers,
                config.paths.layers,
            )
            if config.generation.normalize_weights:
                layers = normalize_layer_set(layers)
            spec = config.to_collection_spec(layers)
            if spec.requested_count <= 0 and spec.total_supply <= 0:
                spec = replace(spec, requested_count=layers.max_unique_combinations())

            result = logger.timed(
                "generate",
                lambda res: (
                    f"{len(res.tokens)} tokens, {res.duplicates} duplicates, "
                    f"{res.placeholders} placeholders"
                ),
                run_generation,
                spec,
                rng=make_rng(config.collection.seed),
                compositor=Compositor(size=config.render.size),
                concurrency=config.render.concurrency,
                max_attempts=config.generation.max_attempts,
                progress=_progress_reporter(logger),
            )

            store = TokenArtifactStore(config.paths.output_dir)
            saved = store.persist_tokens(
                result.tokens,
                description=config.collection.description,
                image_base_uri=config.collection.image_base_uri,
            )
            schedule_path = store.persist_schedule(result.schedule)
            logger.log("store", f"wrote {len(saved)} tokens and {schedule_path.name} to {store.output_dir}")
            logger.log("summary", json.dumps(result.summary(), sort_keys=True))
            return 0
        except (FileNotFoundError, LayerValidationError, PricingError) as exc:
            logger.log("generate", str(exc), level="ERROR")
            return 1


def render_schedule(
    schedule: PriceSchedule,
    config: GeneratorConfig,
    console: Console,
    *,
    preview_rows: int = PREVIEW_ROWS,
) -> None:
    console.print(f"{config.collection.name}: {config.pricing.type.value} pricing")
    table = Table()
    table.add_column("Mint", justify="right")
    table.add_column("Price", justify="right")
    entries = list(schedule)
    if len(entries) > preview_rows * 2:
        shown = entries[:preview_rows] + [None] + entries[-preview_rows:]
    else:
        shown = entries
    for entry in shown:
        if entry is None:
            table.add_row("...", "...")
        else:
            table.add_row(str(entry.mint_index), f"{entry.price:.6f}")
    console.print(table)
    for phase in config.whitelist:
        console.print(f"whitelist {phase.name}: {phase.spots} spots at {phase_price(phase):.6f}")
    console.print(f"public mints: {len(schedule)}  total: {schedule.total():.6f}")


def cmd_price(args: argparse.Namespace, console: Console | None = None) -> int:
    config = load_config(args.config)
    console = console or Console()
    try:
        schedule = compute_schedule(
            config.collection.total_supply,
            config.reservations(),
            config.pricing,
        )
    except PricingError as exc:
        console.print(f"[red]pricing failed:[/red] {exc}")
        return 1
    render_schedule(schedule, config, console)
    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_bytes(schedule.to_json())
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        if args.command == "generate":
            return cmd_generate(args)
        return cmd_price(args)
    except ConfigError as exc:
        Console(stderr=True).print(f"[red]configuration error:[/red] {exc}")
        return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
