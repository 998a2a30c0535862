from __future__ import annotations

import io
import json
import logging
from datetime import datetime
from pathlib import Path

import pytest
from PIL import Image
from rich.console import Console

from conftest import png_bytes
from nft_lab.cli import build_parser, cmd_price, main
from nft_lab.collection.model import GeneratedToken, RarityTier, RasterImage
from nft_lab.image.compositor import encode_png
from nft_lab.image.store import TokenArtifactStore
from nft_lab.logging_utils import LIBRARY_LOGGER, RunLogger, create_logger, format_line
from nft_lab.metadata import token_metadata
from nft_lab.pricing.curves import CurveSpec
from nft_lab.pricing.engine import compute_schedule


def _token(index: int = 1) -> GeneratedToken:
    return GeneratedToken(
        index=index,
        name=f"Apes #{index}",
        composite_image=RasterImage(
            data=encode_png(Image.new("RGBA", (4, 4), (10, 20, 30, 255))), width=4, height=4
        ),
        attributes=(("Background", "Blue"), ("Eyes", "Laser")),
        rarity_score=42,
        rarity_rank=2,
        rarity_tier=RarityTier.RARE,
    )


def _write_layers(root: Path) -> None:
    for layer, traits in {"Background": ["blue", "red"], "Eyes": ["laser", "sleepy", "wink"]}.items():
        (root / layer).mkdir(parents=True)
        for position, trait in enumerate(traits):
            (root / layer / f"{trait}.png").write_bytes(png_bytes((position * 60, 90, 30, 255)))


def _write_config(path: Path, layers: Path, output: Path) -> Path:
    path.write_text(
        f"""
paths:
  layers: {layers.as_posix()}
  output_dir: {output.as_posix()}
collection:
  name: Apes
  description: Test apes
  total_supply: 10
  requested_count: 4
  seed: 5
render:
  width: 8
  height: 8
  concurrency: 2
generation:
  normalize_weights: true
pricing:
  type: linear
  starting_price: 0.1
  ending_price: 0.4
whitelist:
  - name: OG
    spots: 6
    price: 0.2
    price_multiplier: 0.5
logging:
  level: ERROR
""",
        encoding="utf-8",
    )
    return path


def test_token_metadata_document() -> None:
    document = token_metadata(_token(3), description="Apes", image_uri="ipfs://cid/3.png")
    assert document == {
        "name": "Apes #3",
        "description": "Apes",
        "image": "ipfs://cid/3.png",
        "edition": 3,
        "attributes": [
            {"trait_type": "Background", "value": "Blue"},
            {"trait_type": "Eyes", "value": "Laser"},
        ],
        "rarity_score": 42,
        "rarity_rank": 2,
        "rarity_tier": "rare",
    }


def test_store_writes_images_metadata_and_schedule(tmp_path: Path) -> None:
    store = TokenArtifactStore(tmp_path / "out")
    saved = store.persist_token(_token(1), description="d", image_base_uri="ipfs://cid/")
    assert saved.image_path == tmp_path / "out" / "images" / "1.png"
    metadata = json.loads(saved.metadata_path.read_text(encoding="utf-8"))
    assert metadata["image"] == "ipfs://cid/1.png"
    assert metadata["edition"] == 1
    assert saved.image_path.read_bytes() == _token(1).composite_image.data

    schedule = compute_schedule(3, [], CurveSpec(starting_price=1.0))
    path = store.persist_schedule(schedule)
    assert path.read_bytes() == schedule.to_json()


def test_cli_generate_end_to_end(tmp_path: Path) -> None:
    layers = tmp_path / "apes"
    _write_layers(layers)
    output = tmp_path / "build"
    config = _write_config(tmp_path / "collection.yaml", layers, output)

    assert main(["generate", "--config", str(config), "--count", "5"]) == 0

    images = sorted(p.name for p in (output / "images").iterdir())
    assert images == ["1.png", "2.png", "3.png", "4.png", "5.png"]
    first = json.loads((output / "metadata" / "1.json").read_text(encoding="utf-8"))
    assert first["name"] == "Apes #1"
    assert first["description"] == "Test apes"
    assert {a["trait_type"] for a in first["attributes"]} == {"Background", "Eyes"}
    schedule = json.loads((output / "schedule.json").read_text(encoding="utf-8"))
    assert schedule["length"] == 4
    assert not logging.getLogger(LIBRARY_LOGGER).handlers


def test_cli_generate_reports_missing_layers(tmp_path: Path) -> None:
    config = _write_config(tmp_path / "collection.yaml", tmp_path / "nowhere", tmp_path / "out")
    assert main(["generate", "--config", str(config)]) == 1


def test_cli_reports_config_errors(tmp_path: Path) -> None:
    bad = tmp_path / "bad.yaml"
    bad.write_text("- 1\n", encoding="utf-8")
    assert main(["price", "--config", str(bad)]) == 2


def test_cli_price_prints_summary_and_writes_json(tmp_path: Path) -> None:
    config = _write_config(tmp_path / "collection.yaml", tmp_path, tmp_path / "out")
    target = tmp_path / "schedule.json"
    args = build_parser().parse_args(["price", "--config", str(config), "--output", str(target)])
    console = Console(file=io.StringIO(), width=120)
    assert cmd_price(args, console=console) == 0
    text = console.file.getvalue()
    assert "Apes: linear pricing" in text
    assert "whitelist OG: 6 spots at 0.100000" in text
    assert "public mints: 4" in text
    assert json.loads(target.read_text(encoding="utf-8"))["length"] == 4


def test_cli_requires_subcommand() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_run_logger_filters_levels_and_writes_logfile(tmp_path: Path) -> None:
    console = Console(file=io.StringIO(), width=200)
    logfile = tmp_path / "logs" / "run.log"
    run_logger = create_logger("warning", logfile, console=console)
    try:
        run_logger.log("assets", "hidden", level="INFO")
        run_logger.log("assets", "shown", level="WARN")
        logging.getLogger("nft_lab.generation").warning("from the library")
        result = run_logger.timed("price", lambda value: f"value={value}", lambda: 3, level="ERROR")
    finally:
        run_logger.close()

    assert result == 3
    text = logfile.read_text(encoding="utf-8")
    assert "hidden" not in text
    assert "[WARN ] [ASSETS  ] shown" in text
    assert "[GENERATION] from the library" in text
    assert "value=3" in text
    assert not logging.getLogger(LIBRARY_LOGGER).handlers


def test_run_logger_timed_reraises() -> None:
    console = Console(file=io.StringIO())
    run_logger = RunLogger(console=console)

    def fail() -> None:
        raise RuntimeError("nope")

    with pytest.raises(RuntimeError):
        run_logger.timed("step", "never", fail)
    assert "error: nope" in console.file.getvalue()


def test_format_line_pads_level_and_step() -> None:
    now = datetime(2024, 1, 2, 3, 4, 5, 678000)
    assert format_line("assets", "WARN", "skipped", now=now) == "[03:04:05.678] [WARN ] [ASSETS  ] skipped"
    assert format_line("generate", "INFO", "done", 12.4, now=now).endswith("[GENERATE] done (ms=12)")


def test_run_logger_context_detaches_library_handler() -> None:
    console = Console(file=io.StringIO(), width=200)
    with create_logger("debug", None, console=console) as run_logger:
        assert logging.getLogger(LIBRARY_LOGGER).handlers
        logging.getLogger("nft_lab.pricing").debug("computed schedule")
    assert not logging.getLogger(LIBRARY_LOGGER).handlers
    assert "[PRICING ] computed schedule" in console.file.getvalue()
    assert run_logger.level == "DEBUG"
