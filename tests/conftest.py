from __future__ import annotations

from pathlib import Path
import io
import sys
from typing import Callable, Tuple

import pytest
from PIL import Image

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from nft_lab.collection.model import Layer, LayerSet, Trait
from nft_lab.rarity.normalizer import distribute_evenly

Color = Tuple[int, int, int, int]


def png_bytes(color: Color, size: Tuple[int, int] = (8, 8)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture()
def make_png() -> Callable[..., bytes]:
    return png_bytes


def build_layer(name: str, trait_names, *, render_order: int = 0, color_seed: int = 0) -> Layer:
    traits = [
        Trait.create(
            trait_name,
            png_bytes(((40 * position + color_seed) % 256, 80, 160, 255)),
        )
        for position, trait_name in enumerate(trait_names)
    ]
    return distribute_evenly(Layer.create(name, traits, render_order=render_order))


@pytest.fixture()
def layer_set() -> LayerSet:
    return LayerSet(
        (
            build_layer("Background", ["Blue", "Red"], render_order=0),
            build_layer("Body", ["Ape", "Robot", "Zombie"], render_order=1, color_seed=7),
            build_layer("Eyes", ["Laser", "Sleepy"], render_order=2, color_seed=13),
        )
    )
