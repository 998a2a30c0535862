"""Layered PNG compositing for generated combinations."""
from __future__ import annotations

import asyncio
import io
import logging
import math
from pathlib import Path
from typing import List, Protocol, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from nft_lab.collection.model import Combination, ImageRef, LayerSet, RasterImage, Trait

LOGGER = logging.getLogger("nft_lab.image")

DEFAULT_CANVAS_SIZE: Tuple[int, int] = (1024, 1024)
PLACEHOLDER_BACKGROUND = (238, 238, 238, 255)
PLACEHOLDER_TEXT = (40, 40, 40, 255)


class ImageLoader(Protocol):
    async def load(self, ref: ImageRef) -> Image.Image:
        """Decode ``ref`` into an RGBA image or raise."""


class PillowImageLoader:
    """Decode trait images with Pillow in a worker thread."""

    async def load(self, ref: ImageRef) -> Image.Image:
        return await asyncio.to_thread(self._decode, ref)

    @staticmethod
    def _decode(ref: ImageRef) -> Image.Image:
        if ref is None:
            raise ValueError("trait has no image data")
        source = io.BytesIO(ref) if isinstance(ref, (bytes, bytearray)) else Path(ref)
        with Image.open(source) as img:
            img.load()
            return img.convert("RGBA")


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def render_placeholder(
    combination: Combination,
    size: Tuple[int, int] = DEFAULT_CANVAS_SIZE,
) -> RasterImage:
    """Deterministic stand-in listing each ``layer: trait`` pair."""

    width, height = size
    canvas = Image.new("RGBA", (width, height), PLACEHOLDER_BACKGROUND)
    draw = ImageDraw.Draw(canvas)
    font = ImageFont.load_default()
    lines = [f"{layer}: {trait}" for layer, trait in combination.attributes()] or ["(no traits)"]
    line_height = max(12, math.ceil(height / max(len(lines) + 2, 24)))
    y = line_height
    for line in lines:
        draw.text((line_height, y), line, fill=PLACEHOLDER_TEXT, font=font)
        y += line_height
    return RasterImage(
        data=encode_png(canvas),
        width=width,
        height=height,
        placeholder=True,
    )


class Compositor:
    """Stack trait images bottom-to-top by layer render order."""

    def __init__(
        self,
        size: Tuple[int, int] = DEFAULT_CANVAS_SIZE,
        loader: ImageLoader | None = None,
    ) -> None:
        width, height = (int(size[0]), int(size[1]))
        if width <= 0 or height <= 0:
            raise ValueError(f"canvas size must be positive, got {size!r}")
        self.size = (width, height)
        self.loader: ImageLoader = loader or PillowImageLoader()

    async def render(self, combination: Combination, layer_set: LayerSet) -> RasterImage:
        """Composite ``combination``; never returns ``None``.

        Every trait image is loaded before compositing starts. A trait that
        fails to decode is skipped; when nothing can be drawn, or on any other
        failure, a placeholder is returned.
        """

        try:
            ordered = self.ordered_traits(combination, layer_set)
            loaded = await asyncio.gather(
                *(self.loader.load(trait.image_ref) for _, trait in ordered),
                return_exceptions=True,
            )
            canvas = await asyncio.to_thread(self._composite, ordered, loaded)
            if canvas is not None:
                return RasterImage(data=canvas, width=self.size[0], height=self.size[1])
            LOGGER.warning(
                "nothing could be drawn for %s; using placeholder", combination.key() or "<empty>"
            )
        except Exception:
            LOGGER.exception("compositing failed for %s; using placeholder", combination.key())
        return render_placeholder(combination, self.size)

    def ordered_traits(
        self, combination: Combination, layer_set: LayerSet
    ) -> List[Tuple[str, Trait]]:
        orders = {layer.name: layer.render_order for layer in layer_set}
        items = list(combination.items())
        # Stable sort keeps sampling order among equal render orders.
        return sorted(items, key=lambda item: orders.get(item[0], math.inf))

    def _composite(
        self,
        ordered: Sequence[Tuple[str, Trait]],
        loaded: Sequence[Image.Image | BaseException],
    ) -> bytes | None:
        canvas = Image.new("RGBA", self.size, (0, 0, 0, 0))
        drawn = 0
        for (layer_name, trait), result in zip(ordered, loaded):
            if isinstance(result, BaseException):
                LOGGER.warning(
                    "skipping %s/%s: could not decode image (%s)", layer_name, trait.name, result
                )
                continue
            image = result if result.mode == "RGBA" else result.convert("RGBA")
            if image.size != self.size:
                image = image.resize(self.size, Image.LANCZOS)
            canvas = Image.alpha_composite(canvas, image)
            drawn += 1
        if not drawn:
            return None
        return encode_png(canvas)


__all__ = [
    "Compositor",
    "DEFAULT_CANVAS_SIZE",
    "ImageLoader",
    "PillowImageLoader",
    "encode_png",
    "render_placeholder",
]
