"""Compositing and on-disk artifacts for generated tokens."""

from .compositor import (
    Compositor,
    DEFAULT_CANVAS_SIZE,
    ImageLoader,
    PillowImageLoader,
    encode_png,
    render_placeholder,
)
from .store import SavedToken, TokenArtifactStore

__all__ = [
    "Compositor",
    "DEFAULT_CANVAS_SIZE",
    "ImageLoader",
    "PillowImageLoader",
    "SavedToken",
    "TokenArtifactStore",
    "encode_png",
    "render_placeholder",
]
