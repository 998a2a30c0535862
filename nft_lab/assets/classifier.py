"""Turn uploaded image files and ZIP archives into a :class:`LayerSet`."""
from __future__ import annotations

import io
import logging
import re
import zipfile
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Sequence

from nft_lab.collection.model import Layer, LayerSet, Trait
from nft_lab.rarity.normalizer import normalize_layer_set

from .rules import (
    DEFAULT_LAYER_NAME,
    DEFAULT_RULES,
    RESERVED_ROOT_ALIASES,
    LayerRule,
    format_layer_name,
    match_rules,
    split_tokens,
)

IMAGE_EXTENSIONS: tuple[str, ...] = (".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg")
ARCHIVE_EXTENSIONS: tuple[str, ...] = (".zip",)
DEFAULT_TRAIT_WEIGHT = 100

_ZIP_MAGIC = b"PK\x03\x04"
_EXTENSION = re.compile(r"\.[^/.]+$")

LOGGER = logging.getLogger("nft_lab.assets")


@dataclass(frozen=True)
class UploadedFile:
    """One uploaded item.

    ``path`` is the upload-relative path (``root/Layer/trait.png``). Content is
    either held in ``data`` or read lazily from ``location`` on disk.
    """

    path: str
    data: bytes | None = None
    location: Path | None = None

    def read(self) -> bytes:
        if self.data is not None:
            return self.data
        if self.location is not None:
            return self.location.read_bytes()
        raise ValueError(f"uploaded file '{self.path}' has no content")


def _segments(path: str) -> List[str]:
    return [segment for segment in path.replace("\\", "/").split("/") if segment]


def _extension(path: str) -> str:
    name = _segments(path)[-1] if _segments(path) else path
    dot = name.rfind(".")
    return name[dot:].lower() if dot >= 0 else ""


def is_image_path(path: str) -> bool:
    return _extension(path) in IMAGE_EXTENSIONS


def _looks_like_archive(upload: UploadedFile) -> bool:
    if _extension(upload.path) in ARCHIVE_EXTENSIONS:
        return True
    return upload.data is not None and upload.data[:4] == _ZIP_MAGIC


class AssetClassifier:
    """Resolve layer and trait names from upload paths.

    A path shaped ``root/folder/file.ext`` uses ``folder`` as the layer (the
    root is a container and is ignored). Anything else falls back to the
    ordered keyword rules, then to the first ``-``/``_`` token of the file name.
    """

    def __init__(
        self,
        rules: Sequence[LayerRule] = DEFAULT_RULES,
        *,
        reserved_roots: Sequence[str] = RESERVED_ROOT_ALIASES,
        default_weight: int = DEFAULT_TRAIT_WEIGHT,
    ) -> None:
        self.rules = tuple(rules)
        self.reserved_roots = frozenset(reserved_roots)
        self.default_weight = int(default_weight)

    # ------------------------------------------------------------------
    # Naming
    # ------------------------------------------------------------------
    def layer_name_for(self, path: str) -> str:
        segments = _segments(path)
        if not segments:
            return DEFAULT_LAYER_NAME
        folders = segments[:-1]
        if len(folders) >= 2:
            folder = folders[1]
            if folder != "." and folder not in self.reserved_roots:
                formatted = format_layer_name(folder)
                if formatted:
                    return formatted

        matched = match_rules("/".join(segments).lower(), self.rules)
        if matched is not None:
            return matched

        tokens = split_tokens(_EXTENSION.sub("", segments[-1]))
        if tokens:
            return format_layer_name(tokens[0]) or DEFAULT_LAYER_NAME
        return DEFAULT_LAYER_NAME

    def trait_name_for(self, path: str, layer_name: str | None = None) -> str:
        segments = _segments(path)
        file_name = segments[-1] if segments else path
        stem = _EXTENSION.sub("", file_name)
        resolved_layer = layer_name if layer_name is not None else self.layer_name_for(path)
        parts = split_tokens(stem)
        if parts and parts[0].lower() == resolved_layer.lower():
            parts = parts[1:]
        name = " ".join(part[:1].upper() + part[1:] for part in parts)
        return name or format_layer_name(stem) or stem

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------
    def classify(self, files: Iterable[UploadedFile], *, normalize: bool = False) -> LayerSet:
        """Build a layer set from uploads; unrecognized files are skipped."""

        buckets: "OrderedDict[str, List[Trait]]" = OrderedDict()
        for upload in self._expand(files):
            if not is_image_path(upload.path):
                LOGGER.debug("skipping non-image upload %s", upload.path)
                continue
            layer_name = self.layer_name_for(upload.path)
            trait = Trait.create(
                self.trait_name_for(upload.path, layer_name),
                upload.data if upload.data is not None else upload.location,
                weight=self.default_weight,
                source_path=upload.path,
            )
            buckets.setdefault(layer_name, []).append(trait)

        layers = [
            Layer.create(name, traits, render_order=position)
            for position, (name, traits) in enumerate(buckets.items(), start=1)
            if traits
        ]
        layers.sort(key=lambda layer: (layer.name.casefold(), layer.name))
        layer_set = LayerSet(tuple(layers))
        LOGGER.info(
            "classified %d traits into %d layers",
            sum(len(layer.traits) for layer in layer_set),
            len(layer_set),
        )
        return normalize_layer_set(layer_set) if normalize else layer_set

    def classify_archive(self, source: bytes | Path, *, normalize: bool = False) -> LayerSet:
        if isinstance(source, (bytes, bytearray)):
            upload = UploadedFile(path="upload.zip", data=bytes(source))
        else:
            upload = UploadedFile(path=Path(source).name, location=Path(source))
        return self.classify([upload], normalize=normalize)

    def classify_directory(self, root: Path, *, normalize: bool = False) -> LayerSet:
        """Classify every file below ``root``; the root folder is the container segment."""

        root = Path(root)
        uploads = []
        for path in sorted(p for p in root.rglob("*") if p.is_file()):
            relative = Path(root.name) / path.relative_to(root)
            uploads.append(UploadedFile(path=relative.as_posix(), location=path))
        return self.classify(uploads, normalize=normalize)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _expand(self, files: Iterable[UploadedFile]) -> Iterator[UploadedFile]:
        for upload in files:
            if _looks_like_archive(upload):
                yield from self._archive_members(upload)
            else:
                yield upload

    def _archive_members(self, upload: UploadedFile) -> Iterator[UploadedFile]:
        try:
            payload = upload.read()
            with zipfile.ZipFile(io.BytesIO(payload)) as archive:
                members: Dict[str, bytes] = {}
                for info in archive.infolist():
                    if info.is_dir():
                        continue
                    name = info.filename
                    base = _segments(name)[-1] if _segments(name) else name
                    if name.startswith("__MACOSX/") or base.startswith("._"):
                        continue
                    if not is_image_path(name):
                        LOGGER.debug("skipping non-image archive entry %s", name)
                        continue
                    members[name] = archive.read(info)
        except (zipfile.BadZipFile, OSError, ValueError) as exc:
            LOGGER.debug("skipping unreadable archive %s: %s", upload.path, exc)
            return
        for name, data in members.items():
            yield UploadedFile(path=name, data=data)


_DEFAULT = AssetClassifier()


def classify_files(files: Iterable[UploadedFile], *, normalize: bool = False) -> LayerSet:
    return _DEFAULT.classify(files, normalize=normalize)


def classify_archive(source: bytes | Path, *, normalize: bool = False) -> LayerSet:
    return _DEFAULT.classify_archive(source, normalize=normalize)


def classify_directory(root: Path, *, normalize: bool = False) -> LayerSet:
    return _DEFAULT.classify_directory(root, normalize=normalize)


__all__ = [
    "ARCHIVE_EXTENSIONS",
    "AssetClassifier",
    "IMAGE_EXTENSIONS",
    "UploadedFile",
    "classify_archive",
    "classify_directory",
    "classify_files",
    "is_image_path",
]
