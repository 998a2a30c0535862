from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping

from nft_lab.collection.model import GeneratedToken
from nft_lab.metadata import token_metadata
from nft_lab.pricing.curves import PriceSchedule


@dataclass(frozen=True)
class SavedToken:
    """Paths written for one generated token."""

    index: int
    image_path: Path
    metadata_path: Path
    metadata: Mapping[str, Any]


class TokenArtifactStore:
    """Persist composites, metadata documents and the price schedule.

    Layout under ``output_dir``::

        images/<index>.png
        metadata/<index>.json
        schedule.json
    """

    def __init__(self, output_dir: Path) -> None:
        self._output_dir = Path(output_dir)
        self._images_dir = self._output_dir / "images"
        self._metadata_dir = self._output_dir / "metadata"
        self._images_dir.mkdir(parents=True, exist_ok=True)
        self._metadata_dir.mkdir(parents=True, exist_ok=True)

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def persist_token(
        self,
        token: GeneratedToken,
        *,
        description: str = "",
        image_base_uri: str | None = None,
    ) -> SavedToken:
        image_path = self._images_dir / f"{token.index}.png"
        image_path.write_bytes(token.composite_image.data)

        image_uri = f"{token.index}.png"
        if image_base_uri:
            image_uri = f"{image_base_uri.rstrip('/')}/{image_uri}"
        metadata = token_metadata(token, description=description, image_uri=image_uri)
        metadata_path = self._metadata_dir / f"{token.index}.json"
        metadata_path.write_text(
            json.dumps(metadata, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        return SavedToken(
            index=token.index,
            image_path=image_path,
            metadata_path=metadata_path,
            metadata=metadata,
        )

    def persist_tokens(
        self,
        tokens: Iterable[GeneratedToken],
        *,
        description: str = "",
        image_base_uri: str | None = None,
    ) -> list[SavedToken]:
        return [
            self.persist_token(token, description=description, image_base_uri=image_base_uri)
            for token in tokens
        ]

    def persist_schedule(self, schedule: PriceSchedule) -> Path:
        path = self._output_dir / "schedule.json"
        path.write_bytes(schedule.to_json())
        return path


__all__ = ["SavedToken", "TokenArtifactStore"]
