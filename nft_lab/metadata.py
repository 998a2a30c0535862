"""Per-token metadata documents in the common marketplace shape."""
from __future__ import annotations

from typing import Any, Dict

from nft_lab.collection.model import GeneratedToken


def token_metadata(
    token: GeneratedToken,
    *,
    name: str | None = None,
    description: str = "",
    image_uri: str | None = None,
) -> Dict[str, Any]:
    """Return ``{name, description, image, edition, attributes}`` for ``token``.

    ``name`` defaults to the token name and ``image_uri`` to the
    ``<index>.png`` file name the artifact store writes next to the metadata.
    """

    payload: Dict[str, Any] = {
        "name": name if name is not None else token.name,
        "description": description,
        "image": image_uri if image_uri is not None else f"{token.index}.png",
        "edition": token.index,
        "attributes": [
            {"trait_type": layer, "value": trait} for layer, trait in token.attributes
        ],
        "rarity_score": token.rarity_score,
    }
    if token.rarity_rank is not None:
        payload["rarity_rank"] = token.rarity_rank
    if token.rarity_tier is not None:
        payload["rarity_tier"] = token.rarity_tier.value
    return payload


__all__ = ["token_metadata"]
