"""
Item-kind detection.

The only place that decides whether an item is regular, LTO-regular or a
special pack. Every other component takes the kind as an explicit argument.
"""

from typing import Optional

from config import settings
from models.catalog import CatalogModel, ItemKind


def looks_like_pack_description(description: Optional[str]) -> bool:
    """True when a variant description is in the encoded pack format."""
    if not description:
        return False
    text = description.strip().lower()
    return text.startswith("qty:") or "options:" in text


def is_special_pack(catalog: CatalogModel) -> bool:
    category = (catalog.category or "").lower()
    if any(keyword.lower() in category for keyword in settings.special_pack_keywords):
        return True
    return any(looks_like_pack_description(v.description) for v in catalog.variants)


def resolve_item_kind(catalog: CatalogModel) -> ItemKind:
    """
    Derive the item kind. Special-pack detection wins over the LTO flag.

    Args:
        catalog: Loaded catalog snapshot

    Returns:
        ItemKind
    """
    if is_special_pack(catalog):
        return ItemKind.SPECIAL_PACK
    if catalog.is_limited_offer:
        return ItemKind.LTO_REGULAR
    return ItemKind.REGULAR


def is_size_required(kind: ItemKind) -> bool:
    """LTO-regular items treat the size as an optional extra."""
    return kind != ItemKind.LTO_REGULAR
