"""
Special-pack option resolver.

A pack component (variant) carries its structure in an encoded description:

    qty:2|options:Regular,Spicy|ingredients:Cheese,Tomato|supplements:Extra cheese:50,Sauce|hidden_supplements:Sauce

Each unit of `qty` is a slot that gets its own option, ingredient
preferences and supplements. Parsing never fails: a missing or malformed
segment yields an empty facet, and a missing or non-positive qty becomes 1.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping, Optional

import structlog

from models.catalog import CatalogModel, MenuVariant
from models.selection import SelectionState

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PackSlots:
    """Parsed structure of one pack component. Shared and read-only."""

    repeat_count: int = 1
    options: tuple[str, ...] = ()
    ingredients: tuple[str, ...] = ()
    supplements: Mapping[str, Decimal] = field(default_factory=lambda: MappingProxyType({}))
    hidden_supplements: frozenset[str] = frozenset()

    @property
    def slot_indexes(self) -> range:
        return range(self.repeat_count)

    @property
    def selectable_supplements(self) -> dict[str, Decimal]:
        """Supplements offered per slot (hidden ones excluded)."""
        return {
            name: price
            for name, price in self.supplements.items()
            if name not in self.hidden_supplements
        }

    def has_slot(self, slot_index: int) -> bool:
        return 0 <= slot_index < self.repeat_count

    def supplement_price(self, name: str) -> Decimal:
        return self.supplements.get(name, Decimal("0"))


EMPTY_SLOTS = PackSlots()


def _split_list(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _parse_quantity(value: str) -> int:
    try:
        qty = int(value.strip())
    except ValueError:
        return 1
    return qty if qty > 0 else 1


def _parse_price_map(value: str) -> dict[str, Decimal]:
    """`Name:50.0,Other` -> {"Name": 50.0, "Other": 0}."""
    prices: dict[str, Decimal] = {}
    for entry in value.split(","):
        entry = entry.strip()
        if not entry:
            continue
        name, _, raw_price = entry.partition(":")
        name = name.strip()
        if not name:
            continue
        try:
            price = Decimal(raw_price.strip()) if raw_price.strip() else Decimal("0")
        except InvalidOperation:
            price = Decimal("0")
        prices[name] = price if price >= 0 else Decimal("0")
    return prices


@lru_cache(maxsize=1024)
def parse_pack_description(description: Optional[str]) -> PackSlots:
    """
    Parse an encoded component description.

    Cached per description string, so each variant is parsed once.

    Args:
        description: Variant description (may be None or free text)

    Returns:
        PackSlots (never raises)
    """
    if not description:
        return EMPTY_SLOTS

    segments: dict[str, str] = {}
    for segment in description.split("|"):
        key, sep, value = segment.partition(":")
        if not sep:
            continue
        key = key.strip().lower()
        if key and key not in segments:
            segments[key] = value

    return PackSlots(
        repeat_count=_parse_quantity(segments["qty"]) if "qty" in segments else 1,
        options=_split_list(segments.get("options", "")),
        ingredients=_split_list(segments.get("ingredients", "")),
        supplements=MappingProxyType(_parse_price_map(segments.get("supplements", ""))),
        hidden_supplements=frozenset(_split_list(segments.get("hidden_supplements", ""))),
    )


def resolve_slots(variant: Optional[MenuVariant]) -> PackSlots:
    """Slots of a pack component; an unknown variant has a single empty slot."""
    if variant is None:
        return EMPTY_SLOTS
    return parse_pack_description(variant.description)


def auto_select_pack_options(state: SelectionState, catalog: CatalogModel) -> SelectionState:
    """
    Pre-select options for a fresh pack configuration.

    A component with a single option gets it in every slot. A component with
    several options and several slots is left untouched so the customer
    chooses per slot. Components already carrying choices are skipped.
    """
    new_state = state.copy()
    for variant in catalog.available_variants:
        slots = resolve_slots(variant)
        if not slots.options:
            continue
        if new_state.pack_slots.options_for(variant.id):
            continue
        if slots.repeat_count > 1 and len(slots.options) > 1:
            logger.debug(
                "pack_auto_select_skipped",
                variant_id=variant.id,
                repeat_count=slots.repeat_count,
                options=len(slots.options),
            )
            continue

        if variant.id not in new_state.selected_variants:
            new_state.selected_variants.append(variant.id)
        for slot in slots.slot_indexes:
            new_state.pack_slots.set_option(variant.id, slot, slots.options[0])

    return new_state


def format_pack_name(catalog: CatalogModel) -> str:
    """
    Display name for a pack: "Family Pack (2)x Burger, Fries and Soda".

    Names that already list their components are returned unchanged.
    """
    variants = catalog.available_variants
    if not variants:
        return catalog.name
    if " and " in catalog.name or ")x " in catalog.name:
        return catalog.name
    if any(v.name and v.name in catalog.name for v in variants):
        return catalog.name

    parts = []
    for variant in variants:
        if not variant.name:
            continue
        qty = resolve_slots(variant).repeat_count
        parts.append(f"({qty})x {variant.name}" if qty > 1 else variant.name)

    if not parts:
        return catalog.name
    if len(parts) == 1:
        return f"{catalog.name} {parts[0]}"
    return f"{catalog.name} {', '.join(parts[:-1])} and {parts[-1]}"
