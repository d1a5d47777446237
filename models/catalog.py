"""
Catalog schemas: an immutable snapshot of one menu item as fetched from the backend.

A CatalogModel is created when a configurator session opens and is replaced
wholesale on refresh. Nothing in the configurator mutates it.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field

from models.base import FrozenSchema


class ItemKind(str, Enum):
    """
    The three structurally different item kinds.

    Exactly one applies to a catalog item; see services.item_kind_service.
    """
    REGULAR = "regular"
    LTO_REGULAR = "lto_regular"
    SPECIAL_PACK = "special_pack"


class MenuVariant(FrozenSchema):
    """
    A variant of a menu item.

    For special packs the description is an encoded component description,
    e.g. "qty:2|options:Regular,Spicy|ingredients:Cheese,Tomato".
    """

    id: str = Field(..., min_length=1, description="Variant UUID")
    name: str = Field(..., description="Display name")
    description: Optional[str] = Field(None, description="Free text, or encoded pack format")
    is_available: bool = Field(True, description="Hidden from selection when false")


class PricingTier(FrozenSchema):
    """
    A size/price row. Variant-scoped when variant_id is set, item-global otherwise.
    """

    id: str = Field(..., min_length=1, description="Pricing UUID")
    variant_id: Optional[str] = Field(None, description="Owning variant (None = item-global)")
    size: str = Field("", description="Size label (e.g. 'L', 'pack')")
    portion: str = Field("", description="Portion label")
    price: Decimal = Field(Decimal("0"), ge=0, description="Price for this tier")
    is_default: bool = Field(False, description="Preferred tier for bootstraps")
    free_drinks_included: bool = Field(False, description="Tier grants complimentary drinks")
    free_drinks_quantity: int = Field(0, ge=0, description="Complimentary drinks per unit")
    free_drinks_list: list[str] = Field(default_factory=list, description="Eligible drink ids")
    offer_end_at: Optional[datetime] = Field(None, description="End of the offer on this tier")

    def applies_to(self, variant_id: str) -> bool:
        """Check if this tier can be chosen for the given variant."""
        return self.variant_id is None or self.variant_id == variant_id

    @property
    def grants_free_drinks(self) -> bool:
        return (
            self.free_drinks_included
            and self.free_drinks_quantity > 0
            and bool(self.free_drinks_list)
        )


class Supplement(FrozenSchema):
    """
    A paid add-on.

    Scoped by variant_id, or by available_for_variants; global when both are empty.
    """

    id: Optional[str] = Field(None, description="Supplement UUID (legacy rows may lack one)")
    name: str = Field(..., min_length=1, description="Display name")
    price: Decimal = Field(Decimal("0"), ge=0, description="Price per unit")
    variant_id: Optional[str] = Field(None, description="Owning variant")
    available_for_variants: list[str] = Field(default_factory=list)

    @property
    def key(self) -> str:
        """Stable identity: the id, or name@variant for legacy rows without one."""
        if self.id:
            return self.id
        return f"{self.name}@{self.variant_id or '*'}"

    def applies_to(self, variant_id: Optional[str]) -> bool:
        """Check if this supplement is offered for the given variant."""
        if self.variant_id:
            return self.variant_id == variant_id
        if self.available_for_variants:
            return variant_id in self.available_for_variants
        return True


class Drink(FrozenSchema):
    """A drink from the restaurant menu, offered free or paid."""

    id: str = Field(..., min_length=1)
    name: str = Field(...)
    price: Decimal = Field(Decimal("0"), ge=0)
    sizes: list[str] = Field(default_factory=list)


class CatalogModel(FrozenSchema):
    """
    Immutable snapshot of one menu item's variants, pricing tiers,
    supplements, ingredients and free-drink entitlements.
    """

    item_id: str = Field(..., min_length=1, description="Menu item UUID")
    restaurant_id: Optional[str] = Field(None, description="Restaurant UUID")
    name: str = Field(..., description="Menu item name")
    category: str = Field("", description="Menu category")
    price: Decimal = Field(Decimal("0"), ge=0, description="Item price (LTO offer price)")
    original_price: Optional[Decimal] = Field(None, ge=0, description="List price before an LTO special price")
    is_limited_offer: bool = Field(False)
    offer_start_at: Optional[datetime] = None
    offer_end_at: Optional[datetime] = None
    ingredients: list[str] = Field(default_factory=list, description="Customizable ingredients (regular items)")
    variants: list[MenuVariant] = Field(default_factory=list)
    pricing: list[PricingTier] = Field(default_factory=list)
    supplements: list[Supplement] = Field(default_factory=list)

    # ===================
    # LOOKUPS
    # ===================

    @property
    def available_variants(self) -> list[MenuVariant]:
        return [v for v in self.variants if v.is_available]

    def variant(self, variant_id: str) -> Optional[MenuVariant]:
        """Get an available variant by id."""
        for v in self.variants:
            if v.id == variant_id and v.is_available:
                return v
        return None

    def variant_by_name(self, name: str) -> Optional[MenuVariant]:
        for v in self.variants:
            if v.name == name and v.is_available:
                return v
        return None

    def pricing_row(self, pricing_id: str) -> Optional[PricingTier]:
        for p in self.pricing:
            if p.id == pricing_id:
                return p
        return None

    def pricing_for_variant(self, variant_id: str) -> list[PricingTier]:
        """Variant-scoped rows plus item-global rows, in catalog order."""
        return [p for p in self.pricing if p.applies_to(variant_id)]

    def default_pricing(self, variant_id: Optional[str] = None) -> Optional[PricingTier]:
        """
        The is_default row (else the first row) for a variant, or for the whole
        item when variant_id is None.
        """
        rows = self.pricing_for_variant(variant_id) if variant_id else list(self.pricing)
        if not rows:
            return None
        for row in rows:
            if row.is_default:
                return row
        return rows[0]

    def supplement(self, key: str) -> Optional[Supplement]:
        """Get a supplement by its key (id, or name@variant)."""
        for s in self.supplements:
            if s.key == key:
                return s
        return None

    @property
    def list_price(self) -> Decimal:
        """Price before the LTO special price (the offer price when there is none)."""
        if self.original_price is not None and self.original_price > self.price:
            return self.original_price
        return self.price
