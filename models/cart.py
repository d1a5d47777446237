"""
Cart line schemas.

CartLineItem instances are produced only by the cart compiler and are immutable
once emitted. The `customizations` payload is a stable contract: the edit
reconciler parses it back into a SelectionState.
"""

from decimal import Decimal
from typing import Optional
from uuid import uuid4

from pydantic import Field, model_validator

from models.base import BaseSchema, FrozenSchema, to_money
from models.catalog import ItemKind


class DrinkEntry(FrozenSchema):
    """One drink on a line. Free drinks carry price 0."""

    id: str = Field(..., min_length=1)
    name: Optional[str] = None
    size: Optional[str] = None
    is_free: bool = False
    price: Decimal = Field(Decimal("0"), ge=0, description="Unit price (0 for free drinks)")
    quantity: int = Field(1, ge=1)


class LineCustomizations(BaseSchema):
    """
    Machine-readable description of every choice behind a cart line.

    Slot indexes are strings so the payload survives a JSON round trip.
    pack_ingredient_preferences is keyed by variant NAME, the other pack maps
    by variant id.
    """

    item_kind: ItemKind = ItemKind.REGULAR
    selected_variants: list[str] = Field(default_factory=list)
    pricing_per_variant: dict[str, str] = Field(default_factory=dict)
    supplements: list[str] = Field(default_factory=list, description="Supplement keys")
    removed_ingredients: list[str] = Field(default_factory=list)
    ingredient_preferences: dict[str, str] = Field(default_factory=dict)
    pack_item_selections: dict[str, dict[str, str]] = Field(default_factory=dict)
    pack_ingredient_preferences: dict[str, dict[str, dict[str, str]]] = Field(default_factory=dict)
    pack_supplement_selections: dict[str, dict[str, list[str]]] = Field(default_factory=dict)
    drinks: list[DrinkEntry] = Field(default_factory=list)
    quantity: int = Field(1, ge=1)
    note: str = ""
    variant_notes: dict[str, str] = Field(default_factory=dict)
    session_id: Optional[str] = None


class CartLineItem(FrozenSchema):
    """
    A finalized cart line.

    total_price == unit_price * quantity + extras_total - discount_total,
    checked here so no other code has to re-derive it.
    """

    line_id: str = Field(default_factory=lambda: uuid4().hex)
    item_id: str = Field(..., min_length=1)
    variant_id: Optional[str] = None
    name: str = ""
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., ge=0, description="Base price plus per-unit supplements")
    extras_total: Decimal = Field(Decimal("0.00"), ge=0, description="One-off add-ons (paid drinks)")
    discount_total: Decimal = Field(Decimal("0.00"), ge=0)
    total_price: Decimal = Field(..., ge=0)
    customizations: LineCustomizations
    special_instructions: Optional[str] = None

    @model_validator(mode="after")
    def check_price_invariant(self) -> "CartLineItem":
        expected = to_money(self.unit_price * self.quantity + self.extras_total - self.discount_total)
        if to_money(self.total_price) != expected:
            raise ValueError(
                f"total_price {self.total_price} does not match "
                f"unit_price x quantity + extras - discounts = {expected}"
            )
        return self

    @property
    def free_drinks(self) -> list[DrinkEntry]:
        return [d for d in self.customizations.drinks if d.is_free]

    @property
    def paid_drinks(self) -> list[DrinkEntry]:
        return [d for d in self.customizations.drinks if not d.is_free]
