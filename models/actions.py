"""
Selection actions.

Each action names one discrete user interaction. The `type` field
discriminates the union so an action can arrive as plain JSON.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import Field

from models.base import BaseSchema


class SelectVariant(BaseSchema):
    """Single-select toggle for regular/LTO items, membership toggle for packs."""
    type: Literal["select_variant"] = "select_variant"
    variant_id: str = Field(..., min_length=1)


class SelectPricing(BaseSchema):
    """Choose (or un-choose) a size for a variant."""
    type: Literal["select_pricing"] = "select_pricing"
    variant_id: str = Field(..., min_length=1)
    pricing_id: str = Field(..., min_length=1)


class ToggleSupplement(BaseSchema):
    type: Literal["toggle_supplement"] = "toggle_supplement"
    supplement_key: str = Field(..., min_length=1, description="Supplement id (or name@variant for legacy rows)")


class ToggleRemovedIngredient(BaseSchema):
    type: Literal["toggle_removed_ingredient"] = "toggle_removed_ingredient"
    ingredient: str = Field(..., min_length=1)


class CycleIngredientPreference(BaseSchema):
    type: Literal["cycle_ingredient_preference"] = "cycle_ingredient_preference"
    ingredient: str = Field(..., min_length=1)


class SelectPackOption(BaseSchema):
    """Choose the option for one pack slot. Choosing the current option clears it."""
    type: Literal["select_pack_option"] = "select_pack_option"
    variant_id: str = Field(..., min_length=1)
    slot_index: int = Field(..., ge=0)
    option: str = Field(..., min_length=1)


class CyclePackIngredientPreference(BaseSchema):
    type: Literal["cycle_pack_ingredient_preference"] = "cycle_pack_ingredient_preference"
    variant_id: str = Field(..., min_length=1)
    slot_index: int = Field(..., ge=0)
    ingredient: str = Field(..., min_length=1)


class TogglePackSupplement(BaseSchema):
    type: Literal["toggle_pack_supplement"] = "toggle_pack_supplement"
    variant_id: str = Field(..., min_length=1)
    slot_index: int = Field(..., ge=0)
    name: str = Field(..., min_length=1)


class SetQuantity(BaseSchema):
    type: Literal["set_quantity"] = "set_quantity"
    quantity: int = Field(..., ge=1)


class SetFreeDrinkQuantity(BaseSchema):
    type: Literal["set_free_drink_quantity"] = "set_free_drink_quantity"
    drink_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=0)
    size: Optional[str] = None


class SetPaidDrinkQuantity(BaseSchema):
    type: Literal["set_paid_drink_quantity"] = "set_paid_drink_quantity"
    drink_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=0)
    size: Optional[str] = None


class SetNote(BaseSchema):
    type: Literal["set_note"] = "set_note"
    note: str = Field("", max_length=500)


class SetVariantNote(BaseSchema):
    type: Literal["set_variant_note"] = "set_variant_note"
    variant_id: str = Field(..., min_length=1)
    note: str = Field("", max_length=500)


SelectionAction = Annotated[
    Union[
        SelectVariant,
        SelectPricing,
        ToggleSupplement,
        ToggleRemovedIngredient,
        CycleIngredientPreference,
        SelectPackOption,
        CyclePackIngredientPreference,
        TogglePackSupplement,
        SetQuantity,
        SetFreeDrinkQuantity,
        SetPaidDrinkQuantity,
        SetNote,
        SetVariantNote,
    ],
    Field(discriminator="type"),
]
