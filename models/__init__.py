"""
Pydantic models and in-memory state for the order configurator.
"""

from models.base import (
    BaseSchema,
    FrozenSchema,
    to_money,
)
from models.catalog import (
    ItemKind,
    MenuVariant,
    PricingTier,
    Supplement,
    Drink,
    CatalogModel,
)
from models.selection import (
    IngredientPreference,
    SlotFacet,
    PackSlotTable,
    SelectionState,
)
from models.actions import (
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
    SelectionAction,
)
from models.cart import (
    DrinkEntry,
    LineCustomizations,
    CartLineItem,
)
from models.session import (
    SessionStatus,
    SessionContext,
    SavedOrder,
    SavedOrderBuffer,
)
from models.configurator import (
    ValidationReason,
    ValidationResult,
    OpenSessionRequest,
    ActionRequest,
    SessionResponse,
    ConfirmResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "FrozenSchema",
    "to_money",
    # Catalog
    "ItemKind",
    "MenuVariant",
    "PricingTier",
    "Supplement",
    "Drink",
    "CatalogModel",
    # Selection
    "IngredientPreference",
    "SlotFacet",
    "PackSlotTable",
    "SelectionState",
    # Actions
    "SelectVariant",
    "SelectPricing",
    "ToggleSupplement",
    "ToggleRemovedIngredient",
    "CycleIngredientPreference",
    "SelectPackOption",
    "CyclePackIngredientPreference",
    "TogglePackSupplement",
    "SetQuantity",
    "SetFreeDrinkQuantity",
    "SetPaidDrinkQuantity",
    "SetNote",
    "SetVariantNote",
    "SelectionAction",
    # Cart
    "DrinkEntry",
    "LineCustomizations",
    "CartLineItem",
    # Session
    "SessionStatus",
    "SessionContext",
    "SavedOrder",
    "SavedOrderBuffer",
    # Configurator
    "ValidationReason",
    "ValidationResult",
    "OpenSessionRequest",
    "ActionRequest",
    "SessionResponse",
    "ConfirmResponse",
]
