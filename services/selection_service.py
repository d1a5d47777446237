"""
Selection reducers.

Every user interaction is an action applied by a pure reducer:

    (SelectionState, action, SessionContext) -> SelectionState

Reducers never mutate their input; they copy, change and return. Invariants
are re-established inside each reducer, so a returned state is always
consistent:
    - regular / LTO kinds hold at most one selected variant
    - pricing, quantities, notes and pack slots exist only for selected variants
    - free and paid drink maps never share a key
"""

from typing import Callable, Optional

import structlog

from config import settings
from exceptions import InvalidActionError
from models.actions import (
    CycleIngredientPreference,
    CyclePackIngredientPreference,
    SelectPackOption,
    SelectPricing,
    SelectVariant,
    SetFreeDrinkQuantity,
    SetNote,
    SetPaidDrinkQuantity,
    SetQuantity,
    SetVariantNote,
    ToggleRemovedIngredient,
    ToggleSupplement,
    TogglePackSupplement,
)
from models.catalog import Drink, ItemKind, MenuVariant
from models.selection import IngredientPreference, SelectionState
from models.session import SessionContext
from services.free_drink_service import (
    auto_assign_free_drinks,
    clamp_free_drinks,
    effective_quantity,
    is_eligible,
    remaining_entitlement,
    required_free_drinks,
    rescale_free_drinks,
)
from services.item_kind_service import is_size_required
from services.pack_option_service import PackSlots, auto_select_pack_options, resolve_slots

logger = structlog.get_logger(__name__)


# ===================
# HELPERS
# ===================

def _require_variant(ctx: SessionContext, variant_id: str, action: str) -> MenuVariant:
    variant = ctx.catalog.variant(variant_id)
    if variant is None:
        raise InvalidActionError(action, "Variant is not available", {"variant_id": variant_id})
    return variant


def _require_pack(ctx: SessionContext, action: str) -> None:
    if ctx.kind != ItemKind.SPECIAL_PACK:
        raise InvalidActionError(action, "Only special packs have per-slot choices", {"item_kind": ctx.kind.value})


def _require_slot(ctx: SessionContext, variant_id: str, slot_index: int, action: str) -> PackSlots:
    _require_pack(ctx, action)
    slots = resolve_slots(_require_variant(ctx, variant_id, action))
    if not slots.has_slot(slot_index):
        raise InvalidActionError(
            action,
            "Slot index out of range",
            {"variant_id": variant_id, "slot_index": slot_index, "repeat_count": slots.repeat_count},
        )
    return slots


def _require_drink(ctx: SessionContext, drink_id: str, size: Optional[str], action: str) -> Drink:
    drink = ctx.drink(drink_id)
    if drink is None:
        raise InvalidActionError(action, "Drink is not on the menu", {"drink_id": drink_id})
    if size and drink.sizes and size not in drink.sizes:
        raise InvalidActionError(action, "Drink size is not offered", {"drink_id": drink_id, "size": size})
    return drink


def _forget_variant(state: SelectionState, variant_id: str) -> None:
    """Drop a variant and everything scoped to it (in place, on a copy)."""
    if variant_id in state.selected_variants:
        state.selected_variants.remove(variant_id)
    state.pricing_per_variant.pop(variant_id, None)
    state.variant_quantities.pop(variant_id, None)
    state.variant_notes.pop(variant_id, None)
    state.pack_slots.drop_variant(variant_id)
    for key in [k for k, s in state.supplements.items() if s.variant_id == variant_id]:
        del state.supplements[key]


def _add_regular_variant(state: SelectionState, variant_id: str) -> None:
    for other in list(state.selected_variants):
        if other != variant_id:
            _forget_variant(state, other)
    if variant_id not in state.selected_variants:
        state.selected_variants.append(variant_id)
    state.variant_quantities.setdefault(variant_id, state.quantity)


def _engage_pack_component(state: SelectionState, variant_id: str, ctx: SessionContext) -> None:
    """Touching a pack component selects it and gives it its default pricing."""
    if variant_id not in state.selected_variants:
        state.selected_variants.append(variant_id)
    state.variant_quantities.setdefault(variant_id, 1)
    if variant_id not in state.pricing_per_variant:
        row = ctx.catalog.default_pricing(variant_id)
        if row is not None:
            state.pricing_per_variant[variant_id] = row.id


def _settle_free_drinks(state: SelectionState, ctx: SessionContext) -> None:
    """Drop picks the current entitlement no longer covers. No variant means no entitlement."""
    if not state.drink_quantities:
        return
    if not state.selected_variants:
        for drink_id in state.drink_quantities:
            if drink_id not in state.paid_drink_quantities:
                state.drink_sizes.pop(drink_id, None)
        state.drink_quantities = {}
        return
    kept = {
        drink_id: qty for drink_id, qty in state.drink_quantities.items()
        if is_eligible(state, ctx, drink_id)
    }
    settled = clamp_free_drinks(kept, required_free_drinks(state, ctx.catalog, ctx.kind))
    if settled != state.drink_quantities:
        for drink_id in set(state.drink_quantities) - set(settled):
            state.drink_sizes.pop(drink_id, None)
        state.drink_quantities = settled


def _check_ingredient(ctx: SessionContext, ingredient: str, action: str) -> None:
    if ctx.catalog.ingredients and ingredient not in ctx.catalog.ingredients:
        raise InvalidActionError(action, "Ingredient is not part of this item", {"ingredient": ingredient})


# ===================
# VARIANTS AND SIZES
# ===================

def select_variant(state: SelectionState, action: SelectVariant, ctx: SessionContext) -> SelectionState:
    """
    Regular / LTO: hard single-select toggle. Packs: membership toggle.
    """
    _require_variant(ctx, action.variant_id, action.type)
    new_state = state.copy()

    if action.variant_id in new_state.selected_variants:
        _forget_variant(new_state, action.variant_id)
    elif ctx.kind == ItemKind.SPECIAL_PACK:
        _engage_pack_component(new_state, action.variant_id, ctx)
    else:
        _add_regular_variant(new_state, action.variant_id)

    _settle_free_drinks(new_state, ctx)
    return new_state


def select_pricing(state: SelectionState, action: SelectPricing, ctx: SessionContext) -> SelectionState:
    """
    Choose a size. Re-choosing the current size removes it; choosing a size
    for an unselected variant selects that variant.
    """
    _require_variant(ctx, action.variant_id, action.type)
    row = ctx.catalog.pricing_row(action.pricing_id)
    if row is None or not row.applies_to(action.variant_id):
        raise InvalidActionError(
            action.type,
            "Pricing option is not offered for this variant",
            {"variant_id": action.variant_id, "pricing_id": action.pricing_id},
        )

    new_state = state.copy()
    if new_state.pricing_per_variant.get(action.variant_id) == action.pricing_id:
        del new_state.pricing_per_variant[action.variant_id]
    else:
        if ctx.kind == ItemKind.SPECIAL_PACK:
            _engage_pack_component(new_state, action.variant_id, ctx)
        else:
            _add_regular_variant(new_state, action.variant_id)
        new_state.pricing_per_variant[action.variant_id] = action.pricing_id

    _settle_free_drinks(new_state, ctx)
    return new_state


# ===================
# SUPPLEMENTS AND INGREDIENTS
# ===================

def toggle_supplement(state: SelectionState, action: ToggleSupplement, ctx: SessionContext) -> SelectionState:
    supplement = ctx.catalog.supplement(action.supplement_key)
    if supplement is None:
        raise InvalidActionError(action.type, "Supplement is not offered", {"supplement_key": action.supplement_key})

    new_state = state.copy()
    if supplement.key in new_state.supplements:
        del new_state.supplements[supplement.key]
        return new_state

    scoped = supplement.variant_id or supplement.available_for_variants
    if scoped and not any(supplement.applies_to(v) for v in new_state.selected_variants):
        raise InvalidActionError(
            action.type,
            "Supplement is not offered for the selected variant",
            {"supplement_key": supplement.key},
        )
    new_state.supplements[supplement.key] = supplement
    return new_state


def toggle_removed_ingredient(
    state: SelectionState,
    action: ToggleRemovedIngredient,
    ctx: SessionContext,
) -> SelectionState:
    _check_ingredient(ctx, action.ingredient, action.type)
    new_state = state.copy()
    if action.ingredient in new_state.removed_ingredients:
        new_state.removed_ingredients.remove(action.ingredient)
    else:
        new_state.removed_ingredients.append(action.ingredient)
    return new_state


def cycle_ingredient_preference(
    state: SelectionState,
    action: CycleIngredientPreference,
    ctx: SessionContext,
) -> SelectionState:
    """neutral -> wanted -> less -> none -> neutral."""
    _check_ingredient(ctx, action.ingredient, action.type)
    new_state = state.copy()
    current = new_state.ingredient_preferences.get(action.ingredient, IngredientPreference.NEUTRAL)
    following = current.next()
    if following == IngredientPreference.NEUTRAL:
        new_state.ingredient_preferences.pop(action.ingredient, None)
    else:
        new_state.ingredient_preferences[action.ingredient] = following
    return new_state


# ===================
# PACK SLOTS
# ===================

def select_pack_option(state: SelectionState, action: SelectPackOption, ctx: SessionContext) -> SelectionState:
    """Set one slot's option. Other slots are never touched."""
    slots = _require_slot(ctx, action.variant_id, action.slot_index, action.type)
    if action.option not in slots.options:
        raise InvalidActionError(
            action.type,
            "Option is not offered for this pack item",
            {"variant_id": action.variant_id, "option": action.option},
        )

    new_state = state.copy()
    if new_state.pack_slots.option(action.variant_id, action.slot_index) == action.option:
        new_state.pack_slots.set_option(action.variant_id, action.slot_index, None)
    else:
        new_state.pack_slots.set_option(action.variant_id, action.slot_index, action.option)
    _engage_pack_component(new_state, action.variant_id, ctx)
    return new_state


def cycle_pack_ingredient_preference(
    state: SelectionState,
    action: CyclePackIngredientPreference,
    ctx: SessionContext,
) -> SelectionState:
    slots = _require_slot(ctx, action.variant_id, action.slot_index, action.type)
    if action.ingredient not in slots.ingredients:
        raise InvalidActionError(
            action.type,
            "Ingredient is not part of this pack item",
            {"variant_id": action.variant_id, "ingredient": action.ingredient},
        )

    new_state = state.copy()
    current = new_state.pack_slots.preference(action.variant_id, action.slot_index, action.ingredient)
    new_state.pack_slots.set_preference(action.variant_id, action.slot_index, action.ingredient, current.next())
    _engage_pack_component(new_state, action.variant_id, ctx)
    return new_state


def toggle_pack_supplement(
    state: SelectionState,
    action: TogglePackSupplement,
    ctx: SessionContext,
) -> SelectionState:
    slots = _require_slot(ctx, action.variant_id, action.slot_index, action.type)
    if action.name not in slots.selectable_supplements:
        raise InvalidActionError(
            action.type,
            "Supplement is not offered for this pack item",
            {"variant_id": action.variant_id, "name": action.name},
        )

    new_state = state.copy()
    new_state.pack_slots.toggle_supplement(action.variant_id, action.slot_index, action.name)
    _engage_pack_component(new_state, action.variant_id, ctx)
    return new_state


# ===================
# QUANTITY, DRINKS, NOTES
# ===================

def set_quantity(state: SelectionState, action: SetQuantity, ctx: SessionContext) -> SelectionState:
    """
    Set the item multiplier (regular / LTO) and rescale free drinks to match.

    Packs are sold one unit per saved order.
    """
    if ctx.kind == ItemKind.SPECIAL_PACK:
        raise InvalidActionError(action.type, "Pack quantity is fixed; save another order instead")
    if action.quantity > settings.max_item_quantity:
        raise InvalidActionError(
            action.type,
            f"Quantity cannot exceed {settings.max_item_quantity}",
            {"quantity": action.quantity},
        )

    old_quantity = effective_quantity(state)
    new_state = state.copy()
    new_state.quantity = action.quantity
    for variant_id in new_state.selected_variants:
        new_state.variant_quantities[variant_id] = action.quantity
    return rescale_free_drinks(new_state, old_quantity, effective_quantity(new_state), ctx)


def set_free_drink_quantity(
    state: SelectionState,
    action: SetFreeDrinkQuantity,
    ctx: SessionContext,
) -> SelectionState:
    """Pick a complimentary drink. Quantities are clamped to what is left of the entitlement."""
    _require_drink(ctx, action.drink_id, action.size, action.type)
    new_state = state.copy()

    if action.quantity == 0:
        new_state.drink_quantities.pop(action.drink_id, None)
        if action.drink_id not in new_state.paid_drink_quantities:
            new_state.drink_sizes.pop(action.drink_id, None)
        return new_state

    if new_state.is_empty:
        raise InvalidActionError(action.type, "Select a variant before picking free drinks", {"drink_id": action.drink_id})

    if not is_eligible(new_state, ctx, action.drink_id):
        raise InvalidActionError(action.type, "Drink is not offered as a free drink", {"drink_id": action.drink_id})

    quantity = min(action.quantity, remaining_entitlement(new_state, ctx, excluding=action.drink_id))
    new_state.paid_drink_quantities.pop(action.drink_id, None)
    if quantity <= 0:
        new_state.drink_quantities.pop(action.drink_id, None)
        new_state.drink_sizes.pop(action.drink_id, None)
        return new_state

    new_state.drink_quantities[action.drink_id] = quantity
    if action.size:
        new_state.drink_sizes[action.drink_id] = action.size
    return new_state


def set_paid_drink_quantity(
    state: SelectionState,
    action: SetPaidDrinkQuantity,
    ctx: SessionContext,
) -> SelectionState:
    _require_drink(ctx, action.drink_id, action.size, action.type)
    new_state = state.copy()

    if action.quantity == 0:
        new_state.paid_drink_quantities.pop(action.drink_id, None)
        if action.drink_id not in new_state.drink_quantities:
            new_state.drink_sizes.pop(action.drink_id, None)
        return new_state

    new_state.drink_quantities.pop(action.drink_id, None)
    new_state.paid_drink_quantities[action.drink_id] = action.quantity
    if action.size:
        new_state.drink_sizes[action.drink_id] = action.size
    return new_state


def set_note(state: SelectionState, action: SetNote, ctx: SessionContext) -> SelectionState:
    new_state = state.copy()
    new_state.special_note = action.note
    return new_state


def set_variant_note(state: SelectionState, action: SetVariantNote, ctx: SessionContext) -> SelectionState:
    _require_variant(ctx, action.variant_id, action.type)
    new_state = state.copy()
    if action.note:
        new_state.variant_notes[action.variant_id] = action.note
    else:
        new_state.variant_notes.pop(action.variant_id, None)
    return new_state


# ===================
# DISPATCH
# ===================

Reducer = Callable[[SelectionState, object, SessionContext], SelectionState]

REDUCERS: dict[type, Reducer] = {
    SelectVariant: select_variant,
    SelectPricing: select_pricing,
    ToggleSupplement: toggle_supplement,
    ToggleRemovedIngredient: toggle_removed_ingredient,
    CycleIngredientPreference: cycle_ingredient_preference,
    SelectPackOption: select_pack_option,
    CyclePackIngredientPreference: cycle_pack_ingredient_preference,
    TogglePackSupplement: toggle_pack_supplement,
    SetQuantity: set_quantity,
    SetFreeDrinkQuantity: set_free_drink_quantity,
    SetPaidDrinkQuantity: set_paid_drink_quantity,
    SetNote: set_note,
    SetVariantNote: set_variant_note,
}


def apply_action(state: SelectionState, action, ctx: SessionContext) -> SelectionState:
    """
    Apply one action and return the new state.

    Raises:
        InvalidActionError: If the action references something the catalog does not offer
    """
    reducer = REDUCERS.get(type(action))
    if reducer is None:
        raise InvalidActionError(getattr(action, "type", type(action).__name__), "Unsupported action")
    new_state = reducer(state, action, ctx)
    logger.debug("selection_action_applied", session_id=ctx.session_id, action=action.type)
    return new_state


def clear_all() -> SelectionState:
    """A fresh, empty configuration (quantity 1, every map cleared)."""
    return SelectionState()


def bootstrap_selection(ctx: SessionContext, preselected_variant_name: Optional[str] = None) -> SelectionState:
    """
    Default selection for a freshly opened (non-edit) item.

    Selects the preselected variant (by name) or the first available one,
    gives it its default size unless the size is optional, pre-selects
    single-choice pack options and assigns the only eligible free drink.
    """
    state = SelectionState()
    variant = None
    if preselected_variant_name:
        variant = ctx.catalog.variant_by_name(preselected_variant_name)
        if variant is None:
            logger.info(
                "preselected_variant_missing",
                session_id=ctx.session_id,
                variant_name=preselected_variant_name,
            )
    if variant is None and ctx.catalog.available_variants:
        variant = ctx.catalog.available_variants[0]

    if variant is not None:
        state.selected_variants.append(variant.id)
        state.variant_quantities[variant.id] = 1
        if is_size_required(ctx.kind):
            row = ctx.catalog.default_pricing(variant.id)
            if row is not None:
                state.pricing_per_variant[variant.id] = row.id

    if ctx.kind == ItemKind.SPECIAL_PACK:
        state = auto_select_pack_options(state, ctx.catalog)
        for variant_id in state.selected_variants:
            _engage_pack_component(state, variant_id, ctx)

    return auto_assign_free_drinks(state, ctx)
