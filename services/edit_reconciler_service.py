"""
Edit reconciler.

Rebuilds a SelectionState from an existing cart line so an edit starts from
the original configuration. Reads the same customizations shape the
compiler writes.

References the catalog no longer knows (deleted variants, sizes,
supplements, options, drinks) are dropped with a warning log and never
raised. When nothing selectable survives, the first available variant is
selected so the edit form always has a valid selection.
"""

from typing import Optional

import structlog

from models.cart import CartLineItem
from models.catalog import ItemKind
from models.selection import IngredientPreference, SelectionState
from models.session import SessionContext
from services.free_drink_service import clamp_free_drinks, is_eligible, required_free_drinks
from services.item_kind_service import is_size_required
from services.pack_option_service import resolve_slots

logger = structlog.get_logger(__name__)


def _drop(ctx: SessionContext, line: CartLineItem, reference: str, **context) -> None:
    logger.warning(
        "stale_reference_dropped",
        session_id=ctx.session_id,
        item_id=line.item_id,
        line_id=line.line_id,
        reference=reference,
        **context,
    )


def _parse_preference(value: str) -> Optional[IngredientPreference]:
    try:
        pref = IngredientPreference(value)
    except ValueError:
        return None
    return None if pref == IngredientPreference.NEUTRAL else pref


def _parse_slot(value: str) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _restore_variants(state: SelectionState, line: CartLineItem, ctx: SessionContext) -> None:
    custom = line.customizations
    requested = list(custom.selected_variants)
    if not requested and line.variant_id:
        requested = [line.variant_id]

    for variant_id in requested:
        if ctx.catalog.variant(variant_id) is None:
            _drop(ctx, line, "variant", variant_id=variant_id)
        elif variant_id not in state.selected_variants:
            state.selected_variants.append(variant_id)

    if ctx.kind != ItemKind.SPECIAL_PACK and len(state.selected_variants) > 1:
        for variant_id in state.selected_variants[1:]:
            _drop(ctx, line, "extra_variant", variant_id=variant_id)
        state.selected_variants = state.selected_variants[:1]

    for variant_id, pricing_id in custom.pricing_per_variant.items():
        if variant_id not in state.selected_variants:
            continue
        row = ctx.catalog.pricing_row(pricing_id)
        if row is None or not row.applies_to(variant_id):
            _drop(ctx, line, "pricing", variant_id=variant_id, pricing_id=pricing_id)
            continue
        state.pricing_per_variant[variant_id] = pricing_id

    for variant_id, note in custom.variant_notes.items():
        if variant_id in state.selected_variants and note:
            state.variant_notes[variant_id] = note


def _restore_flat_choices(state: SelectionState, line: CartLineItem, ctx: SessionContext) -> None:
    custom = line.customizations

    for key in custom.supplements:
        supplement = ctx.catalog.supplement(key)
        if supplement is None:
            _drop(ctx, line, "supplement", supplement_key=key)
        else:
            state.supplements[supplement.key] = supplement

    known = ctx.catalog.ingredients
    for name in custom.removed_ingredients:
        if known and name not in known:
            _drop(ctx, line, "removed_ingredient", ingredient=name)
        elif name not in state.removed_ingredients:
            state.removed_ingredients.append(name)

    for name, value in custom.ingredient_preferences.items():
        pref = _parse_preference(value)
        if pref is None or (known and name not in known):
            _drop(ctx, line, "ingredient_preference", ingredient=name, preference=value)
            continue
        state.ingredient_preferences[name] = pref


def _restore_pack_slots(state: SelectionState, line: CartLineItem, ctx: SessionContext) -> None:
    custom = line.customizations

    for variant_id, by_slot in custom.pack_item_selections.items():
        if variant_id not in state.selected_variants:
            _drop(ctx, line, "pack_option_variant", variant_id=variant_id)
            continue
        slots = resolve_slots(ctx.catalog.variant(variant_id))
        for raw_slot, option in by_slot.items():
            slot = _parse_slot(raw_slot)
            if slot is None or not slots.has_slot(slot) or option not in slots.options:
                _drop(ctx, line, "pack_option", variant_id=variant_id, slot=raw_slot, option=option)
                continue
            state.pack_slots.set_option(variant_id, slot, option)

    for variant_name, by_slot in custom.pack_ingredient_preferences.items():
        variant = ctx.catalog.variant_by_name(variant_name)
        if variant is None or variant.id not in state.selected_variants:
            _drop(ctx, line, "pack_preference_variant", variant_name=variant_name)
            continue
        slots = resolve_slots(variant)
        for raw_slot, prefs in by_slot.items():
            slot = _parse_slot(raw_slot)
            if slot is None or not slots.has_slot(slot):
                _drop(ctx, line, "pack_preference_slot", variant_id=variant.id, slot=raw_slot)
                continue
            for ingredient, value in prefs.items():
                pref = _parse_preference(value)
                if pref is None or ingredient not in slots.ingredients:
                    _drop(ctx, line, "pack_preference", variant_id=variant.id, ingredient=ingredient)
                    continue
                state.pack_slots.set_preference(variant.id, slot, ingredient, pref)

    for variant_id, by_slot in custom.pack_supplement_selections.items():
        if variant_id not in state.selected_variants:
            _drop(ctx, line, "pack_supplement_variant", variant_id=variant_id)
            continue
        slots = resolve_slots(ctx.catalog.variant(variant_id))
        for raw_slot, names in by_slot.items():
            slot = _parse_slot(raw_slot)
            if slot is None or not slots.has_slot(slot):
                _drop(ctx, line, "pack_supplement_slot", variant_id=variant_id, slot=raw_slot)
                continue
            for name in names:
                if name not in slots.selectable_supplements:
                    _drop(ctx, line, "pack_supplement", variant_id=variant_id, name=name)
                elif name not in state.pack_slots.supplements_at(variant_id, slot):
                    state.pack_slots.toggle_supplement(variant_id, slot, name)


def _restore_drinks(state: SelectionState, line: CartLineItem, ctx: SessionContext) -> None:
    for entry in line.customizations.drinks:
        drink = ctx.drink(entry.id)
        if drink is None:
            _drop(ctx, line, "drink", drink_id=entry.id)
            continue
        if entry.is_free:
            if not is_eligible(state, ctx, entry.id):
                _drop(ctx, line, "free_drink", drink_id=entry.id)
                continue
            state.drink_quantities[entry.id] = state.drink_quantities.get(entry.id, 0) + entry.quantity
            state.paid_drink_quantities.pop(entry.id, None)
        elif entry.id not in state.drink_quantities:
            state.paid_drink_quantities[entry.id] = state.paid_drink_quantities.get(entry.id, 0) + entry.quantity
        if entry.size:
            state.drink_sizes[entry.id] = entry.size

    limit = required_free_drinks(state, ctx.catalog, ctx.kind)
    clamped = clamp_free_drinks(state.drink_quantities, limit)
    if clamped != state.drink_quantities:
        _drop(ctx, line, "free_drink_excess", limit=limit)
        state.drink_quantities = clamped


def _bootstrap_missing(state: SelectionState, line: CartLineItem, ctx: SessionContext) -> None:
    """Fallback selection for whatever did not survive."""
    if not state.selected_variants and ctx.catalog.available_variants:
        fallback = ctx.catalog.available_variants[0]
        state.selected_variants.append(fallback.id)
        logger.info(
            "edit_fallback_variant_selected",
            session_id=ctx.session_id,
            line_id=line.line_id,
            variant_id=fallback.id,
        )

    if is_size_required(ctx.kind):
        for variant_id in state.selected_variants:
            if variant_id in state.pricing_per_variant:
                continue
            row = ctx.catalog.default_pricing(variant_id)
            if row is not None:
                state.pricing_per_variant[variant_id] = row.id


def reconcile(line: CartLineItem, ctx: SessionContext) -> SelectionState:
    """
    Rehydrate a selection from an existing cart line.

    Args:
        line: Cart line being edited
        ctx: Context of the edit session (fresh catalog and drinks)

    Returns:
        SelectionState equivalent to the one that produced the line,
        minus any references the catalog no longer has
    """
    custom = line.customizations
    state = SelectionState()

    _restore_variants(state, line, ctx)
    _bootstrap_missing(state, line, ctx)

    if ctx.kind == ItemKind.SPECIAL_PACK:
        state.quantity = 1
        for variant_id in state.selected_variants:
            state.variant_quantities[variant_id] = 1
    else:
        state.quantity = custom.quantity
        for variant_id in state.selected_variants:
            state.variant_quantities[variant_id] = custom.quantity

    _restore_flat_choices(state, line, ctx)
    if ctx.kind == ItemKind.SPECIAL_PACK:
        _restore_pack_slots(state, line, ctx)
    _restore_drinks(state, line, ctx)
    state.special_note = custom.note

    logger.info(
        "cart_line_reconciled",
        session_id=ctx.session_id,
        line_id=line.line_id,
        item_id=line.item_id,
        variants=len(state.selected_variants),
    )
    return state
