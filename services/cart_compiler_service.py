"""
Cart line compiler.

Turns a validated SelectionState into finalized CartLineItem objects:
    - regular / LTO: one line per selected variant
    - special pack: exactly one line (quantity 1) folding every component,
      slot option and slot supplement into a single customizations payload

Prices are Decimal and quantized once here; the CartLineItem model checks
total = unit x quantity + extras - discounts on construction.
"""

from decimal import Decimal
from typing import Iterable, Optional

import structlog

from exceptions import CompilerInvariantError
from models.base import to_money
from models.cart import CartLineItem, DrinkEntry, LineCustomizations
from models.catalog import ItemKind
from models.selection import IngredientPreference, SelectionState
from models.session import SessionContext
from services.item_kind_service import is_size_required
from services.pack_option_service import format_pack_name, resolve_slots

logger = structlog.get_logger(__name__)


PREFERENCE_LABELS = (
    (IngredientPreference.WANTED, "Extra"),
    (IngredientPreference.LESS, "Less"),
    (IngredientPreference.NONE, "No"),
)


def build_special_instructions(
    removed_ingredients: Iterable[str],
    note: Optional[str],
    preferences: dict[str, IngredientPreference],
) -> Optional[str]:
    """
    Kitchen instructions: removed ingredients, note, then preference groups.

    Example: "Remove: Onion | Note: well done | Extra: Cheese | No: Pickles"
    """
    clauses = []
    removed = [name for name in removed_ingredients if name]
    if removed:
        clauses.append(f"Remove: {', '.join(removed)}")
    if note and note.strip():
        clauses.append(f"Note: {note.strip()}")
    for preference, label in PREFERENCE_LABELS:
        names = [name for name, pref in preferences.items() if pref == preference]
        if names:
            clauses.append(f"{label}: {', '.join(names)}")
    return " | ".join(clauses) if clauses else None


def build_drink_entries(state: SelectionState, ctx: SessionContext) -> list[DrinkEntry]:
    """Paid drinks first, then free drinks at price 0."""
    entries = []
    for drink_id, qty in state.paid_drink_quantities.items():
        drink = ctx.drink(drink_id)
        if drink is None or qty <= 0:
            continue
        entries.append(DrinkEntry(
            id=drink.id,
            name=drink.name,
            size=state.drink_sizes.get(drink_id),
            is_free=False,
            price=to_money(drink.price),
            quantity=qty,
        ))
    for drink_id, qty in state.drink_quantities.items():
        drink = ctx.drink(drink_id)
        if drink is None or qty <= 0:
            continue
        entries.append(DrinkEntry(
            id=drink.id,
            name=drink.name,
            size=state.drink_sizes.get(drink_id),
            is_free=True,
            price=Decimal("0.00"),
            quantity=qty,
        ))
    return entries


def build_customizations(
    state: SelectionState,
    ctx: SessionContext,
    variant_ids: list[str],
    drinks: list[DrinkEntry],
    quantity: int,
) -> LineCustomizations:
    """Serialize the selection restricted to `variant_ids`."""
    supplements = [
        key for key, supplement in state.supplements.items()
        if ctx.kind == ItemKind.SPECIAL_PACK or any(supplement.applies_to(v) for v in variant_ids)
    ]

    pack_items: dict[str, dict[str, str]] = {}
    pack_prefs: dict[str, dict[str, dict[str, str]]] = {}
    pack_supplements: dict[str, dict[str, list[str]]] = {}
    if ctx.kind == ItemKind.SPECIAL_PACK:
        for variant_id in variant_ids:
            options = state.pack_slots.options_for(variant_id)
            if options:
                pack_items[variant_id] = {str(slot): option for slot, option in options.items()}

            prefs = state.pack_slots.preferences_for(variant_id)
            variant = ctx.catalog.variant(variant_id)
            if prefs and variant is not None:
                pack_prefs[variant.name] = {
                    str(slot): {name: pref.value for name, pref in by_name.items()}
                    for slot, by_name in prefs.items()
                }

            slot_supplements = state.pack_slots.supplements_for(variant_id)
            if slot_supplements:
                pack_supplements[variant_id] = {
                    str(slot): names for slot, names in slot_supplements.items()
                }

    return LineCustomizations(
        item_kind=ctx.kind,
        selected_variants=list(variant_ids),
        pricing_per_variant={
            vid: pid for vid, pid in state.pricing_per_variant.items() if vid in variant_ids
        },
        supplements=supplements,
        removed_ingredients=list(state.removed_ingredients),
        ingredient_preferences={
            name: pref.value
            for name, pref in state.ingredient_preferences.items()
            if pref != IngredientPreference.NEUTRAL
        },
        pack_item_selections=pack_items,
        pack_ingredient_preferences=pack_prefs,
        pack_supplement_selections=pack_supplements,
        drinks=drinks,
        quantity=quantity,
        note=state.special_note,
        variant_notes={
            vid: note for vid, note in state.variant_notes.items() if vid in variant_ids and note
        },
        session_id=ctx.session_id,
    )


def _paid_drinks_total(drinks: list[DrinkEntry]) -> Decimal:
    return to_money(sum((d.price * d.quantity for d in drinks if not d.is_free), Decimal("0")))


def _check_precondition(state: SelectionState, ctx: SessionContext) -> None:
    if state.is_empty:
        raise CompilerInvariantError("Cannot compile a selection without variants")
    if is_size_required(ctx.kind):
        missing = [v for v in state.selected_variants if v not in state.pricing_per_variant]
        if missing:
            raise CompilerInvariantError("Selected variants are missing a size", {"variant_ids": missing})
    for variant_id in state.selected_variants:
        if ctx.catalog.variant(variant_id) is None:
            raise CompilerInvariantError("Selected variant is not in the catalog", {"variant_id": variant_id})


def _compile_regular(state: SelectionState, ctx: SessionContext) -> list[CartLineItem]:
    catalog = ctx.catalog
    drinks = build_drink_entries(state, ctx)
    lines = []

    for index, variant_id in enumerate(state.selected_variants):
        variant = catalog.variant(variant_id)
        pricing_id = state.pricing_per_variant.get(variant_id)
        row = catalog.pricing_row(pricing_id) if pricing_id else None
        quantity = state.quantity_for(variant_id)

        discount = Decimal("0")
        if ctx.kind == ItemKind.LTO_REGULAR:
            base = catalog.list_price + (row.price if row else Decimal("0"))
            if catalog.list_price > catalog.price:
                discount = (catalog.list_price - catalog.price) * quantity
        else:
            if row is None:
                raise CompilerInvariantError("Regular item compiled without a size", {"variant_id": variant_id})
            base = row.price

        supplements_total = sum(
            (s.price for s in state.supplements.values() if s.applies_to(variant_id)),
            Decimal("0"),
        )
        unit_price = to_money(base + supplements_total)

        # paid drinks are charged once, on the first line
        line_drinks = drinks if index == 0 else [d for d in drinks if d.is_free]
        extras = _paid_drinks_total(line_drinks)
        discount_total = to_money(discount)

        lines.append(CartLineItem(
            item_id=catalog.item_id,
            variant_id=variant_id,
            name=f"{catalog.name} - {variant.name}" if len(catalog.available_variants) > 1 else catalog.name,
            quantity=quantity,
            unit_price=unit_price,
            extras_total=extras,
            discount_total=discount_total,
            total_price=to_money(unit_price * quantity + extras - discount_total),
            customizations=build_customizations(state, ctx, [variant_id], line_drinks, quantity),
            special_instructions=build_special_instructions(
                state.removed_ingredients,
                state.note_for(variant_id),
                state.ingredient_preferences,
            ),
        ))

    return lines


def _pack_components(state: SelectionState, ctx: SessionContext) -> list[str]:
    """Selected components in menu order."""
    return [v.id for v in ctx.catalog.variants if v.id in state.selected_variants]


def _pack_base_price(state: SelectionState, ctx: SessionContext, components: list[str]) -> Decimal:
    """
    The item price, else the chosen row of the first component in menu order.

    Click order never affects the price.
    """
    catalog = ctx.catalog
    if catalog.price > 0:
        return catalog.price

    first = components[0]
    row = catalog.pricing_row(state.pricing_per_variant[first])
    if row is None:
        raise CompilerInvariantError("Pack pricing row is not in the catalog", {"variant_id": first})
    return row.price


def _compile_pack(state: SelectionState, ctx: SessionContext) -> list[CartLineItem]:
    catalog = ctx.catalog
    components = _pack_components(state, ctx)
    first = components[0]
    base = _pack_base_price(state, ctx, components)

    slot_supplements_total = Decimal("0")
    for variant_id in state.selected_variants:
        slots = resolve_slots(catalog.variant(variant_id))
        for names in state.pack_slots.supplements_for(variant_id).values():
            slot_supplements_total += sum((slots.supplement_price(n) for n in names), Decimal("0"))

    item_supplements_total = sum((s.price for s in state.supplements.values()), Decimal("0"))
    unit_price = to_money(base + slot_supplements_total + item_supplements_total)
    drinks = build_drink_entries(state, ctx)
    extras = _paid_drinks_total(drinks)

    return [CartLineItem(
        item_id=catalog.item_id,
        variant_id=first,
        name=format_pack_name(catalog),
        quantity=1,
        unit_price=unit_price,
        extras_total=extras,
        discount_total=Decimal("0.00"),
        total_price=to_money(unit_price + extras),
        customizations=build_customizations(state, ctx, list(state.selected_variants), drinks, 1),
        special_instructions=build_special_instructions(
            state.removed_ingredients,
            state.special_note,
            state.ingredient_preferences,
        ),
    )]


def compile_selection(state: SelectionState, ctx: SessionContext) -> list[CartLineItem]:
    """
    Compile a validated selection into cart lines.

    Args:
        state: Selection that passed validation
        ctx: Session context

    Returns:
        One line per variant (regular / LTO) or one line (special pack)

    Raises:
        CompilerInvariantError: If the selection was not validated first
    """
    _check_precondition(state, ctx)
    if ctx.kind == ItemKind.SPECIAL_PACK:
        lines = _compile_pack(state, ctx)
    else:
        lines = _compile_regular(state, ctx)

    logger.info(
        "selection_compiled",
        session_id=ctx.session_id,
        item_id=ctx.catalog.item_id,
        item_kind=ctx.kind.value,
        lines=len(lines),
        total=str(sum((line.total_price for line in lines), Decimal("0"))),
    )
    return lines
