"""
Free-drink allocator.

Computes the complimentary-drink entitlement of a selection and keeps the
customer's free picks inside it.

Entitlement rules:
    - regular / LTO: base quantity of the entitlement pricing row
      x effective item quantity (sum of per-variant quantities, else the
      global quantity)
    - special pack: base quantity, unscaled (every saved pack order carries
      its own entitlement)
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

import structlog

from models.catalog import CatalogModel, Drink, ItemKind, PricingTier
from models.selection import SelectionState
from models.session import SessionContext

logger = structlog.get_logger(__name__)


def entitlement_row(state: SelectionState, catalog: CatalogModel) -> Optional[PricingTier]:
    """
    Pricing row that defines the entitlement.

    The chosen tier of the first selected variant when it grants drinks,
    else the item's default tier when that one does.
    """
    for variant_id in state.selected_variants:
        pricing_id = state.pricing_per_variant.get(variant_id)
        row = catalog.pricing_row(pricing_id) if pricing_id else None
        if row is not None and row.grants_free_drinks:
            return row
        break

    default = catalog.default_pricing()
    if default is not None and default.grants_free_drinks:
        return default
    return None


def effective_quantity(state: SelectionState) -> int:
    """Sum of per-variant quantities of selected variants, else the global quantity."""
    total = sum(
        state.variant_quantities.get(vid, 0)
        for vid in state.selected_variants
    )
    return total if total > 0 else state.quantity


def required_free_drinks(state: SelectionState, catalog: CatalogModel, kind: ItemKind) -> int:
    """
    Number of complimentary drinks the selection is entitled to.

    Args:
        state: Current selection
        catalog: Item catalog
        kind: Item kind

    Returns:
        Entitlement (0 when nothing grants free drinks)
    """
    row = entitlement_row(state, catalog)
    if row is None:
        return 0
    if kind == ItemKind.SPECIAL_PACK:
        return row.free_drinks_quantity
    return row.free_drinks_quantity * effective_quantity(state)


def eligible_drinks(state: SelectionState, ctx: SessionContext) -> list[Drink]:
    """Loaded drinks that may be picked as free, in menu order."""
    row = entitlement_row(state, ctx.catalog)
    if row is None:
        return []
    allowed = set(row.free_drinks_list)
    return [d for d in ctx.drinks if d.id in allowed]


def is_eligible(state: SelectionState, ctx: SessionContext, drink_id: str) -> bool:
    return any(d.id == drink_id for d in eligible_drinks(state, ctx))


def remaining_entitlement(state: SelectionState, ctx: SessionContext, excluding: Optional[str] = None) -> int:
    """Free units still assignable, ignoring the current pick of `excluding`."""
    required = required_free_drinks(state, ctx.catalog, ctx.kind)
    assigned = sum(
        qty for drink_id, qty in state.drink_quantities.items()
        if drink_id != excluding and qty > 0
    )
    return max(required - assigned, 0)


def clamp_free_drinks(drinks: dict[str, int], limit: int) -> dict[str, int]:
    """
    Trim free picks so their sum does not exceed `limit`.

    Earlier picks keep their units; later ones absorb the cut.
    Entries reaching 0 are dropped.
    """
    clamped: dict[str, int] = {}
    budget = max(limit, 0)
    for drink_id, qty in drinks.items():
        take = min(qty, budget)
        if take > 0:
            clamped[drink_id] = take
            budget -= take
    return clamped


def rescale_free_drinks(
    state: SelectionState,
    old_quantity: int,
    new_quantity: int,
    ctx: SessionContext,
) -> SelectionState:
    """
    Rescale free picks after an item-quantity change.

    new = round(old x new_quantity / old_quantity), half-up, floored at 1 for
    picks that were nonzero, then clamped to the new entitlement.

    Args:
        state: Selection already carrying the new quantity
        old_quantity: Effective quantity before the change
        new_quantity: Effective quantity after the change
        ctx: Session context

    Returns:
        New state
    """
    if not state.drink_quantities or old_quantity <= 0 or old_quantity == new_quantity:
        return state

    ratio = Decimal(new_quantity) / Decimal(old_quantity)
    rescaled: dict[str, int] = {}
    for drink_id, qty in state.drink_quantities.items():
        value = int((Decimal(qty) * ratio).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        if qty > 0:
            value = max(value, 1)
        rescaled[drink_id] = value

    limit = required_free_drinks(state, ctx.catalog, ctx.kind)
    new_state = state.copy()
    new_state.drink_quantities = clamp_free_drinks(rescaled, limit)
    for drink_id in set(state.drink_quantities) - set(new_state.drink_quantities):
        new_state.drink_sizes.pop(drink_id, None)

    logger.debug(
        "free_drinks_rescaled",
        session_id=ctx.session_id,
        old_quantity=old_quantity,
        new_quantity=new_quantity,
        limit=limit,
        drinks=new_state.drink_quantities,
    )
    return new_state


def auto_assign_free_drinks(state: SelectionState, ctx: SessionContext) -> SelectionState:
    """
    Give the whole entitlement to the only eligible drink.

    Skipped when editing, when drinks are already picked, and when there
    are zero or several eligible drinks.
    """
    if ctx.is_edit or state.drink_quantities or state.paid_drink_quantities:
        return state

    candidates = eligible_drinks(state, ctx)
    if len(candidates) != 1:
        return state

    required = required_free_drinks(state, ctx.catalog, ctx.kind)
    if required <= 0:
        return state

    drink = candidates[0]
    new_state = state.copy()
    new_state.drink_quantities[drink.id] = required
    if drink.sizes:
        new_state.drink_sizes[drink.id] = drink.sizes[0]

    logger.info(
        "free_drink_auto_assigned",
        session_id=ctx.session_id,
        drink_id=drink.id,
        quantity=required,
    )
    return new_state
