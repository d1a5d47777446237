"""
In-memory selection state for one configurator session.

SelectionState is owned exclusively by its session and is never shared, so it
is a plain mutable dataclass. Reducers in services.selection_service copy it
before changing anything; a state handed to a caller is never mutated later.
"""

from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional

from models.catalog import Supplement


class IngredientPreference(str, Enum):
    """Per-ingredient preference. Absence from a preference map means NEUTRAL."""
    NEUTRAL = "neutral"
    WANTED = "wanted"
    LESS = "less"
    NONE = "none"

    def next(self) -> "IngredientPreference":
        """neutral -> wanted -> less -> none -> neutral."""
        ring = list(IngredientPreference)
        return ring[(ring.index(self) + 1) % len(ring)]


class SlotFacet(str, Enum):
    """What a pack slot row holds."""
    OPTION = "option"
    INGREDIENTS = "ingredients"
    SUPPLEMENTS = "supplements"


SlotKey = tuple[str, int, SlotFacet]


class PackSlotTable:
    """
    Per-slot pack choices in one table keyed by (variant_id, slot_index, facet).

    OPTION rows hold the chosen option label, INGREDIENTS rows a
    {ingredient: IngredientPreference} map without neutral entries,
    SUPPLEMENTS rows an ordered list of supplement names.
    Empty rows are removed so an untouched slot has no entry at all.
    """

    def __init__(self, rows: Optional[dict[SlotKey, Any]] = None):
        self._rows: dict[SlotKey, Any] = dict(rows or {})

    def __bool__(self) -> bool:
        return bool(self._rows)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackSlotTable):
            return NotImplemented
        return self._rows == other._rows

    def __repr__(self) -> str:
        return f"PackSlotTable({self._rows!r})"

    def __deepcopy__(self, memo) -> "PackSlotTable":
        return PackSlotTable(deepcopy(self._rows, memo))

    def rows(self) -> Iterator[tuple[SlotKey, Any]]:
        """Rows sorted by variant, slot, facet (deterministic serialization order)."""
        for key in sorted(self._rows, key=lambda k: (k[0], k[1], k[2].value)):
            yield key, self._rows[key]

    def variant_ids(self) -> list[str]:
        seen: list[str] = []
        for (variant_id, _, _), _value in self.rows():
            if variant_id not in seen:
                seen.append(variant_id)
        return seen

    def drop_variant(self, variant_id: str) -> None:
        for key in [k for k in self._rows if k[0] == variant_id]:
            del self._rows[key]

    # ===================
    # OPTIONS
    # ===================

    def option(self, variant_id: str, slot: int) -> Optional[str]:
        return self._rows.get((variant_id, slot, SlotFacet.OPTION))

    def set_option(self, variant_id: str, slot: int, option: Optional[str]) -> None:
        key = (variant_id, slot, SlotFacet.OPTION)
        if option:
            self._rows[key] = option
        else:
            self._rows.pop(key, None)

    def options_for(self, variant_id: str) -> dict[int, str]:
        return {
            slot: value
            for (vid, slot, facet), value in self.rows()
            if vid == variant_id and facet == SlotFacet.OPTION
        }

    # ===================
    # INGREDIENT PREFERENCES
    # ===================

    def preference(self, variant_id: str, slot: int, ingredient: str) -> IngredientPreference:
        prefs = self._rows.get((variant_id, slot, SlotFacet.INGREDIENTS), {})
        return prefs.get(ingredient, IngredientPreference.NEUTRAL)

    def set_preference(
        self,
        variant_id: str,
        slot: int,
        ingredient: str,
        preference: IngredientPreference,
    ) -> None:
        key = (variant_id, slot, SlotFacet.INGREDIENTS)
        prefs = dict(self._rows.get(key, {}))
        if preference == IngredientPreference.NEUTRAL:
            prefs.pop(ingredient, None)
        else:
            prefs[ingredient] = preference
        if prefs:
            self._rows[key] = prefs
        else:
            self._rows.pop(key, None)

    def preferences_for(self, variant_id: str) -> dict[int, dict[str, IngredientPreference]]:
        return {
            slot: dict(value)
            for (vid, slot, facet), value in self.rows()
            if vid == variant_id and facet == SlotFacet.INGREDIENTS
        }

    # ===================
    # SUPPLEMENTS
    # ===================

    def supplements_at(self, variant_id: str, slot: int) -> list[str]:
        return list(self._rows.get((variant_id, slot, SlotFacet.SUPPLEMENTS), []))

    def toggle_supplement(self, variant_id: str, slot: int, name: str) -> None:
        key = (variant_id, slot, SlotFacet.SUPPLEMENTS)
        names = list(self._rows.get(key, []))
        if name in names:
            names.remove(name)
        else:
            names.append(name)
        if names:
            self._rows[key] = names
        else:
            self._rows.pop(key, None)

    def supplements_for(self, variant_id: str) -> dict[int, list[str]]:
        return {
            slot: list(value)
            for (vid, slot, facet), value in self.rows()
            if vid == variant_id and facet == SlotFacet.SUPPLEMENTS
        }


@dataclass
class SelectionState:
    """
    The configuration being built.

    Invariants (kept by the reducers):
        - regular / LTO kinds select at most one variant
        - pricing_per_variant keys are a subset of selected_variants
        - drink_quantities and paid_drink_quantities have disjoint keys
    """

    selected_variants: list[str] = field(default_factory=list)  # ordered set
    pricing_per_variant: dict[str, str] = field(default_factory=dict)  # variant_id -> pricing_id
    variant_quantities: dict[str, int] = field(default_factory=dict)
    variant_notes: dict[str, str] = field(default_factory=dict)
    supplements: dict[str, Supplement] = field(default_factory=dict)  # Supplement.key -> supplement
    removed_ingredients: list[str] = field(default_factory=list)
    ingredient_preferences: dict[str, IngredientPreference] = field(default_factory=dict)
    pack_slots: PackSlotTable = field(default_factory=PackSlotTable)
    drink_quantities: dict[str, int] = field(default_factory=dict)  # free
    paid_drink_quantities: dict[str, int] = field(default_factory=dict)
    drink_sizes: dict[str, str] = field(default_factory=dict)
    quantity: int = 1
    special_note: str = ""

    def copy(self) -> "SelectionState":
        return deepcopy(self)

    @property
    def is_empty(self) -> bool:
        return not self.selected_variants

    @property
    def assigned_free_drinks(self) -> int:
        return sum(q for q in self.drink_quantities.values() if q > 0)

    def quantity_for(self, variant_id: str) -> int:
        return self.variant_quantities.get(variant_id, self.quantity)

    def note_for(self, variant_id: str) -> str:
        return self.variant_notes.get(variant_id) or self.special_note
