"""
Unit tests for the validation engine.
"""

from config import settings
from models.catalog import ItemKind
from models.configurator import ValidationReason
from models.selection import SelectionState
from services.validation_service import validate


def meal_state(quantity: int = 1, drinks: dict = None) -> SelectionState:
    return SelectionState(
        selected_variants=["meal-v"],
        pricing_per_variant={"meal-v": "meal-p"},
        variant_quantities={"meal-v": quantity},
        quantity=quantity,
        drink_quantities=dict(drinks or {}),
    )


class TestVariantCheck:
    """Check 1: a variant or a saved order."""

    def test_empty_selection_fails(self, regular_catalog):
        result = validate(SelectionState(), regular_catalog, ItemKind.REGULAR)

        assert result.ok is False
        assert result.reason == ValidationReason.NO_SELECTION
        assert result.message == "Please select a variant and size or save at least one order"
        assert result.clear_after_seconds == settings.validation_error_clear_seconds

    def test_saved_order_satisfies_check(self, regular_catalog):
        result = validate(SelectionState(), regular_catalog, ItemKind.REGULAR, saved_count=1)
        assert result.ok is True

    def test_no_selection_wins_over_free_drinks(self, meal_catalog):
        result = validate(SelectionState(), meal_catalog, ItemKind.REGULAR, check_free_drinks=True)
        assert result.reason == ValidationReason.NO_SELECTION


class TestSizeCheck:
    """Check 2: every selected variant has a size."""

    def test_regular_without_size_fails(self, regular_catalog):
        state = SelectionState(selected_variants=["classic"])

        result = validate(state, regular_catalog, ItemKind.REGULAR)

        assert result.reason == ValidationReason.SIZE_REQUIRED
        assert result.message == "Please select a size for the selected variant"

    def test_pack_component_without_size_fails(self, pack_catalog):
        state = SelectionState(
            selected_variants=["v-burger", "v-fries"],
            pricing_per_variant={"v-burger": "pack-p"},
        )
        result = validate(state, pack_catalog, ItemKind.SPECIAL_PACK)
        assert result.reason == ValidationReason.SIZE_REQUIRED

    def test_lto_size_is_optional(self, lto_catalog):
        state = SelectionState(selected_variants=["wrap"])
        assert validate(state, lto_catalog, ItemKind.LTO_REGULAR).ok is True


class TestFreeDrinkCheck:
    """Check 3: the complimentary drinks are picked."""

    def test_missing_free_drink_fails(self, meal_catalog):
        result = validate(meal_state(), meal_catalog, ItemKind.REGULAR, check_free_drinks=True)

        assert result.reason == ValidationReason.FREE_DRINKS_REQUIRED
        assert result.required_free_drinks == 1
        assert result.message == "Please select your 1 complimentary drink"

    def test_message_uses_scaled_entitlement(self, meal_catalog):
        result = validate(meal_state(quantity=2), meal_catalog, ItemKind.REGULAR, check_free_drinks=True)

        assert result.required_free_drinks == 2
        assert result.message == "Please select your 2 complimentary drinks"

    def test_any_assigned_drink_passes(self, meal_catalog):
        state = meal_state(quantity=3, drinks={"d1": 1})
        assert validate(state, meal_catalog, ItemKind.REGULAR, check_free_drinks=True).ok is True

    def test_not_checked_unless_asked(self, meal_catalog):
        assert validate(meal_state(), meal_catalog, ItemKind.REGULAR).ok is True


class TestPurity:
    """Validation never changes its input."""

    def test_state_unchanged(self, meal_catalog):
        state = meal_state(quantity=2)
        before = state.copy()

        validate(state, meal_catalog, ItemKind.REGULAR, check_free_drinks=True)

        assert state == before
