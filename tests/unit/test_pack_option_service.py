"""
Unit tests for the special-pack option resolver.
"""

from decimal import Decimal

import pytest

from models.selection import SelectionState
from services.pack_option_service import (
    EMPTY_SLOTS,
    auto_select_pack_options,
    format_pack_name,
    parse_pack_description,
    resolve_slots,
)
from tests.factories import CatalogFactory, PricingRowFactory, VariantRowFactory


# ===================
# PARSING
# ===================

class TestParsePackDescription:
    """Tests for parse_pack_description()."""

    def test_full_description(self):
        slots = parse_pack_description(
            "qty:2|options:Regular, Spicy|ingredients:Cheese,Tomato"
            "|supplements:Extra cheese:50.0,Sauce|hidden_supplements:Sauce"
        )

        assert slots.repeat_count == 2
        assert slots.options == ("Regular", "Spicy")
        assert slots.ingredients == ("Cheese", "Tomato")
        assert slots.supplements == {"Extra cheese": Decimal("50.0"), "Sauce": Decimal("0")}
        assert slots.hidden_supplements == frozenset({"Sauce"})
        assert slots.selectable_supplements == {"Extra cheese": Decimal("50.0")}
        assert list(slots.slot_indexes) == [0, 1]

    @pytest.mark.parametrize("description", ["qty:0", "qty:-3", "qty:abc", "options:A,B", ""])
    def test_bad_or_missing_quantity_is_one(self, description):
        assert parse_pack_description(description).repeat_count == 1

    def test_none_is_empty(self):
        assert parse_pack_description(None) is EMPTY_SLOTS

    def test_free_text_has_no_facets(self):
        slots = parse_pack_description("A tasty burger")
        assert slots.repeat_count == 1
        assert slots.options == ()
        assert slots.ingredients == ()

    def test_malformed_supplement_price_is_zero(self):
        slots = parse_pack_description("qty:1|supplements:Bacon:abc,:20,Egg:15")
        assert slots.supplements == {"Bacon": Decimal("0"), "Egg": Decimal("15")}

    def test_parse_is_cached(self):
        first = parse_pack_description("qty:3|options:X")
        assert parse_pack_description("qty:3|options:X") is first

    def test_resolve_unknown_variant(self):
        assert resolve_slots(None) is EMPTY_SLOTS

    def test_has_slot_bounds(self):
        slots = parse_pack_description("qty:2")
        assert slots.has_slot(0) and slots.has_slot(1)
        assert not slots.has_slot(2)
        assert not slots.has_slot(-1)


# ===================
# AUTO SELECTION
# ===================

class TestAutoSelectPackOptions:
    """Tests for auto_select_pack_options()."""

    def test_multi_option_multi_slot_left_unselected(self, pack_catalog):
        state = auto_select_pack_options(SelectionState(), pack_catalog)

        assert state.pack_slots.options_for("v-burger") == {}
        assert "v-burger" not in state.selected_variants

    def test_single_option_selected_for_every_slot(self, pack_catalog):
        state = auto_select_pack_options(SelectionState(), pack_catalog)

        assert state.pack_slots.options_for("v-fries") == {0: "Salted"}
        assert state.selected_variants == ["v-fries"]

    def test_single_option_fills_all_slots(self):
        catalog = CatalogFactory.create(
            category="pack",
            variants=[VariantRowFactory.create(id="nug", description="qty:3|options:Only")],
            pricing_options=[PricingRowFactory.create(size="pack", is_default=True)],
        )

        state = auto_select_pack_options(SelectionState(), catalog)

        assert state.pack_slots.options_for("nug") == {0: "Only", 1: "Only", 2: "Only"}

    def test_multi_option_single_slot_takes_first(self):
        catalog = CatalogFactory.create(
            category="pack",
            variants=[VariantRowFactory.create(id="drink", description="qty:1|options:Cold,Hot")],
        )

        state = auto_select_pack_options(SelectionState(), catalog)

        assert state.pack_slots.options_for("drink") == {0: "Cold"}

    def test_existing_choices_are_kept(self, pack_catalog):
        state = SelectionState()
        state.pack_slots.set_option("v-fries", 0, "Custom")

        result = auto_select_pack_options(state, pack_catalog)

        assert result.pack_slots.options_for("v-fries") == {0: "Custom"}

    def test_input_state_not_mutated(self, pack_catalog):
        state = SelectionState()
        auto_select_pack_options(state, pack_catalog)
        assert state == SelectionState()


# ===================
# DISPLAY NAME
# ===================

class TestFormatPackName:
    """Tests for format_pack_name()."""

    def test_two_components(self, pack_catalog):
        assert format_pack_name(pack_catalog) == "Duo Pack (2)x Burger and Fries"

    def test_three_components(self):
        catalog = CatalogFactory.create(
            name="Family",
            category="pack",
            variants=[
                VariantRowFactory.create(name="Pizza", description="qty:1"),
                VariantRowFactory.create(name="Wings", description="qty:6"),
                VariantRowFactory.create(name="Soda", description="qty:1"),
            ],
        )
        assert format_pack_name(catalog) == "Family Pizza, (6)x Wings and Soda"

    def test_already_formatted_name_unchanged(self):
        catalog = CatalogFactory.create(
            name="Duo Burger and Fries",
            category="pack",
            variants=[VariantRowFactory.create(name="Burger")],
        )
        assert format_pack_name(catalog) == "Duo Burger and Fries"

    def test_no_variants_uses_item_name(self):
        catalog = CatalogFactory.create(name="Mystery Box", category="pack")
        assert format_pack_name(catalog) == "Mystery Box"
