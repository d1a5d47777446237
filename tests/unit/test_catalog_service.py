"""
Unit tests for the catalog service.

Tests the row mapper and the Supabase-backed fetches against a mock client.
"""

import asyncio
from decimal import Decimal

import pytest

from exceptions import CatalogLoadError
from services.catalog_service import SupabaseCatalogService, map_catalog_row, map_drink_row
from tests.factories import (
    DrinkRowFactory,
    MenuItemRowFactory,
    PricingRowFactory,
    SupplementRowFactory,
    VariantRowFactory,
)


# ===================
# ROW MAPPING
# ===================

class TestMapCatalogRow:
    """Tests for map_catalog_row()."""

    def test_pricing_sorted_by_display_order(self):
        row = MenuItemRowFactory.create(
            pricing_options=[
                PricingRowFactory.create(id="late", display_order=5),
                PricingRowFactory.create(id="early", display_order=1),
            ],
        )

        catalog = map_catalog_row(row)

        assert [p.id for p in catalog.pricing] == ["early", "late"]

    def test_legacy_pricing_key(self):
        row = MenuItemRowFactory.create()
        row["pricing"] = [PricingRowFactory.create(id="legacy")]

        assert [p.id for p in map_catalog_row(row).pricing] == ["legacy"]

    def test_unavailable_supplements_hidden(self):
        row = MenuItemRowFactory.create(
            supplements=[
                SupplementRowFactory.create(id="on"),
                SupplementRowFactory.create(id="off", is_available=False),
            ],
        )

        assert [s.id for s in map_catalog_row(row).supplements] == ["on"]

    def test_single_scope_becomes_variant_id(self):
        row = MenuItemRowFactory.create(
            supplements=[
                SupplementRowFactory.create(id="one", available_for_variants=["v1"]),
                SupplementRowFactory.create(id="two", available_for_variants=["v1", "v2"]),
            ],
        )

        one, two = map_catalog_row(row).supplements

        assert one.variant_id == "v1"
        assert one.available_for_variants == []
        assert two.variant_id is None
        assert two.available_for_variants == ["v1", "v2"]

    def test_free_drink_fields(self):
        row = MenuItemRowFactory.create(
            pricing_options=[PricingRowFactory.create(free_drinks=["d1", None, ""], free_drinks_quantity=2)],
        )

        [tier] = map_catalog_row(row).pricing

        assert tier.grants_free_drinks is True
        assert tier.free_drinks_list == ["d1"]
        assert tier.free_drinks_quantity == 2

    def test_original_price_from_pricing_rows(self):
        pricing = PricingRowFactory.create()
        pricing["original_price"] = 650
        row = MenuItemRowFactory.create(price=500, pricing_options=[pricing])

        catalog = map_catalog_row(row)

        assert catalog.original_price == Decimal("650")
        assert catalog.list_price == Decimal("650")

    def test_variants_without_id_skipped(self):
        row = MenuItemRowFactory.create(variants=[VariantRowFactory.create(id="v1"), {"name": "broken"}])

        assert [v.id for v in map_catalog_row(row).variants] == ["v1"]

    def test_drink_sizes(self):
        drink = map_drink_row(DrinkRowFactory.create(id="cola", sizes=["33cl", "1L"], price=150))

        assert drink.sizes == ["33cl", "1L"]
        assert drink.price == Decimal("150")


# ===================
# SUPABASE FETCHES
# ===================

class TestSupabaseCatalogService:
    """Tests for SupabaseCatalogService against the mock client."""

    def test_fetch_item(self, mock_db):
        mock_db.set_table_data("menu_items", [MenuItemRowFactory.create(id="burger", name="Burger")])

        catalog = asyncio.run(SupabaseCatalogService().fetch_enhanced_item("burger"))

        assert catalog.item_id == "burger"
        assert catalog.name == "Burger"

    def test_missing_item(self, mock_db):
        mock_db.set_table_data("menu_items", [])

        with pytest.raises(CatalogLoadError) as exc:
            asyncio.run(SupabaseCatalogService().fetch_enhanced_item("ghost"))

        assert exc.value.code == "CATALOG_LOAD_FAILED"
        assert exc.value.message == "Menu item not found"

    def test_backend_error(self, mock_db):
        mock_db.set_table_error("menu_items", ConnectionError("timeout"))

        with pytest.raises(CatalogLoadError) as exc:
            asyncio.run(SupabaseCatalogService().fetch_enhanced_item("burger"))

        assert exc.value.status_code == 503

    def test_invalid_row(self, mock_db):
        row = MenuItemRowFactory.create()
        del row["id"]
        mock_db.set_table_data("menu_items", [row])

        with pytest.raises(CatalogLoadError) as exc:
            asyncio.run(SupabaseCatalogService().fetch_enhanced_item("burger"))

        assert exc.value.message == "Menu item data is invalid"

    def test_fetch_drinks(self, mock_db):
        mock_db.set_table_data("menu_items", [
            DrinkRowFactory.create(id="d1", name="Cola"),
            DrinkRowFactory.create(id="d2", name="Water"),
        ])

        drinks = asyncio.run(SupabaseCatalogService().fetch_drinks("resto-1"))

        assert [d.id for d in drinks] == ["d1", "d2"]

    def test_no_restaurant_no_drinks(self, mock_db):
        assert asyncio.run(SupabaseCatalogService().fetch_drinks(None)) == []
