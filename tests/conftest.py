"""
Shared test fixtures.

Catalog fixtures use fixed ids so tests can address variants, sizes and
drinks directly.
"""

import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from unittest.mock import patch
from typing import Generator, Optional

from exceptions import CatalogLoadError
from models.catalog import CatalogModel, Drink
from services.cart_service import CartService
from services.catalog_service import CatalogService
from services.configurator_service import ConfiguratorService
from tests.factories import (
    CatalogFactory,
    DrinkRowFactory,
    PricingRowFactory,
    SupplementRowFactory,
    VariantRowFactory,
)

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods."""

    def __init__(self, data: list = None, count: int = None, error: Exception = None):
        self._data = data or []
        self._count = count
        self._error = error
        self.filters: list[tuple] = []

    def select(self, *args, **kwargs):
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, **kwargs):
        return self

    def limit(self, count):
        return self

    def execute(self) -> MockSupabaseResponse:
        if self._error is not None:
            raise self._error
        return MockSupabaseResponse(
            data=self._data,
            count=self._count if self._count is not None else len(self._data)
        )


class MockSupabaseTable:
    """Mock Supabase table with configurable responses."""

    def __init__(self, data: list = None, count: int = None, error: Exception = None):
        self._data = data or []
        self._count = count
        self._error = error

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self._data.copy(), self._count, self._error)


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables = {}

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure mock data for a table."""
        self._tables[table_name] = {"data": data, "count": count, "error": None}

    def set_table_error(self, table_name: str, error: Exception):
        """Make every query on a table raise."""
        self._tables[table_name] = {"data": [], "count": None, "error": error}

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        config = self._tables.get(name, {"data": [], "count": None, "error": None})
        return MockSupabaseTable(config["data"], config["count"], config["error"])


# ===================
# FAKE CATALOG SERVICE
# ===================

class FakeCatalogService(CatalogService):
    """
    In-memory catalog collaborator.

    Usage:
        fake.add_item(catalog)
        fake.drinks = [drink]
        fake.fail_items = True   # next fetch_enhanced_item raises
        fake.fail_drinks = True  # fetch_drinks raises
    """

    def __init__(self):
        self.items: dict[str, CatalogModel] = {}
        self.drinks: list[Drink] = []
        self.fail_items = False
        self.fail_drinks = False
        self.item_calls = 0
        self.drink_calls = 0

    def add_item(self, catalog: CatalogModel) -> CatalogModel:
        self.items[catalog.item_id] = catalog
        return catalog

    async def fetch_enhanced_item(self, item_id: str) -> CatalogModel:
        self.item_calls += 1
        if self.fail_items or item_id not in self.items:
            raise CatalogLoadError(item_id, "Could not load menu item")
        return self.items[item_id]

    async def fetch_drinks(self, restaurant_id: Optional[str]) -> list[Drink]:
        self.drink_calls += 1
        if self.fail_drinks:
            raise RuntimeError("drinks backend down")
        return list(self.drinks)


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("menu_items", [MenuItemRowFactory.create()])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Any code using get_supabase_client() gets the mock.
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.catalog_service.get_supabase_client", return_value=mock_supabase):
            yield mock_supabase


@pytest.fixture
def drinks() -> list[Drink]:
    """Three restaurant drinks: d1 (two sizes), d2, d3."""
    return [
        DrinkRowFactory.create_drink(id="d1", name="Cola", price=150, sizes=["33cl", "1L"]),
        DrinkRowFactory.create_drink(id="d2", name="Orange", price=150),
        DrinkRowFactory.create_drink(id="d3", name="Water", price=100),
    ]


@pytest.fixture
def regular_catalog() -> CatalogModel:
    """
    Regular burger: two variants, sized pricing, one global and one
    variant-scoped supplement, no free drinks.
    """
    return CatalogFactory.create(
        id="burger",
        name="Burger",
        category="burgers",
        ingredients=["Cheese", "Onion", "Pickles"],
        variants=[
            VariantRowFactory.create(id="classic", name="Classic"),
            VariantRowFactory.create(id="double", name="Double"),
        ],
        pricing_options=[
            PricingRowFactory.create(id="classic-m", variant_id="classic", size="M", price=500, is_default=True),
            PricingRowFactory.create(id="classic-l", variant_id="classic", size="L", price=700),
            PricingRowFactory.create(id="double-m", variant_id="double", size="M", price=800, is_default=True),
        ],
        supplements=[
            SupplementRowFactory.create(id="bacon", name="Bacon", price=100),
            SupplementRowFactory.create(id="egg", name="Egg", price=50, available_for_variants=["double"]),
        ],
    )


@pytest.fixture
def meal_catalog() -> CatalogModel:
    """Regular meal whose only size grants one free drink per unit (d1 or d2)."""
    return CatalogFactory.create(
        id="meal",
        name="Meal",
        category="meals",
        variants=[VariantRowFactory.create(id="meal-v", name="Chicken")],
        pricing_options=[
            PricingRowFactory.create(
                id="meal-p",
                variant_id="meal-v",
                size="menu",
                price=900,
                is_default=True,
                free_drinks=["d1", "d2"],
                free_drinks_quantity=1,
            ),
        ],
    )


@pytest.fixture
def lto_catalog() -> CatalogModel:
    """Limited offer: 400 instead of 500, optional L size at +100."""
    return CatalogFactory.create(
        id="lto",
        name="Summer Wrap",
        category="wraps",
        price=400,
        original_price=500,
        is_limited_offer=True,
        ingredients=["Lettuce", "Sauce"],
        variants=[VariantRowFactory.create(id="wrap", name="Wrap")],
        pricing_options=[
            PricingRowFactory.create(id="wrap-l", variant_id="wrap", size="L", price=100),
        ],
    )


@pytest.fixture
def pack_catalog() -> CatalogModel:
    """
    Special pack: two burgers (choice per burger, slot supplements) and one
    fries with a single option; the pack tier grants one free d1.
    """
    return CatalogFactory.create(
        id="duo",
        name="Duo Pack",
        category="Special Pack",
        variants=[
            VariantRowFactory.create(
                id="v-burger",
                name="Burger",
                description=(
                    "qty:2|options:Regular,Spicy|ingredients:Cheese,Tomato"
                    "|supplements:Extra cheese:50,Sauce|hidden_supplements:Sauce"
                ),
            ),
            VariantRowFactory.create(id="v-fries", name="Fries", description="qty:1|options:Salted"),
        ],
        pricing_options=[
            PricingRowFactory.create(
                id="pack-p",
                size="pack",
                price=1200,
                is_default=True,
                free_drinks=["d1"],
                free_drinks_quantity=1,
            ),
        ],
        supplements=[SupplementRowFactory.create(id="dessert", name="Dessert", price=200)],
    )


@pytest.fixture
def scenario_pack_catalog() -> CatalogModel:
    """Pack with one component V1 (qty:2, Regular/Spicy) and one free D1."""
    return CatalogFactory.create(
        id="scenario-pack",
        name="Pack",
        category="combo",
        variants=[VariantRowFactory.create(id="V1", name="Sandwich", description="qty:2|options:Regular,Spicy")],
        pricing_options=[
            PricingRowFactory.create(
                id="P1",
                size="pack",
                price=1000,
                is_default=True,
                free_drinks=["D1"],
                free_drinks_quantity=1,
            ),
        ],
    )


@pytest.fixture
def fake_catalog() -> FakeCatalogService:
    return FakeCatalogService()


@pytest.fixture
def cart() -> CartService:
    return CartService()


@pytest.fixture
def configurator(fake_catalog, cart) -> ConfiguratorService:
    """Configurator wired to the fake catalog and a fresh cart."""
    return ConfiguratorService(catalog_service=fake_catalog, cart_service=cart)


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client(configurator, cart):
    """
    Create FastAPI test client wired to the fake catalog and a fresh cart.

    Usage:
        def test_endpoint(test_client, fake_catalog, regular_catalog):
            fake_catalog.add_item(regular_catalog)
            response = test_client.post("/api/configurator/sessions", json={"item_id": "burger"})
    """
    from fastapi.testclient import TestClient
    from main import app

    with patch("routes.configurator.get_configurator_service", return_value=configurator):
        with patch("routes.configurator.get_cart_service", return_value=cart):
            with patch("routes.cart.get_cart_service", return_value=cart):
                yield TestClient(app)
