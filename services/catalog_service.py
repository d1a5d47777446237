"""
Catalog service: fetches menu item snapshots and restaurant drinks.

CatalogService is the async interface the configurator depends on.
SupabaseCatalogService reads the `menu_items` table, whose rows embed
variants, pricing options and supplements as JSON arrays.
"""

import asyncio
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import structlog

from config import get_supabase_client, settings
from exceptions import CatalogLoadError
from models.catalog import CatalogModel, Drink, MenuVariant, PricingTier, Supplement

logger = structlog.get_logger(__name__)


class CatalogService(ABC):
    """Async catalog collaborator."""

    @abstractmethod
    async def fetch_enhanced_item(self, item_id: str) -> CatalogModel:
        """
        Fetch one menu item with variants, pricing and supplements.

        Raises:
            CatalogLoadError: If the item cannot be fetched
        """

    @abstractmethod
    async def fetch_drinks(self, restaurant_id: Optional[str]) -> list[Drink]:
        """Fetch the restaurant's drinks. Callers treat failures as 'no drinks'."""


# ===================
# ROW MAPPING
# ===================

def _decimal(value: Any, default: str = "0") -> Decimal:
    if value is None or value == "":
        return Decimal(default)
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal(default)


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None and str(v).strip()]


def _map_variant(row: dict) -> MenuVariant:
    return MenuVariant(
        id=str(row["id"]),
        name=row.get("name") or "",
        description=row.get("description"),
        is_available=row.get("is_available", True) is not False,
    )


def _map_pricing(row: dict) -> PricingTier:
    return PricingTier(
        id=str(row["id"]),
        variant_id=row.get("variant_id") or None,
        size=row.get("size") or "",
        portion=row.get("portion") or "",
        price=_decimal(row.get("price")),
        is_default=bool(row.get("is_default", False)),
        free_drinks_included=bool(row.get("free_drinks_included", False)),
        free_drinks_quantity=int(row.get("free_drinks_quantity") or 0),
        free_drinks_list=_str_list(row.get("free_drinks_list")),
        offer_end_at=row.get("offer_end_at"),
    )


def _map_supplement(row: dict) -> Supplement:
    scope = _str_list(row.get("available_for_variants"))
    variant_id = row.get("variant_id") or None
    if variant_id is None and len(scope) == 1:
        variant_id, scope = scope[0], []
    return Supplement(
        id=str(row["id"]) if row.get("id") else None,
        name=row.get("name") or "",
        price=_decimal(row.get("price")),
        variant_id=variant_id,
        available_for_variants=scope,
    )


def map_catalog_row(row: dict) -> CatalogModel:
    """
    Map a menu_items row (with embedded arrays) to a CatalogModel.

    Rows without an id are skipped; unavailable supplements are hidden;
    pricing rows keep their display_order.
    """
    variants = [_map_variant(v) for v in row.get("variants") or [] if v.get("id")]

    pricing_rows = [p for p in (row.get("pricing_options") or row.get("pricing") or []) if p.get("id")]
    pricing_rows.sort(key=lambda p: p.get("display_order") or 0)
    pricing = [_map_pricing(p) for p in pricing_rows]

    supplements = [
        _map_supplement(s)
        for s in row.get("supplements") or []
        if s.get("name") and s.get("is_available", True) is not False
    ]

    original_price = row.get("original_price")
    if original_price is None:
        original_price = next(
            (p.get("original_price") for p in pricing_rows if p.get("original_price") is not None),
            None,
        )

    return CatalogModel(
        item_id=str(row["id"]),
        restaurant_id=row.get("restaurant_id"),
        name=row.get("name") or "",
        category=row.get("category") or "",
        price=_decimal(row.get("price")),
        original_price=_decimal(original_price) if original_price is not None else None,
        is_limited_offer=bool(row.get("is_limited_offer", False)),
        offer_start_at=row.get("offer_start_at"),
        offer_end_at=row.get("offer_end_at"),
        ingredients=_str_list(row.get("ingredients")),
        variants=variants,
        pricing=pricing,
        supplements=supplements,
    )


def map_drink_row(row: dict) -> Drink:
    sizes = [
        p.get("size") for p in row.get("pricing_options") or []
        if p.get("size")
    ]
    return Drink(
        id=str(row["id"]),
        name=row.get("name") or "",
        price=_decimal(row.get("price")),
        sizes=sizes,
    )


# ===================
# SUPABASE IMPLEMENTATION
# ===================

class SupabaseCatalogService(CatalogService):
    """
    Catalog backed by Supabase.

    The Supabase client is synchronous; calls run in a worker thread so the
    event loop is never blocked.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = settings.menu_items_table

    def _select_item(self, item_id: str) -> Optional[dict]:
        result = (
            self.db.table(self.table)
            .select("*")
            .eq("id", item_id)
            .limit(1)
            .execute()
        )
        return result.data[0] if result.data else None

    def _select_drinks(self, restaurant_id: str) -> list[dict]:
        result = (
            self.db.table(self.table)
            .select("*")
            .eq("restaurant_id", restaurant_id)
            .eq("category", settings.drinks_category)
            .eq("is_available", True)
            .order("name")
            .execute()
        )
        return result.data or []

    async def fetch_enhanced_item(self, item_id: str) -> CatalogModel:
        try:
            row = await asyncio.to_thread(self._select_item, item_id)
        except Exception as e:
            logger.error("catalog_fetch_failed", item_id=item_id, error=str(e))
            raise CatalogLoadError(item_id, "Could not load menu item") from e

        if row is None:
            logger.warning("catalog_item_missing", item_id=item_id)
            raise CatalogLoadError(item_id, "Menu item not found")

        try:
            catalog = map_catalog_row(row)
        except (KeyError, TypeError, ValueError) as e:
            logger.error("catalog_row_invalid", item_id=item_id, error=str(e))
            raise CatalogLoadError(item_id, "Menu item data is invalid") from e

        logger.info(
            "catalog_fetched",
            item_id=item_id,
            variants=len(catalog.variants),
            pricing=len(catalog.pricing),
            supplements=len(catalog.supplements),
        )
        return catalog

    async def fetch_drinks(self, restaurant_id: Optional[str]) -> list[Drink]:
        if not restaurant_id:
            return []
        rows = await asyncio.to_thread(self._select_drinks, restaurant_id)
        drinks = [map_drink_row(r) for r in rows if r.get("id")]
        logger.info("drinks_fetched", restaurant_id=restaurant_id, count=len(drinks))
        return drinks


# Singleton instance
_catalog_service: Optional[CatalogService] = None


def get_catalog_service() -> CatalogService:
    """Get or create the catalog service singleton."""
    global _catalog_service
    if _catalog_service is None:
        _catalog_service = SupabaseCatalogService()
    return _catalog_service
