"""
Business logic services.

The selection engine (kinds, pack slots, free drinks, validation, reducers,
compiler, reconciler) is pure functions; catalog, cart and configurator
sessions are services with singleton getters.
"""

from services.catalog_service import CatalogService, SupabaseCatalogService, get_catalog_service
from services.cart_service import CartService, get_cart_service
from services.configurator_service import (
    ConfiguratorService,
    ConfiguratorSession,
    get_configurator_service,
)
from services.item_kind_service import resolve_item_kind, is_size_required
from services.pack_option_service import PackSlots, parse_pack_description, resolve_slots
from services.free_drink_service import required_free_drinks
from services.validation_service import validate
from services.selection_service import apply_action
from services.cart_compiler_service import compile_selection
from services.edit_reconciler_service import reconcile

__all__ = [
    "CatalogService",
    "SupabaseCatalogService",
    "get_catalog_service",
    "CartService",
    "get_cart_service",
    "ConfiguratorService",
    "ConfiguratorSession",
    "get_configurator_service",
    "resolve_item_kind",
    "is_size_required",
    "PackSlots",
    "parse_pack_description",
    "resolve_slots",
    "required_free_drinks",
    "validate",
    "apply_action",
    "compile_selection",
    "reconcile",
]
