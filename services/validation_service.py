"""
Validation engine.

A pure check run before any line item is emitted. Checks run in order and
the first failure wins:
    1. a variant is selected, or an order is already saved
    2. every selected variant has a size (LTO-regular items exempt)
    3. (optional) free drinks are picked when the selection grants some
"""

from config import settings
from models.catalog import CatalogModel, ItemKind
from models.configurator import ValidationReason, ValidationResult
from models.selection import SelectionState
from services.free_drink_service import required_free_drinks
from services.item_kind_service import is_size_required


NO_SELECTION_MESSAGE = "Please select a variant and size or save at least one order"
SIZE_REQUIRED_MESSAGE = "Please select a size for the selected variant"


def free_drinks_message(required: int) -> str:
    noun = "drink" if required == 1 else "drinks"
    return f"Please select your {required} complimentary {noun}"


def validate(
    state: SelectionState,
    catalog: CatalogModel,
    kind: ItemKind,
    check_free_drinks: bool = False,
    saved_count: int = 0,
) -> ValidationResult:
    """
    Validate a selection. Never mutates anything.

    Args:
        state: Current selection
        catalog: Item catalog
        kind: Item kind
        check_free_drinks: Enforce the free-drink quota
        saved_count: Orders already in the session buffer

    Returns:
        ValidationResult (ok, or the first failing reason)
    """
    clear_after = settings.validation_error_clear_seconds

    if not state.selected_variants and saved_count <= 0:
        return ValidationResult.failure(
            ValidationReason.NO_SELECTION,
            NO_SELECTION_MESSAGE,
            clear_after,
        )

    if is_size_required(kind):
        for variant_id in state.selected_variants:
            if variant_id not in state.pricing_per_variant:
                return ValidationResult.failure(
                    ValidationReason.SIZE_REQUIRED,
                    SIZE_REQUIRED_MESSAGE,
                    clear_after,
                )

    if check_free_drinks and state.selected_variants:
        required = required_free_drinks(state, catalog, kind)
        if required > 0 and state.assigned_free_drinks == 0:
            return ValidationResult.failure(
                ValidationReason.FREE_DRINKS_REQUIRED,
                free_drinks_message(required),
                clear_after,
                required_free_drinks=required,
            )

    return ValidationResult.success()
