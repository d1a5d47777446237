"""
Configurator request/response schemas and the validation verdict.
"""

from enum import Enum
from typing import Optional

from pydantic import Field

from models.actions import SelectionAction
from models.base import BaseSchema
from models.cart import CartLineItem, LineCustomizations
from models.catalog import ItemKind
from models.session import SessionStatus


class ValidationReason(str, Enum):
    """Why a selection cannot be committed yet."""
    NO_SELECTION = "no_selection"
    SIZE_REQUIRED = "size_required"
    FREE_DRINKS_REQUIRED = "free_drinks_required"


class ValidationResult(BaseSchema):
    """
    Verdict of the validation engine.

    A failure is a value, not an exception: callers show `message` inline
    and drop it after `clear_after_seconds` or on the next corrective action.
    """

    ok: bool = Field(..., description="True when the selection may be committed")
    reason: Optional[ValidationReason] = Field(None, description="First failing check")
    message: Optional[str] = Field(None, description="User-facing message")
    required_free_drinks: int = Field(0, ge=0, description="Entitlement when reason is free_drinks_required")
    clear_after_seconds: Optional[int] = Field(None, description="Display timeout for the message")

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls(ok=True)

    @classmethod
    def failure(
        cls,
        reason: ValidationReason,
        message: str,
        clear_after_seconds: int,
        required_free_drinks: int = 0,
    ) -> "ValidationResult":
        return cls(
            ok=False,
            reason=reason,
            message=message,
            required_free_drinks=required_free_drinks,
            clear_after_seconds=clear_after_seconds,
        )


class OpenSessionRequest(BaseSchema):
    """
    Open a configurator session.

    Pass edit_line_id to re-open an existing cart line for editing.
    """

    item_id: str = Field(..., min_length=1, description="Menu item UUID")
    restaurant_id: Optional[str] = Field(None, description="Restaurant UUID (for the drink list)")
    edit_line_id: Optional[str] = Field(None, description="Cart line being edited")
    preselected_variant_name: Optional[str] = Field(None, description="Variant of the tapped card (fresh sessions)")


class ActionRequest(BaseSchema):
    """One selection action, discriminated by its `type`."""
    action: SelectionAction


class SessionResponse(BaseSchema):
    """Snapshot of a session for the presentation layer."""

    session_id: str = Field(..., description="Session id")
    item_id: str = Field(..., description="Menu item UUID")
    status: SessionStatus = Field(..., description="Lifecycle status")
    item_kind: Optional[ItemKind] = Field(None, description="Known once the catalog is loaded")
    is_edit: bool = Field(False, description="True when editing an existing cart line")
    load_error: Optional[str] = Field(None, description="Why the catalog failed to load")
    selection: Optional[LineCustomizations] = Field(None, description="Current selection")
    required_free_drinks: int = Field(0, description="Current free-drink entitlement")
    eligible_free_drinks: list[str] = Field(default_factory=list, description="Drink ids that may be picked as free")
    saved_orders: list[CartLineItem] = Field(default_factory=list, description="Buffered lines")


class ConfirmResponse(BaseSchema):
    """
    Result of confirm: committed lines, or the validation failure.
    """

    ok: bool = Field(..., description="True when lines were added to the cart")
    lines: list[CartLineItem] = Field(default_factory=list, description="Lines appended to the cart")
    validation: Optional[ValidationResult] = Field(None, description="Failure when ok is false")
