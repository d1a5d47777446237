"""
Configurator API routes.

A session is one open configurator for one menu item. Validation failures
are returned in the body (200 with ok=false); only API misuse and backend
failures produce error status codes.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
import structlog

from models.cart import CartLineItem
from models.configurator import (
    ActionRequest,
    ConfirmResponse,
    OpenSessionRequest,
    SessionResponse,
    ValidationResult,
)
from services.cart_service import get_cart_service
from services.configurator_service import get_configurator_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/configurator", tags=["Configurator"])


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# SESSIONS
# ===================

@router.post("/sessions", response_model=SessionResponse, status_code=201)
async def open_session(data: OpenSessionRequest):
    """
    Open a configurator session.

    With edit_line_id the session starts from that cart line.
    A catalog failure still returns the session, in load_failed status.
    """
    try:
        existing = get_cart_service().get(data.edit_line_id) if data.edit_line_id else None
        service = get_configurator_service()
        session = await service.open(
            data.item_id,
            restaurant_id=data.restaurant_id,
            existing_line=existing,
            preselected_variant_name=data.preselected_variant_name,
        )
        return service.snapshot(session.session_id)
    except Exception as e:
        return handle_error(e)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
def get_session(session_id: str):
    """Get the current state of a session."""
    try:
        return get_configurator_service().snapshot(session_id)
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/retry", response_model=SessionResponse)
async def retry_load(session_id: str):
    """Retry loading the catalog after a failure."""
    try:
        service = get_configurator_service()
        await service.retry_load(session_id)
        return service.snapshot(session_id)
    except Exception as e:
        return handle_error(e)


@router.delete("/sessions/{session_id}", status_code=204)
def close_session(session_id: str):
    """Close a session, discarding its selection and saved orders."""
    try:
        get_configurator_service().close(session_id)
        return None
    except Exception as e:
        return handle_error(e)


# ===================
# SELECTION
# ===================

@router.post("/sessions/{session_id}/actions", response_model=SessionResponse)
def apply_action(session_id: str, data: ActionRequest):
    """
    Apply one selection action.

    Returns the updated session.
    """
    try:
        service = get_configurator_service()
        service.dispatch(session_id, data.action)
        return service.snapshot(session_id)
    except Exception as e:
        return handle_error(e)


@router.get("/sessions/{session_id}/validation", response_model=ValidationResult)
def validate_session(
    session_id: str,
    check_free_drinks: bool = Query(True, description="Enforce the free-drink quota"),
):
    """Validate the current selection without changing anything."""
    try:
        return get_configurator_service().validate(session_id, check_free_drinks=check_free_drinks)
    except Exception as e:
        return handle_error(e)


# ===================
# SAVED ORDERS
# ===================

@router.post("/sessions/{session_id}/saved-orders", response_model=ValidationResult)
def save_and_add_another(session_id: str):
    """Save the current selection and start a new one in the same session."""
    try:
        return get_configurator_service().save_and_add_another(session_id)
    except Exception as e:
        return handle_error(e)


@router.delete("/sessions/{session_id}/saved-orders/{index}", response_model=SessionResponse)
def remove_saved_order(session_id: str, index: int):
    """Remove a saved order before confirming."""
    try:
        service = get_configurator_service()
        service.remove_saved_order(session_id, index)
        return service.snapshot(session_id)
    except Exception as e:
        return handle_error(e)


# ===================
# COMMIT
# ===================

@router.post("/sessions/{session_id}/preview", response_model=list[CartLineItem])
def preview(session_id: str):
    """Lines that confirm would add right now."""
    try:
        return get_configurator_service().preview(session_id)
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/confirm", response_model=ConfirmResponse)
def confirm(session_id: str):
    """
    Commit the session to the cart.

    ok=false carries the validation failure; nothing is added in that case.
    """
    try:
        return get_configurator_service().confirm(session_id)
    except Exception as e:
        return handle_error(e)
