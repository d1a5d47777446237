"""
Cart API routes.
"""

from fastapi import APIRouter

from models.cart import CartLineItem
from services.cart_service import get_cart_service
from routes.configurator import handle_error

router = APIRouter(prefix="/api/cart", tags=["Cart"])


@router.get("", response_model=list[CartLineItem])
def list_cart():
    """List committed cart lines in insertion order."""
    try:
        return get_cart_service().items
    except Exception as e:
        return handle_error(e)


@router.get("/{line_id}", response_model=CartLineItem)
def get_cart_line(line_id: str):
    try:
        return get_cart_service().get(line_id)
    except Exception as e:
        return handle_error(e)


@router.delete("/{line_id}", status_code=204)
def remove_cart_line(line_id: str):
    """Remove one line from the cart."""
    try:
        get_cart_service().remove(line_id)
        return None
    except Exception as e:
        return handle_error(e)
