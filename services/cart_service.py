"""
Cart service: the authoritative store of committed cart lines.

Lines are immutable; editing a line replaces it (remove + append).
"""

from typing import Optional

import structlog

from exceptions import CartLineNotFoundError
from models.cart import CartLineItem

logger = structlog.get_logger(__name__)


class CartService:
    """In-memory cart, ordered by insertion."""

    def __init__(self):
        self._lines: list[CartLineItem] = []

    @property
    def items(self) -> list[CartLineItem]:
        return list(self._lines)

    def append(self, line: CartLineItem) -> CartLineItem:
        self._lines.append(line)
        logger.info(
            "cart_line_added",
            line_id=line.line_id,
            item_id=line.item_id,
            quantity=line.quantity,
            total_price=str(line.total_price),
        )
        return line

    def get(self, line_id: str) -> CartLineItem:
        """
        Get a line by id.

        Raises:
            CartLineNotFoundError: If no line has this id
        """
        for line in self._lines:
            if line.line_id == line_id:
                return line
        raise CartLineNotFoundError(line_id)

    def remove(self, line_id: str) -> CartLineItem:
        line = self.get(line_id)
        self._lines.remove(line)
        logger.info("cart_line_removed", line_id=line_id, item_id=line.item_id)
        return line

    def clear(self) -> None:
        self._lines.clear()
        logger.info("cart_cleared")


# Singleton instance
_cart_service: Optional[CartService] = None


def get_cart_service() -> CartService:
    """Get or create the cart service singleton."""
    global _cart_service
    if _cart_service is None:
        _cart_service = CartService()
    return _cart_service
