"""
Session-scoped values: the explicit context passed to every operation and
the buffer of saved-but-uncommitted orders.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from models.cart import CartLineItem
from models.catalog import CatalogModel, Drink, ItemKind
from models.selection import SelectionState


class SessionStatus(str, Enum):
    """Lifecycle of a configurator session."""
    LOADING = "loading"
    READY = "ready"
    LOAD_FAILED = "load_failed"
    CLOSED = "closed"


@dataclass(frozen=True)
class SessionContext:
    """
    Everything an operation needs besides the selection itself.

    Built once the catalog is loaded; replaced (never mutated) on refresh.
    """

    session_id: str
    catalog: CatalogModel
    kind: ItemKind
    drinks: tuple[Drink, ...] = ()
    is_edit: bool = False

    def drink(self, drink_id: str) -> Optional[Drink]:
        for d in self.drinks:
            if d.id == drink_id:
                return d
        return None


@dataclass
class SavedOrder:
    """A compiled line plus the selection it came from."""
    lines: list[CartLineItem]
    selection: SelectionState


@dataclass
class SavedOrderBuffer:
    """
    Ordered, pending line items of one session ("save and add another").

    Flushed on confirm, discarded on close. Never persisted.
    """

    orders: list[SavedOrder] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.orders)

    def append(self, lines: list[CartLineItem], selection: SelectionState) -> SavedOrder:
        order = SavedOrder(lines=list(lines), selection=selection.copy())
        self.orders.append(order)
        return order

    def remove(self, index: int) -> SavedOrder:
        """Remove a buffered order by position. Raises IndexError when out of range."""
        if index < 0 or index >= len(self.orders):
            raise IndexError(index)
        return self.orders.pop(index)

    def lines(self) -> list[CartLineItem]:
        """All buffered lines in save order."""
        return [line for order in self.orders for line in order.lines]

    def clear(self) -> None:
        self.orders.clear()
