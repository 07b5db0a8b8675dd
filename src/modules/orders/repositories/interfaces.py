"""Order repository interface.

The placement orchestrator persists an order in separate steps (header,
items, history) so that a fault between them leaves an auditable header
it can cancel.  Each method is atomic on its own; none of them spans the
whole placement.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.models import Order, OrderItem, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    @abstractmethod
    def create(
        self,
        data: Dict[str, Any],
        on_created: Optional[Callable[[Order], None]] = None,
    ) -> Order:
        """Insert the order header and assign its order number.

        The header starts in the initial status; the number is derived
        from the new identity in the same atomic block.  ``on_created``
        runs once the number is set, and any domain events it registers
        on the order are written in that block too.
        """

    @abstractmethod
    def add_items(self, order: Order, items: Iterable[Dict[str, Any]]) -> List[OrderItem]:
        """Bulk insert items (``product_id``, ``quantity``, ``price``)."""

    @abstractmethod
    def get_items(self, order_id: int) -> List[OrderItem]:
        """Every item of the order, the unit of stock restoration."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve and row-lock an order; callers must be in a transaction."""

    @abstractmethod
    def get_by_order_number(self, order_number: str) -> Optional[Order]:
        """Retrieve an order by its public order number."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Order]:
        """Live orders with items prefetched, optionally filtered."""

    @abstractmethod
    def update_fields(self, order: Order, fields: Iterable[str]) -> Order:
        """Persist the named fields plus any pending domain events."""

    @abstractmethod
    def add_history(
        self,
        order_id: int,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        user: Any = None,
        stock_restored: bool = False,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def delete(self, id: str) -> bool:
        """Soft-delete (administrative purge); ``False`` when absent."""
