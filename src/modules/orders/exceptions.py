"""Order domain exceptions.

Raised by the service layer; the API views translate them into HTTP
responses.
"""

from __future__ import annotations

from typing import Optional

from modules.products.exceptions import ProductNotFound

__all__ = [
    "InsufficientStock",
    "InvalidOrderNumber",
    "InvalidOrderStatus",
    "OrderNotFound",
    "OrderValidationError",
    "PlacementTimeout",
    "ProductNotFound",
]


class OrderValidationError(Exception):
    """Client fault: the request is incomplete (no stock was touched)."""


class OrderNotFound(Exception):
    """The requested order does not exist or has been purged."""


class InvalidOrderStatus(Exception):
    """The requested status is not a recognised order status."""


class InvalidOrderNumber(ValueError):
    """A string does not follow the ``TAG-YYMMDD-NNNNN`` format."""


class PlacementTimeout(Exception):
    """Placement exceeded ``ORDER_PLACEMENT_TIMEOUT_SECONDS``."""


class InsufficientStock(Exception):
    """Not enough stock for one requested item.

    An expected business outcome: ``available`` lets the caller offer a
    reduced quantity.
    """

    def __init__(
        self,
        product_id: object,
        requested: int,
        available: Optional[int],
        product_name: str = "",
    ) -> None:
        self.product_id = product_id
        self.requested = requested
        self.available = available
        self.product_name = product_name
        label = product_name or str(product_id)
        super().__init__(
            f"Insufficient stock for {label}: requested {requested}, "
            f"available {available if available is not None else 0}."
        )
