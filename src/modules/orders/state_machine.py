"""Order status classification.

Statuses are either *stock-held* (the order's items are subtracted from
stock) or *stock-released* (``cancelled``, ``return``, ``refund``).  Stock
is credited back only when an order moves from a held status into a
released one, which makes crediting idempotent across released-to-released
moves.  Moving out of a released status does not reserve again: the units
may already have been resold.
"""

from __future__ import annotations

from modules.orders.constants import STOCK_RELEASED_STATUSES, OrderStatus
from modules.orders.exceptions import InvalidOrderStatus

VALID_STATUSES: frozenset[str] = frozenset(OrderStatus.values)


def _plain(value: object) -> object:
    # Enum members hash by name, so compare on the raw value.
    return getattr(value, "value", value)


def is_valid_status(value: object) -> bool:
    return isinstance(value, str) and _plain(value) in VALID_STATUSES


def validate_status(value: object) -> OrderStatus:
    """Return ``value`` as an ``OrderStatus`` or raise ``InvalidOrderStatus``."""
    if not is_valid_status(value):
        raise InvalidOrderStatus(
            f"Invalid status {value!r}. Must be one of: "
            f"{', '.join(OrderStatus.values)}."
        )
    return OrderStatus(value)


def is_stock_released(status: str | None) -> bool:
    return _plain(status) in STOCK_RELEASED_STATUSES


def requires_stock_restoration(old_status: str | None, new_status: str) -> bool:
    """Whether moving ``old_status`` -> ``new_status`` must credit stock back."""
    return is_stock_released(new_status) and not is_stock_released(old_status)
