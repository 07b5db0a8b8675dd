"""Human-readable order numbers: ``TAG-YYMMDD-NNNNN``.

The numeric suffix is the order's database identity, zero padded but
never truncated, which is what makes the number unique.  The date is
cosmetic.  Downstream tracking lookups parse this format, so it must not
change.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Optional

from django.conf import settings
from django.utils import timezone

from modules.orders.constants import ORDER_NUMBER_PATTERN
from modules.orders.exceptions import InvalidOrderNumber

_ORDER_NUMBER_RE = re.compile(ORDER_NUMBER_PATTERN)


def generate_order_number(order_id: int, today: Optional[date] = None) -> str:
    """Build the order number for ``order_id`` on ``today`` (local date).

    >>> generate_order_number(1, date(2024, 1, 15))
    'W-240115-00001'
    """
    if isinstance(order_id, bool) or not isinstance(order_id, int) or order_id < 0:
        raise ValueError(f"Order id must be a non-negative integer, got {order_id!r}.")
    day = today or timezone.localdate()
    prefix = settings.ORDER_NUMBER_PREFIX
    width = settings.ORDER_NUMBER_PAD_WIDTH
    return f"{prefix}-{day:%y%m%d}-{order_id:0{width}d}"


def parse_order_number(value: str) -> int:
    """Return the order id encoded in ``value``.

    Raises:
        InvalidOrderNumber: ``value`` is not a well-formed order number.
    """
    candidate = (value or "").strip().upper()
    if not _ORDER_NUMBER_RE.match(candidate):
        raise InvalidOrderNumber(f"'{value}' is not a valid order number.")
    return int(candidate.rsplit("-", 1)[1])


def is_order_number(value: str) -> bool:
    return bool(_ORDER_NUMBER_RE.match((value or "").strip().upper()))
