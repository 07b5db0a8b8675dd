"""Stock Ledger: the only writer of ``Product.stock``.

``reserve`` is a single conditional UPDATE (decrement only where
``stock >= quantity``), so two concurrent reservations can never both
succeed against stock that only covers one of them.  ``release`` is an
unconditional increment.  Neither reads the counter into Python first.

Each call runs in its own ``transaction.atomic()`` block: callers that
catch a ledger fault (e.g. the placement rollback) keep a usable
connection.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F

from modules.products.exceptions import ProductNotFound
from modules.products.models import Product

logger = structlog.get_logger(__name__)


class IStockLedger(ABC):
    """Atomic per-product stock primitives."""

    @abstractmethod
    def reserve(self, product_id: UUID | str, quantity: int) -> bool:
        """Decrement stock by ``quantity`` if available.

        Returns ``False`` (not an error) when stock is insufficient.
        """

    @abstractmethod
    def release(self, product_id: UUID | str, quantity: int) -> bool:
        """Increment stock by ``quantity``.

        Must be called exactly once per unit previously reserved.

        Raises:
            ProductNotFound: no product row matched ``product_id``.
        """

    @abstractmethod
    def available(self, product_id: UUID | str) -> Optional[int]:
        """Current counter value, ``None`` for unknown products."""


def _check_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValueError(f"Quantity must be a positive integer, got {quantity!r}.")


class StockLedger(IStockLedger):
    """Ledger backed by conditional ``UPDATE`` statements on ``products``."""

    def reserve(self, product_id: UUID | str, quantity: int) -> bool:
        _check_quantity(quantity)
        try:
            with transaction.atomic():
                updated = Product.objects.filter(
                    id=product_id, stock__gte=quantity
                ).update(stock=F("stock") - quantity)
        except (ValueError, ValidationError):
            updated = 0

        log = logger.bind(product_id=str(product_id), quantity=quantity)
        if updated == 1:
            log.info("stock.reserved")
            return True
        log.info("stock.reserve_rejected")
        return False

    def release(self, product_id: UUID | str, quantity: int) -> bool:
        _check_quantity(quantity)
        log = logger.bind(product_id=str(product_id), quantity=quantity)
        try:
            with transaction.atomic():
                updated = Product.objects.filter(id=product_id).update(
                    stock=F("stock") + quantity
                )
        except (ValueError, ValidationError):
            updated = 0

        if updated != 1:
            log.error("stock.release_failed", reason="product_not_found")
            raise ProductNotFound(product_id)
        log.info("stock.released")
        return True

    def available(self, product_id: UUID | str) -> Optional[int]:
        try:
            return (
                Product.objects.filter(id=product_id)
                .values_list("stock", flat=True)
                .first()
            )
        except (ValueError, ValidationError):
            return None
