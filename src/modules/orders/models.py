"""Order, OrderItem and OrderStatusHistory models.

- ``Order.id`` is a numeric identity because the public order number
  (``W-YYMMDD-NNNNN``) is derived from it.
- ``user`` is null for guest orders; the customer's name, email and phone
  are copied onto the order at placement time.
- ``OrderItem.price`` is a snapshot of the product price at placement, so
  later catalogue changes never alter historical orders.
- Orders are never hard-deleted by this service; administrative purge is
  a soft delete (``deleted_at``).
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel, SoftDeleteModel
from modules.orders.constants import INITIAL_STATUS, OrderStatus
from modules.orders.state_machine import is_stock_released
from shared.domain.events import DomainEventMixin


class Order(DomainEventMixin, SoftDeleteModel):
    id = models.BigAutoField(primary_key=True)
    order_number = models.CharField(
        max_length=32, unique=True, null=True, blank=True, editable=False
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=INITIAL_STATUS,
    )
    total = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    payment_method = models.CharField(max_length=30, default="cash")
    notes = models.TextField(blank=True, default="")

    customer_name = models.CharField(max_length=255, blank=True, default="")
    customer_email = models.EmailField(blank=True, default="", db_index=True)
    customer_phone = models.CharField(max_length=40, blank=True, default="")

    shipping_address = models.TextField(blank=True, default="")
    shipping_street = models.CharField(max_length=255, blank=True, default="")
    shipping_city = models.CharField(max_length=120, blank=True, default="")
    shipping_postal_code = models.CharField(max_length=20, blank=True, default="")
    shipping_sector = models.CharField(max_length=120, blank=True, default="")

    carrier = models.CharField(max_length=100, blank=True, default="")
    tracking_number = models.CharField(max_length=100, blank=True, default="")
    internal_notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "orders"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    @property
    def holds_stock(self) -> bool:
        """``False`` once stock has been credited back for this order."""
        return not is_stock_released(self.status)

    @property
    def full_shipping_address(self) -> str:
        parts = [self.shipping_street, self.shipping_sector, self.shipping_city]
        return ", ".join(p for p in parts if p) or self.shipping_address

    def __str__(self) -> str:
        return f"{self.order_number or self.pk} ({self.status})"


class OrderItem(BaseModel):
    """Immutable line item; ``price`` is captured when the order is placed."""

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    price = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        db_table = "order_items"
        ordering = ["created_at", "id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity

    def __str__(self) -> str:
        return f"{self.product_id} x{self.quantity} @ {self.price}"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for order status changes.

    ``user`` is ``None`` when the system made the change (e.g. a placement
    rollback).
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status = models.CharField(max_length=20, choices=OrderStatus.choices)
    stock_restored = models.BooleanField(default=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["order", "created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_id}: {self.old_status} -> {self.new_status}"
