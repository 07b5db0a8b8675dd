"""Shopping cart lines.

Cart editing happens in the storefront; this service only reads the
model to clear a user's cart once their order is placed.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from modules.core.models import BaseModel


class CartItem(BaseModel):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="cart_items",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.CASCADE,
        related_name="cart_items",
    )
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        db_table = "cart_items"
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "product"], name="cart_items_user_product_uniq"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.user_id}: {self.product_id} x{self.quantity}"
