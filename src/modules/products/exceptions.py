"""Product domain exceptions."""

from __future__ import annotations


class ProductNotFound(Exception):
    """The requested product does not exist or has been soft-deleted."""

    def __init__(self, product_id: object, message: str | None = None) -> None:
        self.product_id = product_id
        super().__init__(message or f"Product {product_id} not found.")
