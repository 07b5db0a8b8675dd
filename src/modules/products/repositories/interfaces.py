"""Product repository interface (read side used by order placement)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate.

    ``get_by_id`` must skip soft-deleted rows and return ``None`` for
    malformed identifiers.
    """
