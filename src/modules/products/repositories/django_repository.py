"""Django ORM implementation of the Product repository.

Null Object style: look-ups return ``None`` instead of raising, and the
service layer decides how to report a missing product.
"""

from __future__ import annotations

from typing import Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    def get_by_id(self, id: str) -> Optional[Product]:
        try:
            return Product.objects.alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    @transaction.atomic
    def save(self, entity: Product) -> Product:
        """Persist catalogue fields.

        ``stock`` is excluded on updates so a stale instance can never
        overwrite a counter moved by the ledger.
        """
        if entity._state.adding:
            entity.save()
        else:
            entity.save(
                update_fields=["name", "description", "category", "price", "deleted_at"]
            )
        logger.info("product.saved", product_id=str(entity.id))
        return entity
