"""Django ORM implementation of the Cart repository."""

from __future__ import annotations

import structlog
from django.db import transaction

from modules.carts.models import CartItem
from modules.carts.repositories.interfaces import ICartRepository

logger = structlog.get_logger(__name__)


class CartDjangoRepository(ICartRepository):
    @transaction.atomic
    def clear_for_user(self, user_id: int) -> int:
        deleted, _ = CartItem.objects.filter(user_id=user_id).delete()
        logger.info("cart.cleared", user_id=user_id, removed=deleted)
        return deleted
