"""Django ORM implementation of the Order repository.

Domain events collected on the ``Order`` aggregate are written to the
outbox by the same atomic write that persists the row: ``create``,
``save`` or ``update_fields``.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import QuerySet

from modules.core.models import OutboxEvent
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.numbering import generate_order_number
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "orders"


class OrderDjangoRepository(IOrderRepository):
    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(
        self,
        data: Dict[str, Any],
        on_created: Optional[Callable[[Order], None]] = None,
    ) -> Order:
        order = Order(**data)
        order.save()
        order.order_number = generate_order_number(order.id)
        order.save(update_fields=["order_number"])
        if on_created is not None:
            on_created(order)
        self._flush_events(order)
        logger.info(
            "order.header_created",
            order_id=order.id,
            order_number=order.order_number,
        )
        return order

    @transaction.atomic
    def add_items(self, order: Order, items: Iterable[Dict[str, Any]]) -> List[OrderItem]:
        created = OrderItem.objects.bulk_create(
            [
                OrderItem(
                    order=order,
                    product_id=item["product_id"],
                    quantity=item["quantity"],
                    price=item["price"],
                )
                for item in items
            ]
        )
        logger.info("order.items_created", order_id=order.id, item_count=len(created))
        return created

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def _base_queryset(self) -> QuerySet[Order]:
        return (
            Order.objects.alive()
            .select_related("user")
            .prefetch_related("items__product", "status_history")
        )

    def get_by_id(self, id: str) -> Optional[Order]:
        """Returns ``None`` for unknown, purged or malformed IDs."""
        try:
            return self._base_queryset().filter(id=id).first()
        except (ValueError, TypeError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        try:
            return Order.objects.alive().select_for_update().filter(id=id).first()
        except (ValueError, TypeError, ValidationError):
            return None

    def get_by_order_number(self, order_number: str) -> Optional[Order]:
        return self._base_queryset().filter(order_number=order_number).first()

    def get_items(self, order_id: int) -> List[OrderItem]:
        return list(OrderItem.objects.filter(order_id=order_id).order_by("created_at", "id"))

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Order]:
        """Supported filter keys are plain ORM look-ups, e.g. ``user_id``,
        ``customer_email__iexact``, ``status``."""
        queryset = self._base_queryset()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        entity.save()
        self._flush_events(entity)
        return entity

    @transaction.atomic
    def update_fields(self, order: Order, fields: Iterable[str]) -> Order:
        order.save(update_fields=list(fields))
        self._flush_events(order)
        return order

    @transaction.atomic
    def add_history(
        self,
        order_id: int,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        user: Any = None,
        stock_restored: bool = False,
    ) -> OrderStatusHistory:
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=status,
            notes=notes,
            user=user if getattr(user, "pk", None) else None,
            stock_restored=stock_restored,
        )
        logger.info(
            "order.history_added",
            order_id=order_id,
            old_status=old_status,
            new_status=status,
            stock_restored=stock_restored,
        )
        return history

    @transaction.atomic
    def delete(self, id: str) -> bool:
        order = self.get_by_id(id)
        if not order:
            return False
        order.delete()
        logger.info("order.soft_deleted", order_id=order.id)
        return True

    # ------------------------------------------------------------------
    # Outbox
    # ------------------------------------------------------------------

    def _flush_events(self, entity: Order) -> None:
        events = entity.domain_events
        for event in events:
            OutboxEvent.objects.create(
                event_type=event.event_name,
                aggregate_id=str(event.aggregate_id),
                payload=_serialize_event_payload(event),
                topic=OUTBOX_TOPIC,
            )
        entity.clear_domain_events()
        if events:
            logger.info(
                "order.events_recorded",
                order_id=entity.id,
                event_names=[e.event_name for e in events],
            )


def _serialize_event_payload(event: Any) -> Dict[str, Any]:
    return json.loads(json.dumps(_normalize_for_json(asdict(event))))


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value
