"""Event handlers for Orders domain events."""

from __future__ import annotations

import structlog

from modules.orders.events import (
    OrderCreated,
    OrderPlacementRolledBack,
    OrderStatusChanged,
    OrderStockReleased,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info(
            "order.event.created",
            order_id=event.aggregate_id,
            order_number=event.order_number,
            total=event.total,
        )


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.event.status_changed",
            order_id=event.aggregate_id,
            old_status=event.old_status,
            new_status=event.new_status,
        )


class OrderStockReleasedHandler(IEventHandler[OrderStockReleased]):
    def handle(self, event: OrderStockReleased) -> None:
        log = logger.bind(order_id=event.aggregate_id, new_status=event.new_status)
        if event.failed_product_ids:
            # Needs manual reconciliation of the listed products.
            log.warning(
                "order.event.stock_release_incomplete",
                failed_product_ids=event.failed_product_ids,
            )
            return
        log.info("order.event.stock_released")


class OrderPlacementRolledBackHandler(IEventHandler[OrderPlacementRolledBack]):
    def handle(self, event: OrderPlacementRolledBack) -> None:
        logger.warning(
            "order.event.placement_rolled_back",
            order_id=event.aggregate_id,
            reason=event.reason,
        )


order_created_handler = OrderCreatedHandler()
order_status_changed_handler = OrderStatusChangedHandler()
order_stock_released_handler = OrderStockReleasedHandler()
order_placement_rolled_back_handler = OrderPlacementRolledBackHandler()
