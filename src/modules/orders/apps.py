from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"

    def ready(self) -> None:
        from modules.orders.events import (
            OrderCreated,
            OrderPlacementRolledBack,
            OrderStatusChanged,
            OrderStockReleased,
        )
        from modules.orders.handlers import (
            order_created_handler,
            order_placement_rolled_back_handler,
            order_status_changed_handler,
            order_stock_released_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(OrderCreated, order_created_handler)
        event_bus.subscribe(OrderStatusChanged, order_status_changed_handler)
        event_bus.subscribe(OrderStockReleased, order_stock_released_handler)
        event_bus.subscribe(
            OrderPlacementRolledBack, order_placement_rolled_back_handler
        )
