"""Order domain constants.

There is no transition table: any recognised status may be
set at any time so that administrators can correct mistakes.  What
matters is whether a status holds stock or has released it.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING_PAYMENT = "pending_payment", "Pendiente de pago"
    PAID = "paid", "Pagado"
    TO_SHIP = "to_ship", "Por enviar"
    SHIPPED = "shipped", "Enviado"
    DELIVERED = "delivered", "Entregado"
    RETURN = "return", "Devolución"
    REFUND = "refund", "Reembolso"
    CANCELLED = "cancelled", "Cancelado"
    # Legacy synonyms, still accepted from older clients.
    PENDING = "pending", "Pendiente (legado)"
    PROCESSING = "processing", "Procesando (legado)"


INITIAL_STATUS = OrderStatus.PENDING_PAYMENT

STOCK_RELEASED_STATUSES: frozenset[str] = frozenset(
    {
        OrderStatus.CANCELLED.value,
        OrderStatus.RETURN.value,
        OrderStatus.REFUND.value,
    }
)

LEGACY_STATUSES: frozenset[str] = frozenset(
    {OrderStatus.PENDING.value, OrderStatus.PROCESSING.value}
)

ADMIN_UPDATABLE_FIELDS: tuple[str, ...] = (
    "status",
    "internal_notes",
    "carrier",
    "tracking_number",
    "shipping_address",
    "shipping_street",
    "shipping_city",
    "shipping_sector",
    "shipping_postal_code",
)

ORDER_NUMBER_PATTERN = r"^[A-Z0-9]+-\d{6}-\d+$"
