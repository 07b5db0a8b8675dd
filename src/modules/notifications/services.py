"""Order confirmation notifications.

The placement flow treats notification as fire-and-forget: any exception
raised here, or a ``False`` result, is downgraded by the caller to a
warning on an otherwise successful order.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Mapping, Sequence

import structlog
from django.conf import settings
from django.core.mail import send_mail

if TYPE_CHECKING:
    from modules.orders.models import Order

logger = structlog.get_logger(__name__)


class INotificationService(ABC):
    @abstractmethod
    def send_order_confirmation(
        self,
        order: Order,
        items: Sequence[Any],
        customer: Mapping[str, str],
        shipping: Mapping[str, str],
    ) -> bool:
        """Notify the customer that ``order`` was placed.

        ``items`` expose ``name``, ``quantity`` and ``price``.  Returns
        ``False`` when the message could not be handed off.
        """


def format_currency(value: Decimal | int | float) -> str:
    return f"RD$ {Decimal(value):,.2f}"


def render_order_confirmation(
    order: Order,
    items: Sequence[Any],
    customer: Mapping[str, str],
    shipping: Mapping[str, str],
) -> tuple[str, str]:
    """Return ``(subject, body)`` for the confirmation email."""
    subject = f"Pedido {order.order_number} recibido"
    lines = [
        f"Hola {customer.get('name') or 'cliente'},",
        "",
        f"Hemos recibido tu pedido {order.order_number}.",
        "",
    ]
    for item in items:
        subtotal = Decimal(item.price) * item.quantity
        lines.append(
            f"  {item.quantity} x {item.name} @ {format_currency(item.price)}"
            f" = {format_currency(subtotal)}"
        )
    lines += [
        "",
        f"Total: {format_currency(order.total)}",
        f"Método de pago: {order.payment_method}",
    ]
    if shipping.get("address"):
        lines.append(f"Envío a: {shipping['address']}")
    if customer.get("phone"):
        lines.append(f"Teléfono de contacto: {customer['phone']}")
    return subject, "\n".join(lines)


class EmailNotificationService(INotificationService):
    """Sends confirmations through Django's configured email backend."""

    def send_order_confirmation(self, order, items, customer, shipping) -> bool:
        log = logger.bind(order_id=order.id, order_number=order.order_number)
        if not getattr(settings, "ORDER_NOTIFICATIONS_ENABLED", True):
            log.info("notification.disabled")
            return False

        recipient = (customer.get("email") or "").strip()
        if not recipient:
            log.warning("notification.no_recipient")
            return False

        subject, body = render_order_confirmation(order, items, customer, shipping)
        sent = send_mail(
            subject,
            body,
            settings.DEFAULT_FROM_EMAIL,
            [recipient],
            fail_silently=False,
        )
        log.info("notification.order_confirmation_sent", sent=sent)
        return sent > 0
