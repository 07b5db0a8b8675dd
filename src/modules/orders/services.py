"""Order service layer (use cases).

Placement
---------
Stock is reserved item by item through the Stock Ledger's atomic
conditional decrement, in the order the caller supplied.  There is no
transaction spanning the whole request: if anything fails after the
first reservation (missing product, insufficient stock, timeout or a
persistence fault) every unit reserved so far is released again, and an
already persisted header is moved to ``cancelled`` so it stays auditable.
The original exception is then re-raised unchanged.

Notification and cart clearing run after the order is complete and are
best-effort: their failures are logged and never undo the placement.
With ``ORDER_NOTIFICATIONS_ENABLED`` off no confirmation is attempted and
no warning is reported.

Status changes
--------------
Any recognised status is accepted at any time.  Stock is credited back
exactly once, when an order moves from a stock-held status into a
stock-released one (``cancelled``, ``return``, ``refund``).  The new
status is persisted even if some releases fail; those failures are
logged with the product and quantity and returned as warnings.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction
from pydantic import ValidationError as PydanticValidationError

from modules.orders.constants import (
    ADMIN_UPDATABLE_FIELDS,
    INITIAL_STATUS,
    LEGACY_STATUSES,
    OrderStatus,
)
from modules.orders.dtos import GuestPlaceOrderDTO, PlaceOrderDTO
from modules.orders.events import (
    OrderCreated,
    OrderPlacementRolledBack,
    OrderStatusChanged,
    OrderStockReleased,
)
from modules.orders.exceptions import (
    InsufficientStock,
    OrderNotFound,
    OrderValidationError,
    PlacementTimeout,
    ProductNotFound,
)
from modules.orders.numbering import is_order_number
from modules.orders.state_machine import requires_stock_restoration, validate_status

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.carts.repositories.interfaces import ICartRepository
    from modules.notifications.services import INotificationService
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.ledger import IStockLedger
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)

NOTIFICATION_WARNING = "Order confirmation email could not be sent."


@dataclass(frozen=True)
class ReservedItem:
    """A line whose stock is currently reserved by an in-flight placement."""

    product_id: UUID
    name: str
    quantity: int
    price: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class PlacementResult:
    order: Order
    warnings: Tuple[str, ...] = ()


@dataclass(frozen=True)
class StatusChangeResult:
    order: Order
    old_status: Optional[str] = None
    stock_restored: bool = False
    warnings: Tuple[str, ...] = field(default_factory=tuple)


def build_place_order_dto(
    payload: Dict[str, Any], user_id: Optional[int] = None
) -> PlaceOrderDTO:
    """Build the placement DTO, guest or registered, from plain data.

    Shape errors are raised as ``OrderValidationError``.
    """
    dto_class = PlaceOrderDTO if user_id is not None else GuestPlaceOrderDTO
    try:
        return dto_class(**{**payload, "user_id": user_id})
    except PydanticValidationError as exc:
        messages = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        ]
        raise OrderValidationError("; ".join(messages)) from exc


class OrderService:
    """Application service for Order use-cases.

    Collaborators are injected through the constructor.  ``clock`` and
    ``timeout`` exist so the placement deadline can be controlled.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        stock_ledger: IStockLedger,
        cart_repository: Optional[ICartRepository] = None,
        notifier: Optional[INotificationService] = None,
        clock: Callable[[], float] = time.monotonic,
        timeout: Optional[float] = None,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._ledger = stock_ledger
        self._cart_repo = cart_repository
        self._notifier = notifier
        self._clock = clock
        self._timeout = timeout

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def place_order(self, dto: PlaceOrderDTO, user: Any = None) -> PlacementResult:
        """Reserve stock for every item and persist the order.

        ``user`` is the authenticated Django user, if any; it only feeds
        the customer identity fallback.

        Raises:
            OrderValidationError: missing items, street, city or guest email.
            ProductNotFound: an item references an unknown product.
            InsufficientStock: an item cannot be covered by current stock.
            PlacementTimeout: the deadline passed before the order was saved.
        """
        self._check_preconditions(dto)
        customer = self._resolve_customer(dto, user)

        log = logger.bind(
            user_id=dto.user_id,
            guest=dto.is_guest,
            item_count=len(dto.items),
        )
        log.info("order.placement_started")

        started = self._clock()
        reserved: List[ReservedItem] = []
        order: Optional[Order] = None

        try:
            for item in dto.items:
                self._check_deadline(started)
                product = self._product_repo.get_by_id(str(item.product_id))
                if product is None:
                    raise ProductNotFound(item.product_id)

                if not self._ledger.reserve(product.id, item.quantity):
                    raise InsufficientStock(
                        product_id=product.id,
                        requested=item.quantity,
                        available=self._ledger.available(product.id),
                        product_name=product.name,
                    )
                reserved.append(
                    ReservedItem(
                        product_id=product.id,
                        name=product.name,
                        quantity=item.quantity,
                        price=product.price,
                    )
                )

            self._check_deadline(started)
            total = sum((r.subtotal for r in reserved), Decimal("0.00"))
            order = self._order_repo.create(
                self._header_data(dto, customer, total),
                on_created=self._record_created,
            )
            self._order_repo.add_items(
                order,
                [
                    {
                        "product_id": r.product_id,
                        "quantity": r.quantity,
                        "price": r.price,
                    }
                    for r in reserved
                ],
            )
            self._order_repo.add_history(
                order_id=order.id,
                status=INITIAL_STATUS,
                notes="Order created",
                user=user,
            )
        except Exception as exc:
            self._roll_back_placement(reserved, order, exc)
            raise

        log = log.bind(order_id=order.id, order_number=order.order_number)
        log.info("order.placed", total=str(order.total))

        if dto.user_id is not None:
            self._clear_cart(dto.user_id)

        warnings: List[str] = []
        if not dto.skip_notification:
            warnings.extend(self._notify(order, reserved, customer))

        placed = self._order_repo.get_by_id(str(order.id)) or order
        return PlacementResult(order=placed, warnings=tuple(warnings))

    @staticmethod
    def _record_created(order: Order) -> None:
        order.add_domain_event(
            OrderCreated(
                aggregate_id=order.id,
                order_number=order.order_number,
                total=str(order.total),
            )
        )

    def _check_preconditions(self, dto: PlaceOrderDTO) -> None:
        if not dto.items:
            raise OrderValidationError("The order must contain at least one product.")
        if not dto.shipping_street or not dto.shipping_city:
            raise OrderValidationError(
                "A complete shipping address (street, city) is required."
            )
        if dto.is_guest and not dto.customer_email:
            raise OrderValidationError("Guest orders require a contact email.")

    def _resolve_customer(self, dto: PlaceOrderDTO, user: Any) -> Dict[str, str]:
        if dto.is_guest:
            name = dto.customer_name or settings.ORDER_GUEST_CUSTOMER_NAME
            email = dto.customer_email or ""
        else:
            fallback_name = ""
            if user is not None:
                fallback_name = user.get_full_name() or user.get_username()
            name = dto.customer_name or fallback_name
            email = dto.customer_email or getattr(user, "email", "") or ""
        return {
            "name": name,
            "email": email.strip().lower(),
            "phone": dto.customer_phone or "",
        }

    def _header_data(
        self, dto: PlaceOrderDTO, customer: Dict[str, str], total: Decimal
    ) -> Dict[str, Any]:
        return {
            "user_id": dto.user_id,
            "total": total,
            "status": INITIAL_STATUS,
            "payment_method": dto.payment_method
            or settings.ORDER_DEFAULT_PAYMENT_METHOD,
            "notes": dto.notes or "",
            "customer_name": customer["name"],
            "customer_email": customer["email"],
            "customer_phone": customer["phone"],
            "shipping_address": dto.notes
            or dto.shipping_address
            or dto.joined_shipping_address,
            "shipping_street": dto.shipping_street,
            "shipping_city": dto.shipping_city,
            "shipping_postal_code": dto.shipping_postal_code or "",
            "shipping_sector": dto.shipping_sector or "",
        }

    def _check_deadline(self, started: float) -> None:
        timeout = (
            self._timeout
            if self._timeout is not None
            else settings.ORDER_PLACEMENT_TIMEOUT_SECONDS
        )
        elapsed = self._clock() - started
        if elapsed > timeout:
            raise PlacementTimeout(
                f"Order placement exceeded {timeout}s (elapsed {elapsed:.2f}s)."
            )

    def _roll_back_placement(
        self,
        reserved: List[ReservedItem],
        order: Optional[Order],
        cause: Exception,
    ) -> None:
        """Release reserved stock and cancel a persisted header.

        Never raises: rollback faults are logged with enough context to
        reconcile by hand and the caller re-raises ``cause``.
        """
        expected = isinstance(cause, (InsufficientStock, ProductNotFound))
        log = logger.bind(
            order_id=getattr(order, "id", None),
            reason=type(cause).__name__,
            reserved_count=len(reserved),
        )
        if expected:
            log.info("order.placement_rejected", detail=str(cause))
        else:
            log.error("order.placement_failed", detail=str(cause))

        for item in reserved:
            try:
                self._ledger.release(item.product_id, item.quantity)
            except Exception as exc:
                log.error(
                    "order.rollback_release_failed",
                    product_id=str(item.product_id),
                    quantity=item.quantity,
                    error=str(exc),
                )

        if order is None:
            return

        try:
            old_status = order.status
            order.status = OrderStatus.CANCELLED
            order.add_domain_event(
                OrderPlacementRolledBack(
                    aggregate_id=order.id, reason=type(cause).__name__
                )
            )
            self._order_repo.update_fields(order, ["status"])
            self._order_repo.add_history(
                order_id=order.id,
                status=OrderStatus.CANCELLED,
                old_status=old_status,
                notes=f"Placement rolled back: {type(cause).__name__}",
            )
            log.warning("order.placement_cancelled")
        except Exception as exc:
            log.error("order.rollback_cancel_failed", error=str(exc))

    def _clear_cart(self, user_id: int) -> None:
        if self._cart_repo is None:
            return
        try:
            self._cart_repo.clear_for_user(user_id)
        except Exception as exc:
            logger.warning("order.cart_clear_failed", user_id=user_id, error=str(exc))

    def _notify(
        self, order: Order, items: List[ReservedItem], customer: Dict[str, str]
    ) -> List[str]:
        if self._notifier is None or not settings.ORDER_NOTIFICATIONS_ENABLED:
            return []
        log = logger.bind(order_id=order.id, order_number=order.order_number)
        try:
            sent = self._notifier.send_order_confirmation(
                order=order,
                items=items,
                customer=customer,
                shipping={"address": order.full_shipping_address},
            )
        except Exception as exc:
            log.warning("order.notification_failed", error=str(exc))
            return [NOTIFICATION_WARNING]
        if not sent:
            log.warning("order.notification_not_sent")
            return [NOTIFICATION_WARNING]
        return []

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    def apply_status(
        self,
        order_id: int | str,
        new_status: str,
        *,
        carrier: Optional[str] = None,
        tracking_number: Optional[str] = None,
        notes: str = "",
        user: Any = None,
        **fields: Any,
    ) -> StatusChangeResult:
        """Move an order to ``new_status``, restoring stock when owed.

        ``carrier``, ``tracking_number`` and any other administrative
        ``fields`` are persisted together with the status.  The
        order row is locked for the duration, so concurrent changes to the
        same order are serialized.

        Raises:
            InvalidOrderStatus: ``new_status`` is not recognised.
            OrderNotFound: the order does not exist.
        """
        status = validate_status(new_status)
        if carrier is not None:
            fields["carrier"] = carrier
        if tracking_number is not None:
            fields["tracking_number"] = tracking_number
        extra = self._filter_fields(fields)

        with transaction.atomic():
            order = self._order_repo.get_for_update(str(order_id))
            if order is None:
                raise OrderNotFound(f"Order {order_id} not found.")

            old_status = order.status
            log = logger.bind(
                order_id=order.id, old_status=old_status, new_status=status.value
            )
            if status.value in LEGACY_STATUSES:
                log.warning("order.legacy_status_used")

            restore = requires_stock_restoration(old_status, status)
            failed: List[str] = []
            if restore:
                failed = self._restore_stock(order, log)

            order.status = status
            for name, value in extra.items():
                setattr(order, name, value)

            if old_status != status:
                order.add_domain_event(
                    OrderStatusChanged(
                        aggregate_id=order.id,
                        old_status=old_status,
                        new_status=status.value,
                    )
                )
            if restore:
                order.add_domain_event(
                    OrderStockReleased(
                        aggregate_id=order.id,
                        new_status=status.value,
                        failed_product_ids=failed,
                    )
                )
            self._order_repo.update_fields(order, ["status", *extra])

            if old_status != status:
                self._order_repo.add_history(
                    order_id=order.id,
                    status=status,
                    old_status=old_status,
                    notes=notes,
                    user=user,
                    stock_restored=restore,
                )

        log.info("order.status_applied", stock_restored=restore, failed=len(failed))
        warnings = tuple(
            f"Stock could not be restored for product {product_id}."
            for product_id in failed
        )
        return StatusChangeResult(
            order=self._order_repo.get_by_id(str(order.id)) or order,
            old_status=old_status,
            stock_restored=restore,
            warnings=warnings,
        )

    def _restore_stock(self, order: Order, log: Any) -> List[str]:
        """Release every item; returns the product ids whose release failed."""
        failed: List[str] = []
        for item in self._order_repo.get_items(order.id):
            try:
                self._ledger.release(item.product_id, item.quantity)
            except Exception as exc:
                log.error(
                    "order.stock_restore_failed",
                    product_id=str(item.product_id),
                    quantity=item.quantity,
                    error=str(exc),
                )
                failed.append(str(item.product_id))
        return failed

    def update_order(
        self, order_id: int | str, updates: Dict[str, Any], user: Any = None
    ) -> StatusChangeResult:
        """Administrative update restricted to ``ADMIN_UPDATABLE_FIELDS``.

        A ``status`` key goes through :meth:`apply_status`.

        Raises:
            OrderValidationError: no updatable field was supplied.
        """
        filtered = {k: v for k, v in updates.items() if k in ADMIN_UPDATABLE_FIELDS}
        if not filtered:
            raise OrderValidationError("No valid fields were provided for update.")

        if "status" in filtered:
            status = filtered.pop("status")
            return self.apply_status(order_id, status, user=user, **filtered)

        with transaction.atomic():
            order = self._order_repo.get_for_update(str(order_id))
            if order is None:
                raise OrderNotFound(f"Order {order_id} not found.")
            for name, value in filtered.items():
                setattr(order, name, value)
            self._order_repo.update_fields(order, list(filtered))

        logger.info("order.updated", order_id=order.id, fields=sorted(filtered))
        return StatusChangeResult(
            order=self._order_repo.get_by_id(str(order.id)) or order,
            old_status=order.status,
        )

    @staticmethod
    def _filter_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
        unknown = set(fields) - set(ADMIN_UPDATABLE_FIELDS)
        if unknown or "status" in fields:
            raise OrderValidationError(
                f"Fields cannot be updated: {', '.join(sorted(unknown or {'status'}))}."
            )
        return {k: ("" if v is None else v) for k, v in fields.items()}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: int | str) -> Order:
        """Raises ``OrderNotFound`` for unknown, purged or malformed IDs."""
        order = self._order_repo.get_by_id(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def track_order(self, reference: str) -> Order:
        """Look an order up by numeric id or by order number."""
        reference = (reference or "").strip()
        if reference.isdigit():
            return self.get_order(reference)
        if is_order_number(reference):
            order = self._order_repo.get_by_order_number(reference.upper())
            if order:
                return order
        raise OrderNotFound(f"Order {reference} not found.")

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Order]:
        return self._order_repo.list(filters)

    def list_user_orders(self, user_id: int) -> QuerySet[Order]:
        return self._order_repo.list({"user_id": user_id})

    def list_orders_by_email(self, email: str) -> QuerySet[Order]:
        return self._order_repo.list(
            {"customer_email__iexact": (email or "").strip().lower()}
        )

    def delete_order(self, order_id: int | str) -> None:
        """Administrative purge (soft delete); stock is not touched."""
        if not self._order_repo.delete(str(order_id)):
            raise OrderNotFound(f"Order {order_id} not found.")
