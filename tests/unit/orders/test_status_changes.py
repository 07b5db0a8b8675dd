"""Unit tests for ``OrderService.apply_status`` and ``update_order``.

Stock goes back exactly once: on the first move from a stock-held status
into ``cancelled``, ``return`` or ``refund``.
"""

from __future__ import annotations

from decimal import Decimal
from unittest import mock

import pytest

from modules.core.models import OutboxEvent
from modules.orders.constants import OrderStatus
from modules.orders.exceptions import (
    InvalidOrderStatus,
    OrderNotFound,
    OrderValidationError,
)
from modules.orders.models import OrderStatusHistory
from modules.products.exceptions import ProductNotFound
from modules.products.ledger import StockLedger

pytestmark = pytest.mark.unit


@pytest.fixture()
def placed(order_service, place_dto, product_a, product_b):
    """Order holding 2 x product_a (10 -> 8) and 1 x product_b (5 -> 4)."""
    return order_service.place_order(place_dto([(product_a, 2), (product_b, 1)])).order


def _stocks(*products):
    for product in products:
        product.refresh_from_db()
    return [p.stock for p in products]


class TestStockRestoration:
    def test_cancel_restores_stock(self, order_service, placed, product_a, product_b):
        result = order_service.apply_status(placed.id, "cancelled")

        assert result.stock_restored is True
        assert result.warnings == ()
        assert result.order.status == OrderStatus.CANCELLED
        assert _stocks(product_a, product_b) == [10, 5]

    def test_cancel_then_refund_restores_once(
        self, order_service, placed, product_a, product_b
    ):
        order_service.apply_status(placed.id, "cancelled")
        result = order_service.apply_status(placed.id, "refund")

        assert result.stock_restored is False
        assert _stocks(product_a, product_b) == [10, 5]

    @pytest.mark.parametrize("released", ["cancelled", "return", "refund"])
    def test_any_released_status_restores(
        self, order_service, placed, product_a, product_b, released
    ):
        order_service.apply_status(placed.id, released)

        assert _stocks(product_a, product_b) == [10, 5]

    def test_delivered_then_return(self, order_service, placed, product_a, product_b):
        order_service.apply_status(placed.id, "paid")
        order_service.apply_status(placed.id, "shipped")
        order_service.apply_status(placed.id, "delivered")
        assert _stocks(product_a, product_b) == [8, 4]

        result = order_service.apply_status(placed.id, "return")

        assert result.stock_restored is True
        assert _stocks(product_a, product_b) == [10, 5]

    def test_held_to_held_keeps_stock(self, order_service, placed, product_a):
        result = order_service.apply_status(placed.id, "to_ship")

        assert result.stock_restored is False
        assert _stocks(product_a) == [8]

    def test_reactivating_released_order_does_not_reserve(
        self, order_service, placed, product_a, product_b
    ):
        order_service.apply_status(placed.id, "cancelled")
        result = order_service.apply_status(placed.id, "paid")

        assert result.order.status == OrderStatus.PAID
        assert _stocks(product_a, product_b) == [10, 5]

        # No re-reservation on reactivation, so the next release credits again.
        order_service.apply_status(placed.id, "cancelled")
        assert _stocks(product_a, product_b) == [12, 6]

    def test_legacy_status_is_accepted(self, order_service, placed):
        result = order_service.apply_status(placed.id, "processing")
        assert result.order.status == OrderStatus.PROCESSING


class TestPartialReleaseFailure:
    def test_status_persisted_and_failures_reported(
        self, order_service, placed, product_a, product_b
    ):
        real_release = StockLedger.release

        def flaky_release(self, product_id, quantity):
            if product_id == product_a.id:
                raise ProductNotFound(product_id)
            return real_release(self, product_id, quantity)

        with mock.patch.object(StockLedger, "release", flaky_release):
            result = order_service.apply_status(placed.id, "cancelled")

        assert result.order.status == OrderStatus.CANCELLED
        assert result.stock_restored is True
        assert len(result.warnings) == 1
        assert str(product_a.id) in result.warnings[0]
        assert _stocks(product_a, product_b) == [8, 5]

        event = OutboxEvent.objects.get(
            event_type="OrderStockReleased", aggregate_id=str(placed.id)
        )
        assert event.payload["failed_product_ids"] == [str(product_a.id)]


class TestHistoryAndEvents:
    def test_history_records_change(self, order_service, placed, admin_user):
        order_service.apply_status(
            placed.id, "shipped", notes="Sent with courier", user=admin_user
        )

        entry = OrderStatusHistory.objects.filter(order=placed).last()
        assert entry.old_status == OrderStatus.PENDING_PAYMENT
        assert entry.new_status == OrderStatus.SHIPPED
        assert entry.notes == "Sent with courier"
        assert entry.user == admin_user
        assert entry.stock_restored is False

    def test_cancel_history_flags_restoration(self, order_service, placed):
        order_service.apply_status(placed.id, "cancelled")

        entry = OrderStatusHistory.objects.filter(order=placed).last()
        assert entry.stock_restored is True

    def test_same_status_writes_no_history(self, order_service, placed):
        before = OrderStatusHistory.objects.filter(order=placed).count()

        order_service.apply_status(placed.id, "pending_payment")

        assert OrderStatusHistory.objects.filter(order=placed).count() == before

    def test_status_change_event_written(self, order_service, placed):
        order_service.apply_status(placed.id, "paid")

        event = OutboxEvent.objects.get(event_type="OrderStatusChanged")
        assert event.payload["old_status"] == "pending_payment"
        assert event.payload["new_status"] == "paid"

    def test_carrier_and_tracking_saved_with_status(self, order_service, placed):
        result = order_service.apply_status(
            placed.id, "shipped", carrier="DHL", tracking_number="TRK-1"
        )

        assert result.order.carrier == "DHL"
        assert result.order.tracking_number == "TRK-1"


class TestErrors:
    def test_invalid_status(self, order_service, placed, product_a):
        with pytest.raises(InvalidOrderStatus):
            order_service.apply_status(placed.id, "lost")
        assert _stocks(product_a) == [8]

    def test_unknown_order(self, order_service):
        with pytest.raises(OrderNotFound):
            order_service.apply_status(999999, "paid")

    def test_malformed_order_id(self, order_service):
        with pytest.raises(OrderNotFound):
            order_service.apply_status("abc", "paid")

    def test_unknown_field_rejected(self, order_service, placed):
        with pytest.raises(OrderValidationError):
            order_service.apply_status(placed.id, "paid", total="0.00")


class TestUpdateOrder:
    def test_updates_allowed_fields_only(self, order_service, placed):
        result = order_service.update_order(
            placed.id,
            {"internal_notes": "VIP", "total": "1.00", "shipping_city": "Santiago"},
        )

        order = result.order
        assert order.internal_notes == "VIP"
        assert order.shipping_city == "Santiago"
        assert order.total == Decimal("1025.50")

    def test_status_goes_through_state_machine(
        self, order_service, placed, product_a, product_b
    ):
        result = order_service.update_order(
            placed.id, {"status": "cancelled", "carrier": "Caribe Express"}
        )

        assert result.stock_restored is True
        assert result.order.carrier == "Caribe Express"
        assert _stocks(product_a, product_b) == [10, 5]

    def test_nothing_to_update(self, order_service, placed):
        with pytest.raises(OrderValidationError):
            order_service.update_order(placed.id, {"total": "0"})

    def test_unknown_order(self, order_service):
        with pytest.raises(OrderNotFound):
            order_service.update_order(424242, {"carrier": "DHL"})


class TestQueries:
    def test_track_by_id_and_number(self, order_service, placed):
        assert order_service.track_order(str(placed.id)).id == placed.id
        assert order_service.track_order(placed.order_number).id == placed.id
        assert order_service.track_order(placed.order_number.lower()).id == placed.id

    @pytest.mark.parametrize("reference", ["W-000000-99999", "nonsense", ""])
    def test_track_unknown(self, order_service, placed, reference):
        with pytest.raises(OrderNotFound):
            order_service.track_order(reference)

    def test_list_by_email_is_case_insensitive(self, order_service, placed):
        assert list(order_service.list_orders_by_email(" GUEST@example.com ")) == [
            placed
        ]

    def test_delete_hides_order_without_touching_stock(
        self, order_service, placed, product_a
    ):
        order_service.delete_order(placed.id)

        with pytest.raises(OrderNotFound):
            order_service.get_order(placed.id)
        assert _stocks(product_a) == [8]

    def test_delete_unknown(self, order_service):
        with pytest.raises(OrderNotFound):
            order_service.delete_order(31337)
