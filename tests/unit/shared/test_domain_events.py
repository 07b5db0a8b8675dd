"""Unit tests for domain events registration and the in-memory bus."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from unittest import mock

import pytest

from modules.orders.events import OrderCreated, OrderStockReleased
from modules.orders.models import Order
from modules.orders.repositories.django_repository import _serialize_event_payload
from shared.domain.events import DomainEvent
from shared.infrastructure.bus import InMemoryEventBus

pytestmark = pytest.mark.unit


def test_order_registers_and_clears_domain_events():
    order = Order(id=12, total=Decimal("0.00"))

    assert order.domain_events == []

    event = OrderCreated(aggregate_id=order.id, order_number="W-240115-00012")
    order.add_domain_event(event)

    assert order.domain_events == [event]
    assert event.event_name == "OrderCreated"
    assert event.aggregate_id == "12"

    order.clear_domain_events()
    assert order.domain_events == []


def test_events_are_registered_by_name():
    assert DomainEvent.registry["OrderCreated"] is OrderCreated
    assert DomainEvent.registry["OrderStockReleased"] is OrderStockReleased


def test_payload_round_trip():
    event = OrderStockReleased(
        aggregate_id=5, new_status="cancelled", failed_product_ids=["a", "b"]
    )

    payload = _serialize_event_payload(event)
    rebuilt = DomainEvent.from_payload("OrderStockReleased", payload)

    assert isinstance(payload["occurred_on"], str)
    assert rebuilt == event
    assert isinstance(rebuilt.occurred_on, datetime)


def test_from_payload_unknown_name():
    with pytest.raises(KeyError):
        DomainEvent.from_payload("Missing", {})


class TestInMemoryEventBus:
    def test_publish_dispatches_to_subscribers_of_that_type(self):
        bus = InMemoryEventBus()
        created_handler = mock.Mock()
        released_handler = mock.Mock()
        bus.subscribe(OrderCreated, created_handler)
        bus.subscribe(OrderStockReleased, released_handler)

        event = OrderCreated(aggregate_id="1")
        bus.publish(event)

        created_handler.handle.assert_called_once_with(event)
        released_handler.handle.assert_not_called()

    def test_subscribe_is_idempotent(self):
        bus = InMemoryEventBus()
        handler = mock.Mock()

        bus.subscribe(OrderCreated, handler)
        bus.subscribe(OrderCreated, handler)

        assert bus.handlers_for(OrderCreated) == [handler]

    def test_handler_errors_propagate(self):
        bus = InMemoryEventBus()
        handler = mock.Mock()
        handler.handle.side_effect = RuntimeError("boom")
        bus.subscribe(OrderCreated, handler)

        with pytest.raises(RuntimeError):
            bus.publish(OrderCreated(aggregate_id="1"))
