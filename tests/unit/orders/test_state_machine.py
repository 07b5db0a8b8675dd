from __future__ import annotations

import pytest

from modules.orders.constants import OrderStatus
from modules.orders.exceptions import InvalidOrderStatus
from modules.orders.state_machine import (
    is_stock_released,
    is_valid_status,
    requires_stock_restoration,
    validate_status,
)

pytestmark = pytest.mark.unit

HELD = [
    "pending_payment",
    "paid",
    "to_ship",
    "shipped",
    "delivered",
    "pending",
    "processing",
]
RELEASED = ["cancelled", "return", "refund"]


class TestValidation:
    @pytest.mark.parametrize("value", HELD + RELEASED)
    def test_known_statuses_are_valid(self, value):
        assert is_valid_status(value)
        assert validate_status(value) == OrderStatus(value)

    def test_enum_member_is_valid(self):
        assert is_valid_status(OrderStatus.SHIPPED)

    @pytest.mark.parametrize("value", ["", "CANCELLED", "lost", None, 3])
    def test_unknown_statuses_raise(self, value):
        assert not is_valid_status(value)
        with pytest.raises(InvalidOrderStatus):
            validate_status(value)


class TestStockClassification:
    @pytest.mark.parametrize("value", RELEASED)
    def test_released_statuses(self, value):
        assert is_stock_released(value)
        assert is_stock_released(OrderStatus(value))

    @pytest.mark.parametrize("value", HELD)
    def test_held_statuses(self, value):
        assert not is_stock_released(value)

    @pytest.mark.parametrize("old", HELD)
    @pytest.mark.parametrize("new", RELEASED)
    def test_held_to_released_restores(self, old, new):
        assert requires_stock_restoration(old, new)

    @pytest.mark.parametrize("old", RELEASED)
    @pytest.mark.parametrize("new", RELEASED)
    def test_released_to_released_does_not_restore(self, old, new):
        assert not requires_stock_restoration(old, new)

    @pytest.mark.parametrize("old", RELEASED)
    def test_released_to_held_does_not_restore(self, old):
        assert not requires_stock_restoration(old, "paid")

    def test_held_to_held_does_not_restore(self):
        assert not requires_stock_restoration("paid", "shipped")

    def test_enum_members_are_classified_like_strings(self):
        assert requires_stock_restoration(OrderStatus.PAID, OrderStatus.CANCELLED)
