from __future__ import annotations

from datetime import date

import pytest
from freezegun import freeze_time

from modules.orders.exceptions import InvalidOrderNumber
from modules.orders.numbering import (
    generate_order_number,
    is_order_number,
    parse_order_number,
)

pytestmark = pytest.mark.unit


class TestGenerateOrderNumber:
    def test_format_with_explicit_date(self):
        assert generate_order_number(1, date(2024, 1, 15)) == "W-240115-00001"

    @freeze_time("2024-01-15 12:00:00")
    def test_uses_local_date_by_default(self):
        assert generate_order_number(42) == "W-240115-00042"

    @freeze_time("2024-01-16 02:30:00")
    def test_local_date_differs_from_utc_near_midnight(self):
        # 02:30 UTC is still the 15th in America/Santo_Domingo (UTC-4).
        assert generate_order_number(7) == "W-240115-00007"

    def test_id_wider_than_padding_is_not_truncated(self):
        assert generate_order_number(1234567, date(2024, 1, 15)) == "W-240115-1234567"

    def test_zero_id_is_accepted(self):
        assert generate_order_number(0, date(2024, 1, 15)) == "W-240115-00000"

    @pytest.mark.parametrize("bad", [-1, "12", 1.0, True, None])
    def test_rejects_non_integer_or_negative(self, bad):
        with pytest.raises(ValueError):
            generate_order_number(bad, date(2024, 1, 15))

    def test_prefix_and_width_follow_settings(self, settings):
        settings.ORDER_NUMBER_PREFIX = "SD"
        settings.ORDER_NUMBER_PAD_WIDTH = 7

        assert generate_order_number(5, date(2025, 12, 31)) == "SD-251231-0000005"

    def test_distinct_ids_give_distinct_numbers_on_same_day(self):
        day = date(2024, 3, 1)
        numbers = {generate_order_number(i, day) for i in range(1, 200)}
        assert len(numbers) == 199


class TestParseOrderNumber:
    @pytest.mark.parametrize("order_id", [0, 1, 99999, 100000, 987654321])
    def test_round_trip(self, order_id):
        number = generate_order_number(order_id, date(2024, 1, 15))
        assert parse_order_number(number) == order_id

    def test_accepts_lowercase_and_whitespace(self):
        assert parse_order_number("  w-240115-00012 ") == 12

    @pytest.mark.parametrize(
        "value",
        ["", "W240115-00001", "W-24015-00001", "W-240115-", "W-240115-abc", "123"],
    )
    def test_malformed_values_raise(self, value):
        with pytest.raises(InvalidOrderNumber):
            parse_order_number(value)

    def test_invalid_order_number_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_order_number("nope")

    def test_is_order_number(self):
        assert is_order_number("W-240115-00001")
        assert not is_order_number("42")
