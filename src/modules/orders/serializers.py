"""Order DRF serializers for API input/output.

Input serializers only check the request shape.  Business preconditions
(shipping street and city, guest email) are enforced by ``OrderService``,
which receives Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.models import Order, OrderItem, OrderStatusHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class PlaceOrderItemSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class PlaceOrderSerializer(serializers.Serializer):
    """Placement payload for an authenticated user."""

    items = PlaceOrderItemSerializer(many=True, allow_empty=False)
    payment_method = serializers.CharField(
        required=False, allow_blank=True, max_length=30
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    shipping_address = serializers.CharField(required=False, allow_blank=True)
    shipping_street = serializers.CharField(required=False, allow_blank=True)
    shipping_city = serializers.CharField(required=False, allow_blank=True)
    shipping_postal_code = serializers.CharField(required=False, allow_blank=True)
    shipping_sector = serializers.CharField(required=False, allow_blank=True)
    customer_name = serializers.CharField(required=False, allow_blank=True)
    customer_email = serializers.EmailField(required=False, allow_blank=True)
    customer_phone = serializers.CharField(required=False, allow_blank=True)
    skip_notification = serializers.BooleanField(required=False, default=False)


class CustomerInfoSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True)
    email = serializers.EmailField()
    phone = serializers.CharField(required=False, allow_blank=True)


class GuestPlaceOrderSerializer(PlaceOrderSerializer):
    """Anonymous placement; contact data comes in ``customer_info``."""

    customer_name = None
    customer_email = None
    customer_phone = None
    customer_info = CustomerInfoSerializer()

    def to_placement_data(self) -> dict:
        data = dict(self.validated_data)
        info = data.pop("customer_info")
        data["customer_name"] = info.get("name", "")
        data["customer_email"] = info["email"]
        data["customer_phone"] = info.get("phone", "")
        return data


class OrderUpdateSerializer(serializers.Serializer):
    """Administrative update; unknown keys are ignored."""

    status = serializers.CharField(required=False)
    internal_notes = serializers.CharField(required=False, allow_blank=True)
    carrier = serializers.CharField(required=False, allow_blank=True)
    tracking_number = serializers.CharField(required=False, allow_blank=True)
    shipping_address = serializers.CharField(required=False, allow_blank=True)
    shipping_street = serializers.CharField(required=False, allow_blank=True)
    shipping_city = serializers.CharField(required=False, allow_blank=True)
    shipping_sector = serializers.CharField(required=False, allow_blank=True)
    shipping_postal_code = serializers.CharField(required=False, allow_blank=True)


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.CharField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    carrier = serializers.CharField(required=False, allow_blank=True)
    tracking_number = serializers.CharField(required=False, allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Line item with the price captured at placement."""

    product_name = serializers.CharField(source="product.name", read_only=True)
    subtotal = serializers.DecimalField(
        max_digits=12, decimal_places=2, read_only=True
    )

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "quantity",
            "price",
            "subtotal",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "stock_restored",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Customer-facing order with nested items and history."""

    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)
    full_shipping_address = serializers.CharField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "user_id",
            "status",
            "total",
            "payment_method",
            "notes",
            "customer_name",
            "customer_email",
            "customer_phone",
            "shipping_address",
            "shipping_street",
            "shipping_city",
            "shipping_postal_code",
            "shipping_sector",
            "full_shipping_address",
            "carrier",
            "tracking_number",
            "created_at",
            "updated_at",
            "items",
            "status_history",
        ]
        read_only_fields = fields


class AdminOrderSerializer(OrderSerializer):
    """Adds fields reserved to staff."""

    class Meta(OrderSerializer.Meta):
        fields = [*OrderSerializer.Meta.fields, "internal_notes"]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for the admin list (no nested relations)."""

    is_guest = serializers.BooleanField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "user_id",
            "is_guest",
            "status",
            "total",
            "payment_method",
            "customer_name",
            "customer_email",
            "created_at",
        ]
        read_only_fields = fields
