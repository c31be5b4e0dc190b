"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views) and checks
request shape only.  Business logic lives in the Service Layer, which
receives Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import OrderStatus, PaymentType
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.refunds.serializers import RefundInputSerializer, RefundSerializer

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderItemSerializer(serializers.Serializer):
    """A single line; quantity rules are enforced by the service."""

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField()


class ShippingAddressSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    address = serializers.CharField()
    phone = serializers.CharField(max_length=32)


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation request payload."""

    items = CreateOrderItemSerializer(many=True, allow_empty=True)
    shipping_address = ShippingAddressSerializer()
    payment_type = serializers.ChoiceField(choices=PaymentType.choices)
    payment_method_ref = serializers.UUIDField(required=False, allow_null=True)
    transaction_id = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=64
    )
    payment_screenshot_ref = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=255
    )
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class UpdateStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    refund = RefundInputSerializer(required=False, allow_null=True)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class OrderActionSerializer(serializers.Serializer):
    """Optional free-text note for cancel/return actions."""

    notes = serializers.CharField(required=False, default="", allow_blank=True)


class UpdatePaymentInfoSerializer(serializers.Serializer):
    transaction_id = serializers.CharField(
        required=False, allow_blank=True, max_length=64
    )
    payment_screenshot_ref = serializers.CharField(
        required=False, allow_blank=True, max_length=255
    )


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items with product snapshot."""

    product_name = serializers.CharField(source="product.name", read_only=True)
    product_sku = serializers.CharField(source="product.sku", read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "product_sku",
            "quantity",
            "unit_price",
            "subtotal",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    """Read serializer for order status history records."""

    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "notes",
            "changed_by_id",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items, history and refunds."""

    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)
    refunds = RefundSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "user_id",
            "status",
            "payment_type",
            "payment_method_id",
            "total_amount",
            "transaction_id",
            "payment_screenshot_ref",
            "shipping_address",
            "notes",
            "created_at",
            "updated_at",
            "items",
            "status_history",
            "refunds",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "user_id",
            "status",
            "payment_type",
            "total_amount",
            "transaction_id",
            "item_count",
            "created_at",
        ]
        read_only_fields = fields

    def get_item_count(self, obj: Order) -> int:
        return len(obj.items.all())
