"""Stock ledger serializers."""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from modules.inventory.models import StockMovement


class RecordStockMovementSerializer(serializers.Serializer):
    """Validates the manual movement payload shape."""

    product_id = serializers.UUIDField()
    delta_quantity = serializers.IntegerField()
    unit_cost = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, default=Decimal("0.00")
    )
    reason = serializers.ChoiceField(
        choices=["RESTOCK", "ADJUSTMENT"], required=False, default="RESTOCK"
    )
    note = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=255
    )


class StockMovementSerializer(serializers.ModelSerializer):
    """Read serializer for ledger rows."""

    product_sku = serializers.CharField(source="product.sku", read_only=True)

    class Meta:
        model = StockMovement
        fields = [
            "id",
            "product_id",
            "product_sku",
            "delta_quantity",
            "unit_cost",
            "reason",
            "order_id",
            "note",
            "created_at",
        ]
        read_only_fields = fields
