"""Product DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.products.models import Product


class CreateProductSerializer(serializers.Serializer):
    sku = serializers.CharField(max_length=64)
    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, default="", allow_blank=True)
    price = serializers.DecimalField(max_digits=10, decimal_places=2)
    disabled = serializers.BooleanField(required=False, default=False)
    out_of_stock = serializers.BooleanField(required=False, default=False)
    allow_sell_without_stock = serializers.BooleanField(required=False, default=False)
    initial_stock = serializers.IntegerField(required=False, default=0)
    initial_unit_cost = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False
    )


class UpdateProductSerializer(serializers.Serializer):
    """Partial update: price, description and flags only."""

    name = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False)
    disabled = serializers.BooleanField(required=False)
    out_of_stock = serializers.BooleanField(required=False)
    allow_sell_without_stock = serializers.BooleanField(required=False)


class ProductSerializer(serializers.ModelSerializer):
    """Read serializer; ``current_stock`` comes from the ledger annotation."""

    current_stock = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Product
        fields = [
            "id",
            "sku",
            "name",
            "description",
            "price",
            "disabled",
            "out_of_stock",
            "allow_sell_without_stock",
            "current_stock",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
