"""Refund serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.refunds.models import Refund


class RefundInputSerializer(serializers.Serializer):
    """Refund payload attached to a transition into REFUNDED.

    Range and blank-reason checks belong to the order state machine so
    that every caller gets the same typed error.
    """

    amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True
    )
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class RefundSerializer(serializers.ModelSerializer):
    class Meta:
        model = Refund
        fields = ["id", "amount", "reason", "created_at"]
        read_only_fields = fields
