"""Refund ledger.

A refund row is written only by an order's transition into ``REFUNDED``
and is immutable afterwards.
"""

from __future__ import annotations

from django.db import models

from modules.core.models import ImmutableModel


class Refund(ImmutableModel):
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="refunds",
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    reason = models.TextField()

    class Meta:
        db_table = "refunds"
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="refunds_amount_positive",
            ),
            models.CheckConstraint(
                condition=~models.Q(reason=""),
                name="refunds_reason_not_empty",
            ),
        ]

    def __str__(self) -> str:
        return f"Refund {self.amount} for {self.order_id}"
