"""Stock ledger.

Inventory is an append-only list of signed quantity movements per
product; a product's stock is the sum of its ``delta_quantity`` values.
Rows are immutable (see ``ImmutableModel``): a wrong entry is fixed by
recording a compensating movement, never by editing or deleting.
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models

from modules.core.models import ImmutableModel


class MovementReason(models.TextChoices):
    RESTOCK = "RESTOCK", "Restock"
    ADJUSTMENT = "ADJUSTMENT", "Adjustment"
    SALE = "SALE", "Sale"
    CANCELLATION = "CANCELLATION", "Cancellation"
    RETURN = "RETURN", "Return"
    REFUND = "REFUND", "Refund"


class StockMovement(ImmutableModel):
    """One signed change to a product's stock.

    ``unit_cost`` is the purchase price for restocks; sales and
    restorations carry ``0``.  ``order`` names the order that caused the
    movement, when there is one.
    """

    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="stock_movements",
    )
    delta_quantity = models.IntegerField()
    unit_cost = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    reason = models.CharField(max_length=20, choices=MovementReason.choices)
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="stock_movements",
        null=True,
        blank=True,
    )
    note = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        db_table = "stock_movements"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(
                fields=["product", "created_at"],
                name="stock_mov_product_created_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(delta_quantity=0),
                name="stock_movements_delta_nonzero",
            ),
            models.CheckConstraint(
                condition=models.Q(unit_cost__gte=0),
                name="stock_movements_unit_cost_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.product_id} {self.delta_quantity:+d} ({self.reason})"
