"""Django ORM implementation of the stock movement repository."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from django.core.exceptions import ValidationError
from django.db.models import QuerySet, Sum

from modules.inventory.models import StockMovement
from modules.inventory.repositories.interfaces import IStockMovementRepository


class StockMovementDjangoRepository(IStockMovementRepository):
    """Concrete stock ledger repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[StockMovement]:
        try:
            return StockMovement.objects.select_related("product").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        queryset = StockMovement.objects.select_related("product")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset.order_by("-created_at", "-id")

    def append(
        self,
        *,
        product_id: Any,
        delta_quantity: int,
        unit_cost: Decimal,
        reason: str,
        order_id: Any = None,
        note: str = "",
    ) -> StockMovement:
        return StockMovement.objects.create(
            product_id=product_id,
            delta_quantity=delta_quantity,
            unit_cost=unit_cost,
            reason=reason,
            order_id=order_id,
            note=note,
        )

    def balance(self, product_id: Any) -> int:
        total = StockMovement.objects.filter(product_id=product_id).aggregate(
            total=Sum("delta_quantity")
        )["total"]
        return total or 0

    def balances(self, product_ids: Iterable[Any]) -> Dict[Any, int]:
        ids = list(product_ids)
        result: Dict[Any, int] = {pid: 0 for pid in ids}
        rows = (
            StockMovement.objects.filter(product_id__in=ids)
            .order_by()
            .values("product_id")
            .annotate(total=Sum("delta_quantity"))
        )
        for row in rows:
            result[row["product_id"]] = row["total"] or 0
        return result
