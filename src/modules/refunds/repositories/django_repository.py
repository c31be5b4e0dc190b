"""Django ORM implementation of the refund repository."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.core.exceptions import ValidationError
from django.db.models import QuerySet

from modules.refunds.models import Refund
from modules.refunds.repositories.interfaces import IRefundRepository


class RefundDjangoRepository(IRefundRepository):
    def get_by_id(self, id: str) -> Optional[Refund]:
        try:
            return Refund.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        queryset = Refund.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def record(self, *, order_id: Any, amount: Decimal, reason: str) -> Refund:
        return Refund.objects.create(order_id=order_id, amount=amount, reason=reason)

    def list_for_order(self, order_id: Any) -> List[Refund]:
        return list(Refund.objects.filter(order_id=order_id))
