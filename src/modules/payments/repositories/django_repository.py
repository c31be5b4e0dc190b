"""Django ORM implementation of the payment method repository."""

from __future__ import annotations

from typing import Any, Dict, Optional

from django.core.exceptions import ValidationError
from django.db.models import QuerySet

from modules.payments.models import PaymentMethod
from modules.payments.repositories.interfaces import IPaymentMethodRepository


class PaymentMethodDjangoRepository(IPaymentMethodRepository):
    def get_by_id(self, id: str) -> Optional[PaymentMethod]:
        try:
            return PaymentMethod.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        queryset = PaymentMethod.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def owns_payment_method(self, user_id: Any, ref: Any) -> bool:
        try:
            return PaymentMethod.objects.filter(id=ref, user_id=user_id).exists()
        except (ValueError, ValidationError):
            return False
