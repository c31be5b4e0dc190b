"""Payment method repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.payments.models import PaymentMethod


class IPaymentMethodRepository(IRepository["PaymentMethod"]):
    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> "QuerySet[PaymentMethod]":
        """List payment methods with optional filters."""

    @abstractmethod
    def owns_payment_method(self, user_id: Any, ref: Any) -> bool:
        """True when payment method *ref* exists and belongs to *user_id*."""
