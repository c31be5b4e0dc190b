"""Refund repository interface (insert and read only)."""

from __future__ import annotations

from abc import abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.refunds.models import Refund


class IRefundRepository(IRepository["Refund"]):
    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> "QuerySet[Refund]":
        """List refunds, newest first."""

    @abstractmethod
    def record(self, *, order_id: Any, amount: Decimal, reason: str) -> Refund:
        """Insert one refund row."""

    @abstractmethod
    def list_for_order(self, order_id: Any) -> List[Refund]:
        """Refunds of one order, newest first."""
