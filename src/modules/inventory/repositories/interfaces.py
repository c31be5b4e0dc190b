"""Stock movement repository interface.

Insert and aggregate only: the ledger has no update or delete path.
"""

from __future__ import annotations

from abc import abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.inventory.models import StockMovement


class IStockMovementRepository(IRepository["StockMovement"]):
    """Repository contract for the append-only stock ledger."""

    @abstractmethod
    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[StockMovement]":
        """List movements, newest first."""

    @abstractmethod
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
        """Insert one movement."""

    @abstractmethod
    def balance(self, product_id: Any) -> int:
        """Sum of ``delta_quantity`` for one product (0 without movements)."""

    @abstractmethod
    def balances(self, product_ids: Iterable[Any]) -> Dict[Any, int]:
        """Balances for several products in one query; absent ids map to 0."""
