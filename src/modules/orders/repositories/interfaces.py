"""Order repository interface.

Extends ``IRepository[Order]`` with methods required by the Order
aggregate: creation with items, row locking for transitions, status
history and idempotency-key look-up.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.models import Order, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children and
    OrderStatusHistory records.  Mutations must run inside the
    caller's transaction.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any], items: Iterable[Dict[str, Any]]) -> Order:
        """Insert the order header and its items.

        ``items`` are dicts with ``product_id``, ``quantity``, ``unit_price``.
        """

    @abstractmethod
    def save(self, entity: Order, update_fields: Optional[list[str]] = None) -> Order:
        """Persist changes and move collected domain events to the outbox."""

    @abstractmethod
    def flush_events(self, entity: Order) -> int:
        """Move collected domain events to the outbox without touching the row."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> "QuerySet[Order]":
        """List orders, newest first, with optional filters."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order holding its row lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def add_history(
        self,
        order_id: Any,
        new_status: str,
        old_status: Optional[str] = None,
        notes: str = "",
        changed_by_id: Any = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        """Retrieve an order by its idempotency key."""
