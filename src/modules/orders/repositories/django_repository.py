"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.  Methods
never open their own transaction: ``OrderService`` owns the unit of
work and every write here joins it.

Concurrency control on transitions uses ``select_for_update()`` on the
order row.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db.models import QuerySet

from modules.core.outbox import store_aggregate_events
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

ORDER_RELATIONS = ("items__product", "status_history", "refunds")


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    def create(self, data: Dict[str, Any], items: Iterable[Dict[str, Any]]) -> Order:
        order = Order(**data)
        order.save(force_insert=True)
        for item_data in items:
            OrderItem(
                order=order,
                product_id=item_data["product_id"],
                quantity=item_data["quantity"],
                unit_price=item_data["unit_price"],
            ).save()
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        ``prefetch_related`` loads items, items->product, status history
        and refunds in batched queries (no N+1).  Returns ``None`` for
        non-existent or invalid IDs.
        """
        try:
            return Order.objects.prefetch_related(*ORDER_RELATIONS).filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """List orders with optional ORM look-ups.

        Supported filter keys include ``status``, ``user_id`` and
        ``created_at__range``.
        """
        queryset = Order.objects.prefetch_related("items")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset.order_by("-created_at", "-id")

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        No ``select_related``: PostgreSQL refuses ``FOR UPDATE`` on the
        nullable side of an outer join.  Items are prefetched after the
        lock is taken.
        """
        try:
            return (
                Order.objects.select_for_update()
                .prefetch_related("items")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        return (
            Order.objects.prefetch_related(*ORDER_RELATIONS)
            .filter(idempotency_key=key)
            .first()
        )

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def save(self, entity: Order, update_fields: Optional[list[str]] = None) -> Order:
        """Persist an order and move its collected events to the outbox."""
        entity.save(update_fields=update_fields)
        event_count = store_aggregate_events(entity, topic="orders")
        logger.debug("order.saved", order_id=str(entity.id), event_count=event_count)
        return entity

    def flush_events(self, entity: Order) -> int:
        return store_aggregate_events(entity, topic="orders")

    def add_history(
        self,
        order_id: Any,
        new_status: str,
        old_status: Optional[str] = None,
        notes: str = "",
        changed_by_id: Any = None,
    ) -> OrderStatusHistory:
        return OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=new_status,
            notes=notes,
            changed_by_id=changed_by_id,
        )
