"""Event handlers for Orders domain events.

Notification delivery is external; these handlers record that the
event reached the process so downstream hooks have a single place to
attach.
"""

from __future__ import annotations

import structlog

from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderRefunded,
    OrderStatusChanged,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info(
            "order.event.created",
            order_id=str(event.aggregate_id),
            total_amount=event.data.get("total_amount"),
        )


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.event.status_changed",
            order_id=str(event.aggregate_id),
            old_status=event.data.get("old_status"),
            new_status=event.data.get("new_status"),
        )


class OrderCancelledHandler(IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        logger.info("order.event.cancelled", order_id=str(event.aggregate_id))


class OrderRefundedHandler(IEventHandler[OrderRefunded]):
    def handle(self, event: OrderRefunded) -> None:
        logger.info(
            "order.event.refunded",
            order_id=str(event.aggregate_id),
            amount=event.data.get("amount"),
        )


order_created_handler = OrderCreatedHandler()
order_status_changed_handler = OrderStatusChangedHandler()
order_cancelled_handler = OrderCancelledHandler()
order_refunded_handler = OrderRefundedHandler()
