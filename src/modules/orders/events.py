"""Domain events for the Orders bounded context.

``aggregate_id`` is the order id; ``data`` carries the fields a
consumer needs without reading the order back.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when an order is created."""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised on every status transition."""


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when an order enters CANCELED (stock already restored)."""


@dataclass(frozen=True)
class OrderRefunded(DomainEvent):
    """Raised when an order enters REFUNDED; ``data`` holds the refund."""
