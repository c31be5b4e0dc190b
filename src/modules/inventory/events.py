"""Domain events for the stock ledger."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class StockMovementRecorded(DomainEvent):
    """A manual movement (restock or correction) was appended to the ledger.

    ``aggregate_id`` is the product id.
    """
