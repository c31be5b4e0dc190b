"""Event handlers for stock ledger events."""

from __future__ import annotations

import structlog

from modules.inventory.events import StockMovementRecorded
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class StockMovementRecordedHandler(IEventHandler[StockMovementRecorded]):
    def handle(self, event: StockMovementRecorded) -> None:
        logger.info(
            "stock.movement_event_received",
            product_id=str(event.aggregate_id),
            delta_quantity=event.data.get("delta_quantity"),
            reason=event.data.get("reason"),
        )


stock_movement_recorded_handler = StockMovementRecordedHandler()
