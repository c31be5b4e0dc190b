"""Stock ledger service.

The ledger is the only source of stock levels.  Reads are point-in-time
aggregates over ``stock_movements``; nothing is cached.  Writes append
rows and never touch existing ones.

``record`` joins the caller's transaction (the order core calls it while
holding the product row locks).  ``record_manual`` is its own unit of work.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

import structlog

from modules.core.exceptions import DomainValidationError
from modules.core.outbox import store_events
from modules.core.transactions import atomic_with_retry
from modules.inventory.events import StockMovementRecorded
from modules.inventory.exceptions import InsufficientStock
from modules.inventory.models import MovementReason
from modules.products.exceptions import ProductNotFound

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.inventory.dtos import RecordStockMovementDTO
    from modules.inventory.models import StockMovement
    from modules.inventory.repositories.interfaces import IStockMovementRepository
    from modules.products.models import Product
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class StockLedgerService:
    """Application service for the append-only stock ledger."""

    def __init__(
        self,
        movement_repository: IStockMovementRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._movements = movement_repository
        self._products = product_repository

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def current_stock(self, product_id: Any) -> int:
        return self._movements.balance(product_id)

    def current_stock_many(self, product_ids: Iterable[Any]) -> Dict[Any, int]:
        return self._movements.balances(product_ids)

    def is_available(
        self,
        product: Product,
        requested_qty: int,
        *,
        current_stock: Optional[int] = None,
    ) -> bool:
        """True when *product* can be sold in *requested_qty* right now.

        Flags first: disabled or flagged out-of-stock products are never
        available.  Backorder-enabled products skip the balance check.
        Pass *current_stock* when the caller already holds the balance
        under lock.
        """
        if not product.is_sellable:
            return False
        if product.allow_sell_without_stock:
            return True
        if current_stock is None:
            current_stock = self.current_stock(product.id)
        return current_stock >= requested_qty

    def history(self, product_id: Optional[Any] = None) -> QuerySet:
        filters = {"product_id": product_id} if product_id else None
        return self._movements.list(filters)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def record(
        self,
        product_id: Any,
        delta_quantity: int,
        unit_cost: Decimal = Decimal("0"),
        *,
        reason: str = MovementReason.ADJUSTMENT,
        order_id: Any = None,
        note: str = "",
    ) -> StockMovement:
        """Append one movement inside the caller's transaction.

        Every movement, whether a sale, a restoration or a manual entry,
        is announced as ``StockMovementRecorded`` through the outbox.
        """
        if delta_quantity == 0:
            raise DomainValidationError(
                "delta_quantity must not be zero.", code="invalid_delta"
            )
        if unit_cost < 0:
            raise DomainValidationError(
                "unit_cost cannot be negative.", code="invalid_unit_cost"
            )
        movement = self._movements.append(
            product_id=product_id,
            delta_quantity=delta_quantity,
            unit_cost=unit_cost,
            reason=reason,
            order_id=order_id,
            note=note,
        )
        logger.info(
            "stock.recorded",
            product_id=str(product_id),
            delta_quantity=delta_quantity,
            reason=str(reason),
            order_id=str(order_id) if order_id else None,
        )
        store_events(
            [
                StockMovementRecorded(
                    aggregate_id=movement.product_id,
                    data={
                        "movement_id": str(movement.id),
                        "delta_quantity": movement.delta_quantity,
                        "unit_cost": str(movement.unit_cost),
                        "reason": movement.reason,
                        "order_id": str(order_id) if order_id else None,
                    },
                )
            ],
            topic="inventory",
        )
        return movement

    @atomic_with_retry
    def record_manual(self, dto: RecordStockMovementDTO) -> StockMovement:
        """Record a restock or correction under the product row lock.

        Raises:
            ProductNotFound: the product does not exist.
            InsufficientStock: a negative correction would take the
                balance below zero.
        """
        log = logger.bind(product_id=str(dto.product_id), reason=dto.reason)

        locked = self._products.lock_many([dto.product_id])
        if not locked:
            raise ProductNotFound(f"Product {dto.product_id} not found.")
        product = locked[0]

        if dto.delta_quantity < 0:
            balance = self.current_stock(product.id)
            if balance + dto.delta_quantity < 0:
                log.warning(
                    "stock.correction_rejected",
                    balance=balance,
                    delta_quantity=dto.delta_quantity,
                )
                raise InsufficientStock(
                    f"Product {product.sku}: correction of {dto.delta_quantity} "
                    f"exceeds current stock {balance}."
                )

        return self.record(
            product.id,
            dto.delta_quantity,
            dto.unit_cost,
            reason=dto.reason,
            note=dto.note,
        )
