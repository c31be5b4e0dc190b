"""Order service layer (Use Cases).

``OrderService`` is the only entry point that creates orders or changes
their status.  Every command is one unit of work (``atomic_with_retry``):
the stock check, the order rows, the ledger movements, the refund row,
the history entry and the outbox events commit together or not at all.

Business rules enforced:
- Lines: at least one, positive quantities, no repeated product.
- Online transfers carry a payment method or a transaction id; a payment
  method must belong to the ordering user.
- Products are locked (SELECT FOR UPDATE, ascending id) before their
  ledger balance is read, so two orders cannot both take the last unit.
- Status changes follow ``modules.orders.state_machine``; its plan says
  which lines go back to the ledger and whether a refund is written.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Collection, Dict, List, Mapping, Optional

import structlog
from django.db import IntegrityError

from modules.core.exceptions import DomainValidationError, PersistenceError
from modules.core.transactions import atomic_with_retry
from modules.inventory.exceptions import InsufficientStock
from modules.inventory.models import MovementReason
from modules.orders.constants import (
    CUSTOMER_CANCELLABLE_STATES,
    INITIAL_STATUS,
    PAYMENT_EDITABLE_STATES,
    RETURNABLE_STATES,
    OrderStatus,
    PaymentType,
)
from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderRefunded,
    OrderStatusChanged,
)
from modules.orders.exceptions import (
    ForeignPaymentMethod,
    IdempotencyKeyConflict,
    InvalidLineItems,
    InvalidTransition,
    OrderNotFound,
    PaymentInfoNotEditable,
    PaymentInfoRequired,
)
from modules.orders.state_machine import plan_transition
from modules.products.exceptions import ProductNotFound, ProductUnavailable

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.inventory.services import StockLedgerService
    from modules.orders.dtos import CreateOrderDTO, UpdatePaymentInfoDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.payments.repositories.interfaces import IPaymentMethodRepository
    from modules.products.repositories.interfaces import IProductRepository
    from modules.refunds.models import Refund
    from modules.refunds.repositories.interfaces import IRefundRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CreateOrderResult:
    order: Order
    replayed: bool = False


def _is_staff(user: Any) -> bool:
    return bool(getattr(user, "is_staff", False))


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and the stock ledger via constructor
    injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        ledger: StockLedgerService,
        refund_repository: IRefundRepository,
        payment_method_repository: IPaymentMethodRepository,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._ledger = ledger
        self._refund_repo = refund_repository
        self._payment_repo = payment_method_repository

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_order(self, dto: CreateOrderDTO) -> CreateOrderResult:
        """Validate and place an order against available stock.

        Returns the stored order; ``replayed`` is ``True`` when the
        idempotency key matched an existing order and nothing was written.

        Raises:
            InvalidLineItems: empty order, non-positive quantity or a
                product listed twice.
            PaymentInfoRequired: online transfer without a payment method
                or transaction id.
            ForeignPaymentMethod: the payment method is not the user's.
            ProductNotFound: a product does not exist.
            ProductUnavailable: a product is disabled.
            InsufficientStock: a product cannot cover its line.
            ContentionError: lock wait exhausted its retries.
        """
        log = logger.bind(user_id=str(dto.user_id), payment_type=dto.payment_type)

        self._validate_lines(dto)
        self._validate_payment(dto)

        if dto.idempotency_key:
            existing = self._replay(dto)
            if existing is not None:
                log.info("order.idempotency_hit", order_id=str(existing.id))
                return CreateOrderResult(existing, replayed=True)

        try:
            result = self._place_order(dto)
        except IntegrityError as exc:
            # Lost a race on the idempotency key: the winner's order is the answer.
            existing = self._replay(dto) if dto.idempotency_key else None
            if existing is None:
                log.error("order.integrity_error", error=str(exc))
                raise PersistenceError("The order could not be stored.") from exc
            log.info("order.idempotency_race_resolved", order_id=str(existing.id))
            return CreateOrderResult(existing, replayed=True)

        if not result.replayed:
            log.info(
                "order.created",
                order_id=str(result.order.id),
                total_amount=str(result.order.total_amount),
                item_count=len(dto.items),
            )
        return CreateOrderResult(
            self._order_repo.get_by_id(str(result.order.id)) or result.order,
            replayed=result.replayed,
        )

    @atomic_with_retry
    def _place_order(self, dto: CreateOrderDTO) -> CreateOrderResult:
        requested = {item.product_id: item.quantity for item in dto.items}
        products = {p.id: p for p in self._product_repo.lock_many(requested)}

        # A concurrent request with the same key may have committed while
        # this one waited for the product locks.
        if dto.idempotency_key:
            existing = self._replay(dto)
            if existing is not None:
                return CreateOrderResult(existing, replayed=True)

        balances = self._ledger.current_stock_many(products)
        total = Decimal("0.00")
        lines: List[Dict[str, Any]] = []

        for item in dto.items:
            product = products.get(item.product_id)
            if product is None:
                raise ProductNotFound(f"Product {item.product_id} not found.")
            if product.disabled:
                raise ProductUnavailable(f"Product {product.sku} is not available.")
            available = balances.get(product.id, 0)
            if not self._ledger.is_available(
                product, item.quantity, current_stock=available
            ):
                logger.warning(
                    "order.insufficient_stock",
                    product_id=str(product.id),
                    requested=item.quantity,
                    available=available,
                    out_of_stock_flag=product.out_of_stock,
                )
                raise InsufficientStock(
                    f"Product {product.sku}: requested {item.quantity}, "
                    f"available {0 if product.out_of_stock else max(available, 0)}."
                )
            total += product.price * item.quantity
            lines.append(
                {
                    "product_id": product.id,
                    "quantity": item.quantity,
                    "unit_price": product.price,
                }
            )

        status = INITIAL_STATUS[dto.payment_type]
        order = self._order_repo.create(
            {
                "user_id": dto.user_id,
                "status": status,
                "payment_type": dto.payment_type,
                "payment_method_id": dto.payment_method_ref,
                "total_amount": total,
                "transaction_id": dto.transaction_id or "",
                "payment_screenshot_ref": dto.payment_screenshot_ref or "",
                "shipping_address": dto.shipping_address.model_dump(),
                "notes": dto.notes,
                "idempotency_key": dto.idempotency_key,
            },
            lines,
        )

        for line in lines:
            self._ledger.record(
                line["product_id"],
                -line["quantity"],
                Decimal("0"),
                reason=MovementReason.SALE,
                order_id=order.id,
            )

        self._order_repo.add_history(
            order.id,
            new_status=status,
            notes="Order created",
            changed_by_id=dto.user_id,
        )
        order.add_domain_event(
            OrderCreated(
                aggregate_id=order.id,
                data={
                    "user_id": str(dto.user_id),
                    "status": status,
                    "payment_type": dto.payment_type,
                    "total_amount": str(total),
                    "items": [
                        {"product_id": str(line["product_id"]), "quantity": line["quantity"]}
                        for line in lines
                    ],
                },
            )
        )
        self._order_repo.flush_events(order)
        return CreateOrderResult(order)

    def _replay(self, dto: CreateOrderDTO) -> Optional[Order]:
        existing = self._order_repo.get_by_idempotency_key(dto.idempotency_key)
        if existing is not None and str(existing.user_id) != str(dto.user_id):
            raise IdempotencyKeyConflict("Idempotency-Key already used.")
        return existing

    def _validate_lines(self, dto: CreateOrderDTO) -> None:
        if not dto.items:
            raise InvalidLineItems("An order needs at least one line item.")
        seen = set()
        for item in dto.items:
            if item.quantity <= 0:
                raise InvalidLineItems(
                    f"Quantity for product {item.product_id} must be at least 1."
                )
            if item.product_id in seen:
                raise InvalidLineItems(
                    f"Product {item.product_id} appears more than once."
                )
            seen.add(item.product_id)

    def _validate_payment(self, dto: CreateOrderDTO) -> None:
        if dto.payment_type not in PaymentType.values:
            raise DomainValidationError(
                f"Unknown payment type {dto.payment_type!r}.",
                code="invalid_payment_type",
            )
        if dto.payment_type == PaymentType.ONLINE_TRANSFER and not (
            dto.payment_method_ref or dto.transaction_id
        ):
            raise PaymentInfoRequired(
                "Online transfers need a payment method or a transaction id."
            )
        if dto.payment_method_ref and not self._payment_repo.owns_payment_method(
            dto.user_id, dto.payment_method_ref
        ):
            logger.warning(
                "order.foreign_payment_method",
                user_id=str(dto.user_id),
                payment_method_ref=str(dto.payment_method_ref),
            )
            raise ForeignPaymentMethod("The payment method does not belong to you.")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def update_status(
        self,
        order_id: Any,
        new_status: str,
        *,
        refund: Optional[Mapping[str, Any]] = None,
        notes: str = "",
        changed_by: Any = None,
    ) -> Order:
        """Move an order to *new_status* and apply every side effect.

        Raises:
            OrderNotFound: order does not exist.
            InvalidTransition: the edge is not in the transition table.
            RefundDataRequired / RefundAmountOutOfRange: bad refund payload
                when entering REFUNDED.
        """
        if new_status not in OrderStatus.values:
            raise DomainValidationError(
                f"Unknown order status {new_status!r}.", code="invalid_status"
            )
        self._transition(
            order_id, new_status, refund=refund, notes=notes, changed_by=changed_by
        )
        return self.get_order(order_id)

    def cancel_order(self, order_id: Any, user: Any, notes: str = "") -> Order:
        """Customer cancellation: own order, only while PENDING or PROCESSING."""
        self._transition(
            order_id,
            OrderStatus.CANCELED,
            notes=notes or "Cancelled by customer",
            changed_by=user,
            allowed_from=CUSTOMER_CANCELLABLE_STATES,
            acting_user=user,
        )
        return self.get_order(order_id, user=user)

    def request_return(self, order_id: Any, user: Any, notes: str = "") -> Order:
        """Customer return: own order, only once DELIVERED."""
        self._transition(
            order_id,
            OrderStatus.RETURNED,
            notes=notes or "Returned by customer",
            changed_by=user,
            allowed_from=RETURNABLE_STATES,
            acting_user=user,
        )
        return self.get_order(order_id, user=user)

    @atomic_with_retry
    def _transition(
        self,
        order_id: Any,
        target: str,
        *,
        refund: Optional[Mapping[str, Any]] = None,
        notes: str = "",
        changed_by: Any = None,
        allowed_from: Optional[Collection[str]] = None,
        acting_user: Any = None,
    ) -> None:
        order = self._order_repo.get_for_update(str(order_id))
        if order is None or not self._visible_to(order, acting_user):
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(
            order_id=str(order.id),
            current_status=order.status,
            new_status=target,
        )

        if allowed_from is not None and order.status not in allowed_from:
            log.warning("order.invalid_transition", allowed_from=sorted(allowed_from))
            raise InvalidTransition(
                f"Cannot move order from {order.status} to {target} here; "
                f"allowed only from {', '.join(sorted(allowed_from))}."
            )

        try:
            plan = plan_transition(
                current=order.status,
                target=target,
                total_amount=order.total_amount,
                lines=[(item.product_id, item.quantity) for item in order.items.all()],
                refund=refund,
            )
        except InvalidTransition:
            log.warning("order.invalid_transition")
            raise

        for restoration in plan.restorations:
            self._ledger.record(
                restoration.product_id,
                restoration.quantity,
                Decimal("0"),
                reason=restoration.reason,
                order_id=order.id,
            )

        if plan.refund is not None:
            refund_row = self._refund_repo.record(
                order_id=order.id,
                amount=plan.refund.amount,
                reason=plan.refund.reason,
            )
            order.add_domain_event(
                OrderRefunded(
                    aggregate_id=order.id,
                    data={
                        "refund_id": str(refund_row.id),
                        "amount": str(refund_row.amount),
                        "reason": refund_row.reason,
                    },
                )
            )

        order.status = plan.to_status
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                data={
                    "old_status": plan.from_status,
                    "new_status": plan.to_status,
                    "stock_restored": plan.restores_stock,
                },
            )
        )
        if plan.to_status == OrderStatus.CANCELED:
            order.add_domain_event(OrderCancelled(aggregate_id=order.id))

        self._order_repo.save(order, update_fields=["status"])
        self._order_repo.add_history(
            order.id,
            new_status=plan.to_status,
            old_status=plan.from_status,
            notes=notes,
            changed_by_id=getattr(changed_by, "pk", None),
        )

        log.info(
            "order.status_updated",
            restored_lines=len(plan.restorations),
            refund_amount=str(plan.refund.amount) if plan.refund else None,
        )

    # ------------------------------------------------------------------
    # Payment information
    # ------------------------------------------------------------------

    @atomic_with_retry
    def update_payment_info(
        self, order_id: Any, dto: UpdatePaymentInfoDTO, user: Any = None
    ) -> Order:
        """Attach transfer proof to an open online-transfer order.

        Raises:
            OrderNotFound: order does not exist or is not the caller's.
            PaymentInfoNotEditable: not an online transfer, or no longer
                PENDING/PROCESSING.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if order is None or not self._visible_to(order, user):
            raise OrderNotFound(f"Order {order_id} not found.")

        if (
            order.payment_type != PaymentType.ONLINE_TRANSFER
            or order.status not in PAYMENT_EDITABLE_STATES
        ):
            raise PaymentInfoNotEditable(
                "Payment details can only change on PENDING or PROCESSING "
                "online-transfer orders."
            )

        changed = []
        if dto.transaction_id:
            order.transaction_id = dto.transaction_id
            changed.append("transaction_id")
        if dto.payment_screenshot_ref:
            order.payment_screenshot_ref = dto.payment_screenshot_ref
            changed.append("payment_screenshot_ref")
        if not changed:
            raise DomainValidationError(
                "Provide transaction_id or payment_screenshot_ref.",
                code="payment_info_empty",
            )

        self._order_repo.save(order, update_fields=changed)
        logger.info("order.payment_info_updated", order_id=str(order.id), fields=changed)
        return self._order_repo.get_by_id(str(order.id)) or order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: Any, user: Any = None) -> Order:
        """Retrieve a single order with items, history and refunds.

        Non-staff users only see their own orders; anything else is
        reported as not found.

        Raises:
            OrderNotFound: if the order does not exist or is not visible.
        """
        order = self._order_repo.get_by_id(str(order_id))
        if order is None or not self._visible_to(order, user):
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(
        self, user: Any = None, filters: Optional[Dict[str, Any]] = None
    ) -> QuerySet:
        """Orders visible to *user*, newest first, optionally filtered."""
        filters = dict(filters or {})
        if user is not None and not _is_staff(user):
            filters["user_id"] = user.pk
        return self._order_repo.list(filters)

    def list_refunds(self, order_id: Any, user: Any = None) -> List[Refund]:
        order = self.get_order(order_id, user=user)
        return self._refund_repo.list_for_order(order.id)

    @staticmethod
    def _visible_to(order: Order, user: Any) -> bool:
        if user is None or _is_staff(user):
            return True
        return order.user_id == user.pk
