"""Order domain exceptions.

Raised by the Service Layer when business rules are violated and
rendered by ``modules.core.exception_handler``.  Stock and product
errors are re-exported so order callers find every failure of
``OrderService`` in one place.
"""

from __future__ import annotations

from modules.core.exceptions import (
    ConflictError,
    DomainValidationError,
    NotFoundError,
)
from modules.inventory.exceptions import InsufficientStock
from modules.orders.state_machine import (
    InvalidTransition,
    RefundAmountOutOfRange,
    RefundDataRequired,
)
from modules.products.exceptions import ProductNotFound, ProductUnavailable


class OrderNotFound(NotFoundError):
    """The requested order does not exist or is not visible to the caller."""

    code = "order_not_found"


class InvalidLineItems(DomainValidationError):
    """The order has no lines, a non-positive quantity or a repeated product."""

    code = "invalid_line_items"


class PaymentInfoRequired(DomainValidationError):
    """Online transfers need a payment method or a transaction id."""

    code = "payment_info_required"


class ForeignPaymentMethod(ConflictError):
    """The payment method does not belong to the ordering user."""

    code = "foreign_payment_method"


class IdempotencyKeyConflict(ConflictError):
    """The idempotency key was already used by another user."""

    code = "idempotency_key_conflict"


class PaymentInfoNotEditable(ConflictError):
    """Payment details can only change on open online-transfer orders."""

    code = "payment_info_not_editable"


__all__ = [
    "ForeignPaymentMethod",
    "IdempotencyKeyConflict",
    "InsufficientStock",
    "InvalidLineItems",
    "InvalidTransition",
    "OrderNotFound",
    "PaymentInfoNotEditable",
    "PaymentInfoRequired",
    "ProductNotFound",
    "ProductUnavailable",
    "RefundAmountOutOfRange",
    "RefundDataRequired",
]
