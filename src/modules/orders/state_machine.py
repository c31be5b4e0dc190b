"""Order status state machine.

Pure functions over plain values: no ORM, no I/O.  ``plan_transition``
checks a requested status change against the transition table and
returns every effect the change implies (new status, refund entry,
stock restorations).  ``OrderService`` applies the plan inside a single
transaction.

Stock restoration happens exactly once per order:

- entering ``CANCELED`` from an open state restores every line,
- entering ``RETURNED`` restores every line,
- ``DELIVERED -> REFUNDED`` restores every line,
- ``CANCELED -> REFUNDED`` and ``RETURNED -> REFUNDED`` write the refund
  only, the goods are already back on the ledger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional

from django.core.exceptions import ImproperlyConfigured

from modules.core.exceptions import ConflictError
from modules.inventory.models import MovementReason
from modules.orders.constants import OrderStatus

CENT = Decimal("0.01")

TRANSITIONS: Mapping[str, frozenset[str]] = {
    OrderStatus.PENDING: frozenset(
        {OrderStatus.PROCESSING, OrderStatus.ON_HOLD, OrderStatus.CANCELED}
    ),
    OrderStatus.PROCESSING: frozenset(
        {OrderStatus.SHIPPED, OrderStatus.ON_HOLD, OrderStatus.CANCELED}
    ),
    OrderStatus.ON_HOLD: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.RETURNED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.RETURNED, OrderStatus.REFUNDED}),
    OrderStatus.CANCELED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.RETURNED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.REFUNDED: frozenset(),
}

TERMINAL_STATES: frozenset[str] = frozenset(
    status for status, targets in TRANSITIONS.items() if not targets
)

# (from, to) edges that put every line back on the ledger, with the
# movement reason recorded for them.
RESTOCKING_EDGES: Mapping[tuple[str, str], str] = {
    (OrderStatus.PENDING, OrderStatus.CANCELED): MovementReason.CANCELLATION,
    (OrderStatus.PROCESSING, OrderStatus.CANCELED): MovementReason.CANCELLATION,
    (OrderStatus.ON_HOLD, OrderStatus.CANCELED): MovementReason.CANCELLATION,
    (OrderStatus.SHIPPED, OrderStatus.RETURNED): MovementReason.RETURN,
    (OrderStatus.DELIVERED, OrderStatus.RETURNED): MovementReason.RETURN,
    (OrderStatus.DELIVERED, OrderStatus.REFUNDED): MovementReason.REFUND,
}


def _check_table() -> None:
    states = set(OrderStatus.values)
    if set(TRANSITIONS) != states:
        missing = sorted(states - set(TRANSITIONS))
        raise ImproperlyConfigured(f"Order transition table misses states: {missing}")
    for source, targets in TRANSITIONS.items():
        unknown = set(targets) - states
        if unknown:
            raise ImproperlyConfigured(
                f"Order transition table: {source} targets unknown {sorted(unknown)}"
            )
    for source, target in RESTOCKING_EDGES:
        if target not in TRANSITIONS[source]:
            raise ImproperlyConfigured(
                f"Restocking edge {source}->{target} is not a legal transition"
            )


_check_table()


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class InvalidTransition(ConflictError):
    """The requested status change is not in the transition table."""

    code = "invalid_transition"


class RefundDataRequired(ConflictError):
    """Entering REFUNDED needs an amount and a non-empty reason."""

    code = "refund_data_required"


class RefundAmountOutOfRange(ConflictError):
    """Refund amount must be positive, in whole cents and at most the order total."""

    code = "refund_amount_out_of_range"


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RefundEntry:
    amount: Decimal
    reason: str


@dataclass(frozen=True)
class StockRestoration:
    product_id: Any
    quantity: int
    reason: str


@dataclass(frozen=True)
class TransitionPlan:
    """Everything a status change implies, ready to be persisted."""

    from_status: str
    to_status: str
    refund: Optional[RefundEntry] = None
    restorations: tuple[StockRestoration, ...] = field(default_factory=tuple)

    @property
    def restores_stock(self) -> bool:
        return bool(self.restorations)


def allowed_targets(current: str) -> frozenset[str]:
    return TRANSITIONS.get(current, frozenset())


def can_transition(current: str, target: str) -> bool:
    return target in allowed_targets(current)


def plan_transition(
    *,
    current: str,
    target: str,
    total_amount: Decimal,
    lines: Iterable[tuple[Any, int]],
    refund: Optional[Mapping[str, Any]] = None,
) -> TransitionPlan:
    """Validate ``current -> target`` and list its effects.

    *lines* are ``(product_id, quantity)`` pairs of the order.  *refund*
    is ``{"amount": ..., "reason": ...}`` and is only read when *target*
    is ``REFUNDED``.

    Raises:
        InvalidTransition: the edge is not in the table.
        RefundDataRequired: refund payload missing or reason blank.
        RefundAmountOutOfRange: amount not in ``(0, total_amount]`` or
            finer than a cent.
    """
    if not can_transition(current, target):
        raise InvalidTransition(f"Cannot transition from {current} to {target}.")

    refund_entry = None
    if target == OrderStatus.REFUNDED:
        refund_entry = _refund_entry(refund, total_amount)

    reason = RESTOCKING_EDGES.get((current, target))
    restorations: tuple[StockRestoration, ...] = ()
    if reason is not None:
        restorations = tuple(
            StockRestoration(product_id=product_id, quantity=quantity, reason=reason)
            for product_id, quantity in lines
        )

    return TransitionPlan(
        from_status=current,
        to_status=target,
        refund=refund_entry,
        restorations=restorations,
    )


def _refund_entry(
    refund: Optional[Mapping[str, Any]], total_amount: Decimal
) -> RefundEntry:
    if not refund or refund.get("amount") is None:
        raise RefundDataRequired("A refund amount and reason are required.")
    reason = str(refund.get("reason") or "").strip()
    if not reason:
        raise RefundDataRequired("A refund reason is required.")
    try:
        amount = Decimal(str(refund["amount"]))
        if not amount.is_finite():
            raise ArithmeticError(amount)
        cents = amount.quantize(CENT)
    except ArithmeticError as exc:
        raise RefundAmountOutOfRange("Refund amount is not a number.") from exc
    # Refunds are stored in whole cents; 0.001 would be written as 0.00.
    if amount != cents:
        raise RefundAmountOutOfRange("Refund amount cannot have fractions of a cent.")
    if amount <= 0 or amount > total_amount:
        raise RefundAmountOutOfRange(
            f"Refund amount must be greater than 0 and at most {total_amount}."
        )
    return RefundEntry(amount=amount, reason=reason)
