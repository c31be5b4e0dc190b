"""Unit tests for the order status state machine.

The machine is pure, so no database is touched here: every case feeds
plain values to ``plan_transition`` and inspects the returned plan.

Covers:
- The transition table (every legal edge, every illegal edge, terminals).
- Restoration rules: each deducted unit goes back exactly once.
- Refund payload validation on entry into REFUNDED.
"""

from __future__ import annotations

from decimal import Decimal
from itertools import product
from uuid import uuid4

import pytest

from modules.inventory.models import MovementReason
from modules.orders.constants import OrderStatus
from modules.orders.state_machine import (
    RESTOCKING_EDGES,
    TERMINAL_STATES,
    TRANSITIONS,
    InvalidTransition,
    RefundAmountOutOfRange,
    RefundDataRequired,
    allowed_targets,
    can_transition,
    plan_transition,
)

pytestmark = pytest.mark.unit

S = OrderStatus
TOTAL = Decimal("50.00")
P1, P2 = uuid4(), uuid4()
LINES = [(P1, 2), (P2, 3)]
REFUND = {"amount": "50.00", "reason": "Customer request"}

LEGAL_EDGES = [(src, dst) for src, targets in TRANSITIONS.items() for dst in targets]
ILLEGAL_EDGES = [
    (src, dst)
    for src, dst in product(S.values, S.values)
    if dst not in TRANSITIONS[src]
]


def _plan(current, target, refund=None, lines=LINES):
    return plan_transition(
        current=current,
        target=target,
        total_amount=TOTAL,
        lines=lines,
        refund=refund,
    )


# ---------------------------------------------------------------------------
# Table
# ---------------------------------------------------------------------------


class TestTransitionTable:
    def test_every_status_has_an_entry(self):
        assert set(TRANSITIONS) == set(S.values)

    def test_refunded_is_the_only_terminal_state(self):
        assert TERMINAL_STATES == frozenset({S.REFUNDED})

    @pytest.mark.parametrize(
        ("current", "expected"),
        [
            (S.PENDING, {S.PROCESSING, S.ON_HOLD, S.CANCELED}),
            (S.PROCESSING, {S.SHIPPED, S.ON_HOLD, S.CANCELED}),
            (S.ON_HOLD, {S.PROCESSING, S.CANCELED}),
            (S.SHIPPED, {S.DELIVERED, S.RETURNED}),
            (S.DELIVERED, {S.RETURNED, S.REFUNDED}),
            (S.CANCELED, {S.REFUNDED}),
            (S.RETURNED, {S.REFUNDED}),
            (S.REFUNDED, set()),
        ],
    )
    def test_allowed_targets(self, current, expected):
        assert allowed_targets(current) == expected

    def test_unknown_status_has_no_targets(self):
        assert allowed_targets("TELEPORTED") == frozenset()
        assert not can_transition("TELEPORTED", S.PENDING)

    def test_restocking_edges_are_legal(self):
        for src, dst in RESTOCKING_EDGES:
            assert can_transition(src, dst)


class TestLegalTransitions:
    @pytest.mark.parametrize(("current", "target"), LEGAL_EDGES)
    def test_legal_edge_produces_plan(self, current, target):
        refund = REFUND if target == S.REFUNDED else None
        plan = _plan(current, target, refund=refund)
        assert plan.from_status == current
        assert plan.to_status == target


class TestIllegalTransitions:
    @pytest.mark.parametrize(("current", "target"), ILLEGAL_EDGES)
    def test_illegal_edge_raises(self, current, target):
        with pytest.raises(InvalidTransition):
            _plan(current, target, refund=REFUND)

    def test_self_transition_is_illegal(self):
        assert not can_transition(S.PENDING, S.PENDING)

    def test_invalid_transition_is_a_conflict(self):
        assert InvalidTransition.http_status == 409
        assert InvalidTransition.code == "invalid_transition"


# ---------------------------------------------------------------------------
# Restorations
# ---------------------------------------------------------------------------


class TestRestorations:
    @pytest.mark.parametrize("current", [S.PENDING, S.PROCESSING, S.ON_HOLD])
    def test_cancel_restores_every_line(self, current):
        plan = _plan(current, S.CANCELED)
        assert plan.restores_stock
        assert [(r.product_id, r.quantity, r.reason) for r in plan.restorations] == [
            (P1, 2, MovementReason.CANCELLATION),
            (P2, 3, MovementReason.CANCELLATION),
        ]

    @pytest.mark.parametrize("current", [S.SHIPPED, S.DELIVERED])
    def test_return_restores_every_line(self, current):
        plan = _plan(current, S.RETURNED)
        assert {r.reason for r in plan.restorations} == {MovementReason.RETURN}
        assert sum(r.quantity for r in plan.restorations) == 5

    def test_refund_from_delivered_restores_and_refunds(self):
        plan = _plan(S.DELIVERED, S.REFUNDED, refund=REFUND)
        assert {r.reason for r in plan.restorations} == {MovementReason.REFUND}
        assert plan.refund.amount == Decimal("50.00")

    @pytest.mark.parametrize("current", [S.CANCELED, S.RETURNED])
    def test_refund_after_restoration_does_not_restore_again(self, current):
        plan = _plan(current, S.REFUNDED, refund=REFUND)
        assert plan.restorations == ()
        assert plan.refund is not None

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (S.PENDING, S.PROCESSING),
            (S.PROCESSING, S.SHIPPED),
            (S.PENDING, S.ON_HOLD),
            (S.ON_HOLD, S.PROCESSING),
            (S.SHIPPED, S.DELIVERED),
        ],
    )
    def test_forward_moves_do_not_touch_stock(self, current, target):
        assert not _plan(current, target).restores_stock

    def test_each_unit_is_restored_at_most_once_on_any_path(self):
        """Walk every path from an open state; restorations never exceed sales."""
        sold = sum(q for _, q in LINES)

        def walk(state, restored, path):
            assert restored <= sold
            for target in allowed_targets(state):
                if target in path:
                    continue
                refund = REFUND if target == S.REFUNDED else None
                plan = _plan(state, target, refund=refund)
                walk(
                    target,
                    restored + sum(r.quantity for r in plan.restorations),
                    path | {target},
                )

        for start in (S.PENDING, S.PROCESSING):
            walk(start, 0, {start})


# ---------------------------------------------------------------------------
# Refund payload
# ---------------------------------------------------------------------------


class TestRefundPayload:
    @pytest.mark.parametrize(
        "refund",
        [None, {}, {"reason": "x"}, {"amount": None, "reason": "x"}],
    )
    def test_missing_amount_requires_data(self, refund):
        with pytest.raises(RefundDataRequired):
            _plan(S.CANCELED, S.REFUNDED, refund=refund)

    @pytest.mark.parametrize("reason", ["", "   ", None])
    def test_blank_reason_requires_data(self, reason):
        with pytest.raises(RefundDataRequired):
            _plan(S.CANCELED, S.REFUNDED, refund={"amount": "10.00", "reason": reason})

    @pytest.mark.parametrize("amount", ["0", "-1.00", "50.01", "NaN", "Infinity"])
    def test_amount_out_of_range(self, amount):
        with pytest.raises(RefundAmountOutOfRange):
            _plan(S.CANCELED, S.REFUNDED, refund={"amount": amount, "reason": "x"})

    def test_non_numeric_amount_is_out_of_range(self):
        with pytest.raises(RefundAmountOutOfRange):
            _plan(S.CANCELED, S.REFUNDED, refund={"amount": "ten", "reason": "x"})

    @pytest.mark.parametrize("amount", ["0.001", "0.009", "10.005", "1e30"])
    def test_fractions_of_a_cent_are_rejected(self, amount):
        with pytest.raises(RefundAmountOutOfRange):
            _plan(S.DELIVERED, S.REFUNDED, refund={"amount": amount, "reason": "x"})

    def test_trailing_zeros_are_whole_cents(self):
        plan = _plan(S.CANCELED, S.REFUNDED, refund={"amount": "12.500", "reason": "x"})
        assert plan.refund.amount == Decimal("12.50")

    @pytest.mark.parametrize("amount", ["0.01", "25", "50.00"])
    def test_amount_within_range(self, amount):
        plan = _plan(S.CANCELED, S.REFUNDED, refund={"amount": amount, "reason": " ok "})
        assert plan.refund.amount == Decimal(amount)
        assert plan.refund.reason == "ok"

    def test_refund_payload_ignored_for_other_targets(self):
        plan = _plan(S.PENDING, S.CANCELED, refund={"amount": "999", "reason": "x"})
        assert plan.refund is None

    def test_invalid_edge_is_reported_before_refund_problems(self):
        with pytest.raises(InvalidTransition):
            _plan(S.PENDING, S.REFUNDED, refund=None)
