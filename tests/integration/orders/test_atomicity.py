"""Integration tests for all-or-nothing order commands.

A failure anywhere inside a unit of work (stock check, ledger write,
history, refund) must leave orders, stock, history, refunds and the
outbox exactly as they were.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from modules.core.exceptions import PersistenceError
from modules.core.models import OutboxEvent
from modules.inventory.models import StockMovement
from modules.orders.constants import OrderStatus, PaymentType
from modules.orders.dtos import CreateOrderDTO
from modules.orders.exceptions import InsufficientStock
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.refunds.models import Refund

pytestmark = pytest.mark.integration


@pytest.fixture()
def products(make_product):
    return (
        make_product(sku="ATOMIC-A", price="10.00", stock=10),
        make_product(sku="ATOMIC-B", price="20.00", stock=10),
        make_product(sku="ATOMIC-C", price="5.00", stock=0),
    )


def _snapshot():
    return {
        "orders": Order.objects.count(),
        "items": OrderItem.objects.count(),
        "movements": StockMovement.objects.count(),
        "history": OrderStatusHistory.objects.count(),
        "refunds": Refund.objects.count(),
        "outbox": OutboxEvent.objects.count(),
    }


def _dto(user, shipping_address, *lines):
    return CreateOrderDTO(
        user_id=user.pk,
        items=[{"product_id": p.id, "quantity": q} for p, q in lines],
        shipping_address=shipping_address,
        payment_type=PaymentType.COD,
    )


class TestCreateAtomicity:
    def test_partial_stock_failure_rolls_back(
        self, auth_client, products, shipping_address
    ):
        a, b, c = products
        before = _snapshot()

        response = auth_client.post(
            "/api/v1/orders/",
            {
                "items": [
                    {"product_id": str(a.id), "quantity": 1},
                    {"product_id": str(b.id), "quantity": 1},
                    {"product_id": str(c.id), "quantity": 1},
                ],
                "shipping_address": shipping_address,
                "payment_type": PaymentType.COD,
            },
            format="json",
        )

        assert response.status_code == 409
        assert _snapshot() == before

    def test_ledger_failure_after_order_insert_rolls_back(
        self, order_service, products, user, shipping_address, ledger
    ):
        a, b, _ = products
        before = _snapshot()
        real_record = ledger.record
        calls = {"n": 0}

        def fail_on_second_line(*args, **kwargs):
            calls["n"] += 1
            if calls["n"] == 2:
                raise PersistenceError("disk full")
            return real_record(*args, **kwargs)

        with patch.object(ledger, "record", side_effect=fail_on_second_line):
            with pytest.raises(PersistenceError):
                order_service.create_order(
                    _dto(user, shipping_address, (a, 1), (b, 2))
                )

        assert _snapshot() == before
        assert ledger.current_stock(a.id) == 10

    def test_history_failure_rolls_back(
        self, order_service, products, user, shipping_address
    ):
        a, _, _ = products
        before = _snapshot()

        with patch.object(
            order_service._order_repo,
            "add_history",
            side_effect=PersistenceError("history unavailable"),
        ):
            with pytest.raises(PersistenceError):
                order_service.create_order(_dto(user, shipping_address, (a, 1)))

        assert _snapshot() == before


class TestTransitionAtomicity:
    def test_refund_failure_keeps_status_and_stock(
        self, order_service, products, user, shipping_address, ledger
    ):
        a, _, _ = products
        order = order_service.create_order(_dto(user, shipping_address, (a, 2))).order
        order_service.update_status(order.id, OrderStatus.SHIPPED)
        order_service.update_status(order.id, OrderStatus.DELIVERED)
        before = _snapshot()

        with patch.object(
            order_service._refund_repo,
            "record",
            side_effect=PersistenceError("refund table locked"),
        ):
            with pytest.raises(PersistenceError):
                order_service.update_status(
                    order.id,
                    OrderStatus.REFUNDED,
                    refund={"amount": "20.00", "reason": "Broken"},
                )

        order.refresh_from_db()
        assert order.status == OrderStatus.DELIVERED
        assert ledger.current_stock(a.id) == 8
        assert _snapshot() == before

    def test_insufficient_stock_is_reported_not_partial(
        self, order_service, products, user, shipping_address
    ):
        a, _, c = products
        with pytest.raises(InsufficientStock):
            order_service.create_order(_dto(user, shipping_address, (a, 1), (c, 1)))
        assert not Order.objects.exists()
