"""Integration tests for order read endpoints.

Covers:
- GET /api/v1/orders/: pagination shape, newest first, customer scoping,
  staff sees everything, filters.
- GET /api/v1/orders/{id}/: nested items/history/refunds, 404 for other
  users' orders and malformed ids.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from modules.orders.constants import OrderStatus, PaymentType
from modules.orders.dtos import CreateOrderDTO

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"


@pytest.fixture()
def place_order(order_service, make_product, shipping_address):
    """Factory placing an order through the service for *owner*."""
    counter = {"n": 0}

    def _place(owner, quantity=1, price="10.00", payment_type=PaymentType.COD, **extra):
        counter["n"] += 1
        product = make_product(sku=f"READ-{counter['n']}", price=price, stock=50)
        dto = CreateOrderDTO(
            user_id=owner.pk,
            items=[{"product_id": product.id, "quantity": quantity}],
            shipping_address=shipping_address,
            payment_type=payment_type,
            **extra,
        )
        return order_service.create_order(dto).order

    return _place


# ===========================================================================
# List
# ===========================================================================


class TestOrderList:
    def test_paginated_shape(self, auth_client, place_order, user):
        place_order(user)

        response = auth_client.get(URL)

        assert response.status_code == 200
        assert set(response.data) == {"count", "next", "previous", "results"}
        assert response.data["count"] == 1
        row = response.data["results"][0]
        assert row["item_count"] == 1
        assert "items" not in row

    def test_newest_first(self, auth_client, place_order, user):
        first = place_order(user)
        second = place_order(user)

        ids = [row["id"] for row in auth_client.get(URL).data["results"]]

        assert ids == [str(second.id), str(first.id)]

    def test_customer_sees_only_own_orders(
        self, auth_client, place_order, user, other_user
    ):
        mine = place_order(user)
        place_order(other_user)

        results = auth_client.get(URL).data["results"]

        assert [row["id"] for row in results] == [str(mine.id)]

    def test_staff_sees_every_order(self, staff_client, place_order, user, other_user):
        place_order(user)
        place_order(other_user)

        assert staff_client.get(URL).data["count"] == 2

    def test_filter_by_status(self, auth_client, place_order, user):
        place_order(user)
        place_order(user, payment_type=PaymentType.ONLINE_TRANSFER, transaction_id="T-1")

        response = auth_client.get(URL, {"status": OrderStatus.PENDING})

        assert response.data["count"] == 1
        assert response.data["results"][0]["status"] == OrderStatus.PENDING

    def test_filter_by_transaction_id_is_case_insensitive(
        self, auth_client, place_order, user
    ):
        order = place_order(
            user, payment_type=PaymentType.ONLINE_TRANSFER, transaction_id="KBZ-ABC"
        )
        place_order(user)

        response = auth_client.get(URL, {"transaction_id": "kbz-abc"})

        assert [row["id"] for row in response.data["results"]] == [str(order.id)]

    def test_filter_by_total_range(self, auth_client, place_order, user):
        place_order(user, quantity=1, price="10.00")
        big = place_order(user, quantity=3, price="50.00")

        response = auth_client.get(URL, {"min_total": "100"})

        assert [row["id"] for row in response.data["results"]] == [str(big.id)]

    def test_invalid_status_filter(self, auth_client):
        response = auth_client.get(URL, {"status": "LOST"})
        assert response.status_code == 400

    def test_anonymous_rejected(self, api_client):
        assert api_client.get(URL).status_code == 401


# ===========================================================================
# Retrieve
# ===========================================================================


class TestOrderRetrieve:
    def test_nested_representation(self, auth_client, place_order, user):
        order = place_order(user, quantity=2, price="12.50")

        response = auth_client.get(f"{URL}{order.id}/")

        assert response.status_code == 200
        data = response.data
        assert data["id"] == str(order.id)
        assert Decimal(data["total_amount"]) == Decimal("25.00")
        assert data["items"][0]["quantity"] == 2
        assert data["items"][0]["product_sku"].startswith("READ-")
        assert Decimal(data["items"][0]["subtotal"]) == Decimal("25.00")
        assert [h["new_status"] for h in data["status_history"]] == [
            OrderStatus.PROCESSING
        ]
        assert data["refunds"] == []

    def test_other_users_order_is_not_found(self, auth_client, place_order, other_user):
        order = place_order(other_user)

        response = auth_client.get(f"{URL}{order.id}/")

        assert response.status_code == 404
        assert response.data["errors"][0]["code"] == "order_not_found"

    def test_staff_can_read_any_order(self, staff_client, place_order, user):
        order = place_order(user)
        assert staff_client.get(f"{URL}{order.id}/").status_code == 200

    def test_unknown_id(self, auth_client):
        assert auth_client.get(f"{URL}{uuid4()}/").status_code == 404

    def test_malformed_id(self, auth_client):
        assert auth_client.get(f"{URL}not-a-uuid/").status_code == 404
